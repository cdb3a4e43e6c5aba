"""
Theme management for Scrcpy Viewer.

Provides the dark palette and QSS stylesheet used by every window.
"""

from typing import Dict


class ThemeManager:
    """Manages application theming"""

    DARK_COLORS: Dict[str, str] = {
        'background': '#1e1e1e',
        'surface': '#252526',
        'surface_hover': '#2a2d2e',
        'primary': '#007acc',
        'text': '#cccccc',
        'text_secondary': '#858585',
        'border': '#3c3c3c',
        'success': '#4ec9b0',
        'error': '#f48771',
    }

    @staticmethod
    def get_stylesheet() -> str:
        """
        Get QSS stylesheet for the dark theme

        Returns:
            QSS stylesheet string
        """
        colors = ThemeManager.DARK_COLORS

        return f"""
QMainWindow, QWidget {{
    background-color: {colors['background']};
    color: {colors['text']};
}}

QStatusBar {{
    background-color: {colors['surface']};
    color: {colors['text_secondary']};
    border-top: 1px solid {colors['border']};
}}

QPushButton#deviceCard {{
    background-color: {colors['surface']};
    border: 1px solid {colors['border']};
    border-radius: 8px;
    padding: 8px;
    text-align: center;
}}

QPushButton#deviceCard:hover {{
    background-color: {colors['surface_hover']};
    border-color: {colors['primary']};
}}

QLabel#errorLabel {{
    color: {colors['error']};
    font-size: 14pt;
}}

QLabel#statusLabel[failed="true"] {{
    color: {colors['error']};
}}

QPlainTextEdit {{
    background-color: {colors['background']};
    color: {colors['text']};
    border: 1px solid {colors['border']};
}}
"""
