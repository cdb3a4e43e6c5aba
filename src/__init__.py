"""
Scrcpy Viewer - Launch scrcpy for connected Android devices

Lists devices reported by the Android Debug Bridge and runs one scrcpy
process per selected device, showing its console output in a log window.
"""

__version__ = "0.1.0"
__license__ = "MIT"
