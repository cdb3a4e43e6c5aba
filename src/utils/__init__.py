"""Debug-bridge client, bootstrap and logging helpers"""
