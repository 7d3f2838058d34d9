"""lastseen - Profile activity tracker with Google Sheets integration."""

__version__ = "0.1.0"
