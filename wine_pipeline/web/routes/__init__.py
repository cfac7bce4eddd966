"""Route modules for the Wine Pipeline API."""
