"""Automatic database backups configured through a hand-editable INI file."""

__version__ = "1.0.0"
