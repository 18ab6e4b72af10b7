"""Rules engine deciding enemy deployment for a cooperative board game."""

__version__ = "0.1.0"
