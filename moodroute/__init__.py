"""MoodRoute: mood-matched city walk recommendations."""

__version__ = "1.0.0"
