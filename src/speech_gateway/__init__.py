"""Speech-to-text gateway in front of a cloud recognizer."""

__version__ = "0.1.0"
