"""Lumina: an AI-native textbook generated on demand."""

__version__ = "0.1.0"
