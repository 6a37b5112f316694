"""Printable handouts."""

from .generator import HandoutGenerator

__all__ = ["HandoutGenerator"]
