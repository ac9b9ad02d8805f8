"""Anonchat backend: anonymous real-time chat rooms."""

__version__ = "1.0.0"
