"""Secure stream access: signed playback tokens and one stream per account."""

__version__ = "0.1.0"
