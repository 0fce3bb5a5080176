"""Core configuration, errors and primitives for the secure stream service."""
