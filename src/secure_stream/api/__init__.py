"""HTTP API for the secure stream service."""
