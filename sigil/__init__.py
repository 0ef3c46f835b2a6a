"""Offline Ed25519 key management and large-file signing."""

__version__ = "0.1.0"
