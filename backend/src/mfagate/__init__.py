"""MFA challenge-response gateway backed by a privacyIDEA-style server."""

__version__ = "0.1.0"
