"""Blobstores, content digests, error wrapping, PEM certificate loading and file utilities."""

__version__ = "0.1.0"