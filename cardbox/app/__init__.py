"""Application layer: configuration and the HTTP API."""

from . import config

__all__ = ["config"]
