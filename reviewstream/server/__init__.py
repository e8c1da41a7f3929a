"""HTTP server for reviewstream."""

from .app import create_app

__all__ = ["create_app"]
