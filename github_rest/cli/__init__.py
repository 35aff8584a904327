"""Command line interface for the GitHub REST client."""

from .main import app

__all__ = ["app"]
