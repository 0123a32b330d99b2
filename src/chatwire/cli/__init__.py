"""
CLI interface package for chatwire.

This package contains the Typer application and the interactive shell
that drives the routed views.
"""

__all__ = ["app"]
