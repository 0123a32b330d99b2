"""
Configuration package for chatwire.

This package contains the settings model and the .env file loader.
"""

__all__ = ["settings", "env_loader"]
