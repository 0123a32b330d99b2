"""
Core components for chatwire.

This package holds the record models and the API client facade with its
transports, session handling and event delivery.
"""

__all__ = ["client", "models"]
