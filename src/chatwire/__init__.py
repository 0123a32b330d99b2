"""
chatwire - an authenticated real-time chat client.

This package provides an API client facade for a REST/real-time chat
backend, a route table and console view components driven from the
command line.
"""

__version__ = "0.1.0"
__author__ = "chatwire contributors"
__license__ = "Apache-2.0"

from typing import Final

# Package metadata
VERSION: Final[str] = __version__
PACKAGE_NAME: Final[str] = "chatwire"
USER_AGENT: Final[str] = f"{PACKAGE_NAME}/{VERSION}"

__all__ = [
    "__version__",
    "VERSION",
    "PACKAGE_NAME",
    "USER_AGENT",
]
