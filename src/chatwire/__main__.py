"""
Entry point for running chatwire as a module.

This allows users to run the CLI using:
    python -m chatwire [command] [options]
"""

from chatwire.cli.app import app

if __name__ == "__main__":
    app()
