"""
Convenience entry point for running bookingcore directly.

Usage: python -m bookingcore [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
