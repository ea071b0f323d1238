"""
Command-line interface for SiteDiary.
"""

from sitediary.interface.cli.cli import main

__all__ = ["main"]
