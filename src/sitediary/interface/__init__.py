"""
Interface layer package.

Command-line entry points built on typer and rich.
"""
