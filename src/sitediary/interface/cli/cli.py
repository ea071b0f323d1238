"""
CLI main entry point.

Delegates to the typer application defined in sitediary.interface.cli.app.
"""


def main() -> int:
    """
    Main entry point for the sitediary CLI.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    try:
        # Import here to avoid circular imports
        from sitediary.interface.cli.app import app
        app()
        return 0
    except Exception as e:
        print(f"Error: {e}")
        return 1
