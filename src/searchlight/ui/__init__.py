"""Terminal output for the Searchlight CLI."""

from searchlight.ui.console import SearchlightConsole, get_console

__all__ = ["SearchlightConsole", "get_console"]
