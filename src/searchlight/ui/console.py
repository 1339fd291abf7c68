"""Rich console wrapper for the Searchlight CLI.

Provides consistent styling for status lines, pipeline phases, citation
tables and configuration dumps.
"""

from contextlib import contextmanager
from typing import Any, Iterator

from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.theme import Theme

from searchlight.llm.models import ModelInfo
from searchlight.models import Citation

SEARCHLIGHT_THEME = Theme({
    "sl.primary": "cyan",
    "sl.success": "green",
    "sl.error": "red bold",
    "sl.warning": "yellow",
    "sl.info": "blue",
    "sl.phase": "yellow italic",
    "sl.header": "cyan bold",
    "sl.footer": "dim",
})


class SearchlightConsole:
    """Rich console with Searchlight styling.

    Attributes:
        console: The underlying Rich Console instance
    """

    def __init__(self, no_color: bool = False, verbose: bool = False):
        self.console = Console(
            theme=SEARCHLIGHT_THEME,
            highlight=False,
            no_color=no_color,
        )
        self.verbose = verbose
        self.no_color = no_color

    def print(self, *args: Any, **kwargs: Any) -> None:
        self.console.print(*args, **kwargs)

    def error(self, message: str, exception: Exception | None = None) -> None:
        """Display an error message.

        Args:
            message: Error message
            exception: Optional exception, shown with its traceback in verbose mode
        """
        self.console.print(f"✗ Error: {message}", style="sl.error")
        if exception and self.verbose:
            self.console.print_exception(show_locals=False)

    def warning(self, message: str) -> None:
        self.console.print(f"⚠ Warning: {message}", style="sl.warning")

    def success(self, message: str) -> None:
        self.console.print(f"✓ {message}", style="sl.success")

    def info(self, message: str) -> None:
        self.console.print(f"ℹ {message}", style="sl.info")

    @contextmanager
    def working(self, message: str = "Working...") -> Iterator[Status]:
        """Show a spinner while a block runs; ``status.update`` changes its label."""
        with self.console.status(f"[sl.phase]{message}[/sl.phase]", spinner="dots") as status:
            yield status

    def show_citations(self, citations: list[Citation]) -> None:
        """Display the numbered references of an augmented prompt."""
        table = Table(title="References", show_header=True)
        table.add_column("#", style="sl.primary", justify="right")
        table.add_column("Title", style="sl.info")
        table.add_column("URL", style="sl.footer", overflow="fold")

        for citation in citations:
            table.add_row(str(citation.number), citation.title, citation.url)

        self.console.print(table)

    def show_prompt(self, prompt: str) -> None:
        self.console.print(Panel(prompt, title="Augmented prompt", border_style="sl.footer"))

    def show_models(self, models: list[ModelInfo]) -> None:
        """Display installed Ollama models with their size on disk."""
        table = Table(title="Installed Models", show_header=True)
        table.add_column("Model", style="sl.primary")
        table.add_column("Size", style="sl.info", justify="right")

        for model in models:
            size = f"{model.size_gb:.1f} GB" if model.size_gb is not None else "unknown"
            table.add_row(model.name, size)

        self.console.print(table)

    def show_config(self, config_dict: dict[str, Any]) -> None:
        """Display configuration settings.

        Args:
            config_dict: Dictionary of configuration settings
        """
        table = Table(title="Searchlight Configuration", show_header=True)
        table.add_column("Setting", style="sl.primary")
        table.add_column("Value", style="sl.info")

        for key, value in config_dict.items():
            table.add_row(key, str(value))

        self.console.print(table)


# Global console instance
_console: SearchlightConsole | None = None


def get_console(no_color: bool = False, verbose: bool = False) -> SearchlightConsole:
    """Get the global console instance.

    Args:
        no_color: Disable colored output
        verbose: Enable verbose output

    Returns:
        SearchlightConsole: The global console instance
    """
    global _console
    if _console is None:
        _console = SearchlightConsole(no_color=no_color, verbose=verbose)
    return _console
