"""Main entry point for the Searchlight CLI.

Runs the search augmentation pipeline from the terminal, mainly to inspect
which references a question would pull in and what the model would see.
"""

import asyncio
import signal
import sys

import click

from searchlight import __version__
from searchlight.cancellation import CancellationToken
from searchlight.config import get_settings
from searchlight.llm import OllamaClient, OllamaConnectionError, OllamaError
from searchlight.logging import setup_logging
from searchlight.models import SearchEngine, SearchPhase
from searchlight.orchestrator import WebSearchOrchestrator
from searchlight.search import BrowserSearchExecutor, BrowserUnavailableError, PlaywrightSurface
from searchlight.ui import get_console

ENGINE_CHOICES = [engine.value for engine in SearchEngine]


def _configure_logging(verbose: bool, debug: bool) -> None:
    settings = get_settings()
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"
    setup_logging(level=level, log_file=settings.searchlight_log_file)


@click.group()
def cli():
    """Searchlight - web search augmentation for conversational models."""
    pass


@cli.command()
@click.argument("question")
@click.option("--engine", "-e", type=click.Choice(ENGINE_CHOICES), default=None, help="Search engine override")
@click.option("--show-prompt", is_flag=True, help="Print the augmented prompt")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", "-d", is_flag=True, help="Enable debug mode (very detailed logging)")
@click.option("--no-color", is_flag=True, help="Disable colored output")
def ask(question: str, engine: str | None, show_prompt: bool, verbose: bool, debug: bool, no_color: bool):
    """Search the web for QUESTION and show the references found."""
    asyncio.run(run_ask(
        question,
        engine=engine,
        show_prompt=show_prompt,
        verbose=verbose,
        debug=debug,
        no_color=no_color,
    ))


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
def health(verbose: bool, no_color: bool):
    """Check the Ollama connection used for intent analysis."""
    asyncio.run(check_health(verbose=verbose, no_color=no_color))


@cli.command()
@click.option("--no-color", is_flag=True, help="Disable colored output")
def config(no_color: bool):
    """Show current configuration."""
    console = get_console(no_color=no_color)
    console.show_config(get_settings().model_dump_safe())


@cli.command()
def version():
    """Show Searchlight version."""
    click.echo(f"Searchlight version {__version__}")


async def run_ask(
    question: str,
    engine: str | None = None,
    show_prompt: bool = False,
    verbose: bool = False,
    debug: bool = False,
    no_color: bool = False,
) -> None:
    """Run the pipeline once and print its outcome.

    Args:
        question: The user question
        engine: Optional engine override
        show_prompt: Print the augmented prompt
        verbose: Enable verbose output
        debug: Enable debug mode
        no_color: Disable colored output
    """
    _configure_logging(verbose, debug)
    console = get_console(no_color=no_color, verbose=verbose or debug)
    settings = get_settings()

    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except NotImplementedError:
        # Windows event loops do not support signal handlers
        pass

    surface: PlaywrightSurface | None = None
    async with OllamaClient(settings=settings) as llm:
        orchestrator = WebSearchOrchestrator(llm, settings=settings)
        selected = orchestrator.resolve_engine(engine)
        console.info(f"Search engine: {selected.value}")

        if selected.uses_browser:
            surface = PlaywrightSurface(settings=settings)
            try:
                await surface.start()
            except BrowserUnavailableError as e:
                console.error(str(e))
                console.info("Use --engine duckduckgo to search without a browser")
                sys.exit(1)
            orchestrator.executor = BrowserSearchExecutor(surface, settings)

        try:
            with console.working(SearchPhase.ANALYZING.value) as status:
                result = await orchestrator.execute(
                    question,
                    [],
                    on_phase_change=lambda phase: status.update(f"[sl.phase]{phase.value}[/sl.phase]"),
                    engine=selected,
                    cancel=cancel,
                )
        finally:
            if surface is not None:
                await surface.close()

    if cancel.is_cancelled:
        console.warning("Search cancelled")
        return
    if result is None:
        console.info("No web context for this question")
        return

    console.success(f"Found {len(result.citations)} references for '{result.query or question}'")
    console.show_citations(result.citations)
    if show_prompt:
        console.show_prompt(result.augmented_prompt)


async def check_health(verbose: bool = False, no_color: bool = False) -> None:
    """Check Ollama connection status.

    Args:
        verbose: Also list installed models and check the configured one
        no_color: Disable colored output
    """
    _configure_logging(verbose, debug=False)
    console = get_console(no_color=no_color, verbose=verbose)
    settings = get_settings()

    console.info(f"Checking connection to {settings.ollama_host}...")

    try:
        async with OllamaClient(settings=settings) as client:
            with console.working("Testing connection..."):
                await client.health_check()
            console.success("Ollama is running and accessible")

            if verbose:
                models = await client.list_models()
                console.show_models(models)
                if any(model.name == settings.ollama_model for model in models):
                    console.success(f"Intent model '{settings.ollama_model}' is available")
                else:
                    console.warning(f"Intent model '{settings.ollama_model}' not found")
                    console.info(f"Download with: ollama pull {settings.ollama_model}")

    except OllamaConnectionError as e:
        console.error("Failed to connect to Ollama", exception=e)
        console.print("\n[yellow]Troubleshooting tips:[/yellow]")
        console.print("  1. Make sure Ollama is running: ollama serve")
        console.print(f"  2. Check OLLAMA_HOST in your .env file (current: {settings.ollama_host})")
        sys.exit(1)
    except OllamaError as e:
        console.error(str(e), exception=e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
