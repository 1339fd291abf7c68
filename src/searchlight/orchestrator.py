"""Top-level web search pipeline.

Phases run strictly in order (analyze, search, fetch, build) and each one
reports its label through ``on_phase_change``. The orchestrator is the
single error boundary of the pipeline: every failure, including
cancellation, ends in ``None`` so the conversation continues without web
context.
"""

from typing import Callable

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.config import Settings, get_settings
from searchlight.intent import IntentAnalyzer
from searchlight.llm.completion import TextCompletionService
from searchlight.llm.models import ChatMessage
from searchlight.logging import Timer, bind_search_context, clear_search_context, get_logger
from searchlight.models import (
    AugmentationResult,
    SearchEngine,
    SearchIntent,
    SearchPhase,
    SearchResultItem,
    WebContent,
)
from searchlight.prompt import PromptBuilder
from searchlight.search.browser import BrowserSearchExecutor
from searchlight.search.duckduckgo import DuckDuckGoClient
from searchlight.search.fetcher import ContentFetcher
from searchlight.search.tavily import TavilyClient

logger = get_logger("searchlight.orchestrator")

PhaseCallback = Callable[[SearchPhase], None]


class WebSearchOrchestrator:
    """Runs the search augmentation pipeline for one user turn at a time.

    Collaborators are injected; anything not supplied is built from settings.
    Browser engines need an ``executor``; without one they are skipped.
    """

    def __init__(
        self,
        completion: TextCompletionService,
        executor: BrowserSearchExecutor | None = None,
        fetcher: ContentFetcher | None = None,
        tavily: TavilyClient | None = None,
        duckduckgo: DuckDuckGoClient | None = None,
        analyzer: IntentAnalyzer | None = None,
        prompt_builder: PromptBuilder | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            completion: Text completion service used for intent analysis
            executor: Browser search executor for Google, Bing and Baidu
            fetcher: Content fetcher (built from settings if not provided)
            tavily: Tavily client (built from settings if not provided)
            duckduckgo: DuckDuckGo client (built from settings if not provided)
            analyzer: Intent analyzer (built around ``completion`` if not provided)
            prompt_builder: Prompt builder
            settings: Settings instance (uses global if not provided)
        """
        self.settings = settings or get_settings()
        self.executor = executor
        self.fetcher = fetcher or ContentFetcher(self.settings)
        self.tavily = tavily or TavilyClient(settings=self.settings)
        self.duckduckgo = duckduckgo or DuckDuckGoClient(self.settings)
        self.analyzer = analyzer or IntentAnalyzer(completion, self.settings)
        self.prompt_builder = prompt_builder or PromptBuilder()

    def resolve_engine(self, engine: SearchEngine | str | None = None) -> SearchEngine:
        """Pick the engine for a run.

        An explicit override always wins. Otherwise the configured engine is
        used, promoted to Tavily when a Tavily key is configured.
        """
        if engine is not None:
            return SearchEngine(engine)
        configured = SearchEngine(self.settings.search_engine)
        if configured is not SearchEngine.DISABLED and self.settings.has_direct_search_api:
            return SearchEngine.TAVILY
        return configured

    async def execute(
        self,
        user_message: str,
        history: list[ChatMessage],
        on_phase_change: PhaseCallback | None = None,
        engine: SearchEngine | str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AugmentationResult | None:
        """Run the pipeline for one user turn.

        Args:
            user_message: The current user message
            history: Earlier conversation messages, oldest first
            on_phase_change: Called with each phase as it starts
            engine: Engine override for this run
            cancel: Optional cancellation token

        Returns:
            AugmentationResult | None: Augmented prompt with citations, or None
            when search is disabled, unnecessary, cancelled or fruitless
        """
        try:
            selected = self.resolve_engine(engine)
        except ValueError:
            logger.warning("Unknown search engine, skipping web search", engine=str(engine))
            return None

        if selected is SearchEngine.DISABLED:
            logger.info("Web search is disabled")
            return None

        bind_search_context(engine=selected.value)
        try:
            async with Timer("web search", logger):
                return await self._run(user_message, history, selected, on_phase_change, cancel)
        except SearchCancelled as e:
            logger.info("Web search aborted", reason=str(e))
            return None
        except Exception as e:
            logger.warning(
                "Web search failed, continuing without web context",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        finally:
            clear_search_context()

    async def _run(
        self,
        user_message: str,
        history: list[ChatMessage],
        engine: SearchEngine,
        on_phase_change: PhaseCallback | None,
        cancel: CancellationToken | None,
    ) -> AugmentationResult | None:
        def enter(phase: SearchPhase) -> None:
            if cancel is not None:
                cancel.raise_if_cancelled()
            logger.info("Entering phase", phase=phase.name.lower())
            if on_phase_change is not None:
                on_phase_change(phase)

        # Phase 1: intent
        enter(SearchPhase.ANALYZING)
        intent = await self.analyzer.analyze(user_message, history, cancel)
        if cancel is not None:
            cancel.raise_if_cancelled()
        if not intent.needs_search or not (intent.keywords or intent.links):
            logger.info("No search needed for this turn")
            return None

        query = intent.keywords[0] if intent.keywords else None
        link_items = _link_items(intent)

        # Phase 2: search
        enter(SearchPhase.SEARCHING)
        if engine is SearchEngine.TAVILY:
            contents = await self._search_tavily(query, link_items, cancel)
        else:
            candidates = link_items
            if query is not None:
                results = await self._search_results(query, engine, cancel)
                if results is None:
                    return None
                candidates = _merge_candidates(link_items, results)
            if not candidates:
                logger.info("No search results found", query=query)
                return None

            # Phase 3: fetch
            enter(SearchPhase.FETCHING)
            contents = await self.fetcher.fetch_contents(candidates, cancel=cancel)
            if cancel is not None:
                cancel.raise_if_cancelled()

        if not contents:
            logger.info("No usable content fetched")
            return None

        # Phase 4: build
        enter(SearchPhase.BUILDING)
        built = self.prompt_builder.build(user_message, contents)
        logger.info(
            "Web search complete",
            query=query,
            references=len(built.citations),
            prompt_chars=len(built.prompt),
        )
        return AugmentationResult(
            augmented_prompt=built.prompt,
            citations=built.citations,
            query=query,
            engine=engine,
        )

    async def _search_results(
        self,
        query: str,
        engine: SearchEngine,
        cancel: CancellationToken | None,
    ) -> list[SearchResultItem] | None:
        if engine is SearchEngine.DUCKDUCKGO:
            return await self.duckduckgo.search(query, cancel=cancel)

        if self.executor is None:
            logger.warning("No browser available for engine, skipping web search", engine=engine.value)
            return None
        return await self.executor.search(
            query,
            engine=engine,
            max_results=self.settings.browser_max_results,
            cancel=cancel,
        )

    async def _search_tavily(
        self,
        query: str | None,
        link_items: list[SearchResultItem],
        cancel: CancellationToken | None,
    ) -> list[WebContent]:
        """Tavily delivers content directly; named links are still fetched."""
        contents: list[WebContent] = []
        if link_items:
            contents.extend(await self.fetcher.fetch_contents(link_items, cancel=cancel))
            if cancel is not None:
                cancel.raise_if_cancelled()
        if query is not None:
            contents.extend(
                content
                for content in await self.tavily.search(query, cancel=cancel)
                if content.has_content
            )
        return contents


def _link_items(intent: SearchIntent) -> list[SearchResultItem]:
    if not intent.links:
        return []
    return [SearchResultItem(title=link, url=link) for link in sorted(intent.links)]


def _merge_candidates(
    first: list[SearchResultItem],
    second: list[SearchResultItem],
) -> list[SearchResultItem]:
    merged: list[SearchResultItem] = []
    seen: set[str] = set()
    for item in [*first, *second]:
        if item.url not in seen:
            seen.add(item.url)
            merged.append(item)
    return merged
