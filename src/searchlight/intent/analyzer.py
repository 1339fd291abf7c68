"""Intent analysis: decide whether a turn needs web search and extract a query."""

import json
from typing import Any

from searchlight.cancellation import CancellationToken, SearchCancelled
from searchlight.config import Settings, get_settings
from searchlight.intent.prompts import NO_HISTORY, format_intent_request
from searchlight.intent.repair import JSONRepairError, repair_json
from searchlight.llm.completion import TextCompletionService, collect_completion
from searchlight.llm.models import ChatMessage, ContentBlock
from searchlight.logging import get_logger
from searchlight.models import SearchIntent

logger = get_logger("searchlight.intent.analyzer")


def parse_intent(response: str) -> SearchIntent:
    """Convert a raw classifier response into a SearchIntent.

    Unparseable output means "no search": classification must never break
    the conversation it is attached to.

    Args:
        response: Raw model text

    Returns:
        SearchIntent: Parsed intent, or ``SearchIntent.no_search()``
    """
    try:
        parsed = json.loads(repair_json(response))
    except (JSONRepairError, json.JSONDecodeError) as e:
        logger.warning("Failed to parse intent JSON, assuming no search", error=str(e))
        return SearchIntent.no_search()

    if not isinstance(parsed, dict):
        logger.warning("Intent response is not an object", kind=type(parsed).__name__)
        return SearchIntent.no_search()

    question = parsed.get("question")
    keyword = question.strip() if isinstance(question, str) else ""

    return SearchIntent(
        needs_search=parsed.get("need_search") is True,
        keywords=(keyword,) if keyword else (),
        links=_parse_links(parsed.get("links")),
    )


def _parse_links(value: Any) -> frozenset[str] | None:
    if not isinstance(value, list):
        return None
    links = frozenset(link.strip() for link in value if isinstance(link, str) and link.strip())
    return links or None


class IntentAnalyzer:
    """Classifies user turns with a language model.

    The request holds a fixed instruction prompt, a bounded window of recent
    history and the current message, sent as a single user message.
    """

    def __init__(
        self,
        completion: TextCompletionService,
        settings: Settings | None = None,
    ):
        """Initialize the analyzer.

        Args:
            completion: Service used to run the classification prompt
            settings: Settings instance (uses global if not provided)
        """
        self.completion = completion
        self.settings = settings or get_settings()

    async def analyze(
        self,
        user_message: str,
        history: list[ChatMessage],
        cancel: CancellationToken | None = None,
    ) -> SearchIntent:
        """Classify a user turn.

        Args:
            user_message: The current user utterance
            history: Earlier conversation messages, oldest first
            cancel: Optional cancellation token

        Returns:
            SearchIntent: The classification; ``needs_search`` is False on any failure
        """
        logger.info("Starting intent analysis", message_chars=len(user_message))

        blocks = format_intent_request(self.format_history(history), user_message)
        messages = [ChatMessage.user([ContentBlock(text=block) for block in blocks])]

        try:
            response = await collect_completion(self.completion, messages, cancel)
        except SearchCancelled:
            logger.info("Intent analysis aborted by user")
            return SearchIntent.no_search()
        except Exception as e:
            logger.warning("Intent analysis failed", error=str(e))
            return SearchIntent.no_search()

        intent = parse_intent(response)
        logger.info(
            "Intent analysis complete",
            needs_search=intent.needs_search,
            keywords=list(intent.keywords),
            links=sorted(intent.links) if intent.links else None,
        )
        return intent

    def format_history(self, history: list[ChatMessage]) -> str:
        """Render the most recent turns as ``Role: text`` lines.

        Args:
            history: Conversation messages, oldest first

        Returns:
            str: Formatted history, or a placeholder when there is none
        """
        turns = self.settings.intent_history_turns
        recent = [m for m in history if m.role != "system"][-turns:] if turns else []
        if not recent:
            return NO_HISTORY

        limit = self.settings.intent_history_chars
        lines = []
        for message in recent:
            role = "User" if message.role == "user" else "Assistant"
            text = message.text
            if len(text) > limit:
                text = text[:limit] + "..."
            lines.append(f"{role}: {text}")
        return "\n".join(lines)
