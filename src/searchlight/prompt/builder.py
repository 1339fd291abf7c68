"""Builds the augmented prompt that carries numbered reference materials."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from searchlight.logging import get_logger
from searchlight.models import Citation, WebContent

logger = get_logger("searchlight.prompt.builder")

TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

REFERENCE_SEPARATOR = "\n---\n\n"

REFERENCE_PROMPT = """Please answer the question based on the reference materials

## Current Time:
{current_time}

Please use this as the reference time when answering time-sensitive questions (e.g., "today", "this week", "recently", "latest"). The search results were fetched at this time, so they contain the most up-to-date information available.

## Citation Rules:
- Please cite the context at the end of sentences when appropriate.
- Please use the format of citation number [number] to reference the context in corresponding parts of your answer.
- If a sentence comes from multiple contexts, please list all relevant citation numbers, e.g., [1][2]. Remember not to group citations at the end but list them in the corresponding parts of your answer.
- If all reference content is not relevant to the user's question, please answer based on your knowledge.

## My question is:

{question}

## Reference Materials:

{references}

Please respond in the same language as the user's question."""


@dataclass(frozen=True)
class BuiltPrompt:
    """An augmented prompt and the citations its ``[n]`` markers refer to."""

    prompt: str
    citations: list[Citation] = field(default_factory=list)


class PromptBuilder:
    """Formats fetched contents into a citation-annotated prompt.

    Citation numbers follow the order of the contents exactly, starting at 1.
    """

    def build(
        self,
        user_question: str,
        contents: list[WebContent],
        now: datetime | None = None,
    ) -> BuiltPrompt:
        """Build the prompt and its citation list.

        Args:
            user_question: The user's original question
            contents: Reference materials, in the order they should be numbered
            now: Timestamp to embed (defaults to the current UTC time)

        Returns:
            BuiltPrompt: Prompt text and citations numbered 1..N
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)

        citations = [
            Citation(
                number=number,
                title=content.title,
                url=content.url,
                excerpt=content.excerpt,
            )
            for number, content in enumerate(contents, start=1)
        ]
        references = REFERENCE_SEPARATOR.join(
            format_reference(number, content) for number, content in enumerate(contents, start=1)
        )

        prompt = REFERENCE_PROMPT.format(
            current_time=now.strftime(TIME_FORMAT),
            question=user_question,
            references=references,
        )
        logger.info("Built augmented prompt", references=len(citations), prompt_chars=len(prompt))
        return BuiltPrompt(prompt=prompt, citations=citations)


def format_reference(number: int, content: WebContent) -> str:
    return f"[{number}] Title: {content.title}\nURL: {content.url}\nContent:\n{content.content}\n"
