"""Tests for the augmented prompt builder."""

from datetime import datetime, timedelta, timezone

from searchlight.models import WebContent
from searchlight.prompt import PromptBuilder
from searchlight.prompt.builder import format_reference


def make_contents(count: int) -> list[WebContent]:
    return [
        WebContent(
            title=f"Page {i}",
            url=f"https://site{i}.example/article",
            content=f"Body text of page {i}.",
            excerpt=f"Summary {i}",
        )
        for i in range(1, count + 1)
    ]


FIXED_NOW = datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


class TestPromptBuilder:
    """Tests for PromptBuilder.build."""

    def test_numbered_references_and_citations(self):
        """Test that five contents give five [n] blocks and citations 1..5 in order."""
        contents = make_contents(5)

        built = PromptBuilder().build("What happened?", contents, now=FIXED_NOW)

        assert [c.number for c in built.citations] == [1, 2, 3, 4, 5]
        assert [c.url for c in built.citations] == [c.url for c in contents]
        assert built.citations[0].excerpt == "Summary 1"
        for number, content in enumerate(contents, start=1):
            assert f"[{number}] Title: {content.title}\nURL: {content.url}\n" in built.prompt
        assert built.prompt.index("[1] Title") < built.prompt.index("[5] Title")

    def test_prompt_sections(self):
        built = PromptBuilder().build("東京の天気は？", make_contents(1), now=FIXED_NOW)

        assert built.prompt.startswith("Please answer the question based on the reference materials")
        assert "## Current Time:\n2025-03-14 09:26:53 UTC" in built.prompt
        assert "## My question is:\n\n東京の天気は？" in built.prompt
        assert built.prompt.endswith("Please respond in the same language as the user's question.")

    def test_timestamp_converted_to_utc(self):
        tokyo = timezone(timedelta(hours=9))
        now = datetime(2025, 3, 14, 18, 26, 53, tzinfo=tokyo)

        built = PromptBuilder().build("q", make_contents(1), now=now)

        assert "2025-03-14 09:26:53 UTC" in built.prompt

    def test_references_separated(self):
        built = PromptBuilder().build("q", make_contents(3), now=FIXED_NOW)

        assert built.prompt.count("\n---\n\n") == 2

    def test_empty_contents(self):
        built = PromptBuilder().build("q", [], now=FIXED_NOW)

        assert built.citations == []
        assert "## Reference Materials:" in built.prompt


def test_format_reference():
    content = WebContent(title="T", url="https://t.example", content="Line one\nLine two")

    assert format_reference(7, content) == "[7] Title: T\nURL: https://t.example\nContent:\nLine one\nLine two\n"
