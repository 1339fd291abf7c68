"""Turn a fetched HTML page into compact markdown.

Readability isolates the main article, markdownify converts it so the model
spends fewer tokens on markup.
"""

import re

from bs4 import BeautifulSoup
from markdownify import markdownify as md
from readability import Document

from searchlight.logging import get_logger
from searchlight.models import NO_CONTENT, WebContent

logger = get_logger("searchlight.search.distill")

EXCERPT_CHARS = 200

_BLANK_LINES_RE = re.compile(r"\n{3,}")


def distill_html(html: str, url: str, fallback_title: str) -> WebContent:
    """Extract the main content of a page as markdown.

    A page with no readable article is a normal outcome and yields
    ``NO_CONTENT`` rather than an error.

    Args:
        html: Page markup
        url: URL the page was fetched from
        fallback_title: Title to use when the page has none (usually the result title)

    Returns:
        WebContent: Distilled page
    """
    try:
        document = Document(html, url=url)
        article_html = document.summary(html_partial=True)
        title = (document.short_title() or "").strip() or fallback_title
    except Exception as e:
        logger.debug("Readability failed", url=url, error=str(e))
        return WebContent(title=fallback_title, url=url, content=NO_CONTENT)

    article = BeautifulSoup(article_html, "lxml")
    if not article.get_text(strip=True):
        logger.debug("No readable content found", url=url)
        return WebContent(title=title, url=url, content=NO_CONTENT)

    markdown = md(
        str(article),
        heading_style="ATX",
        strip=["img", "script", "style"],
    )
    markdown = _clean_markdown(markdown)

    logger.debug(
        "Distilled page",
        url=url,
        html_chars=len(article_html),
        markdown_chars=len(markdown),
    )
    return WebContent(
        title=title,
        url=url,
        content=markdown or NO_CONTENT,
        excerpt=extract_excerpt(html, article),
    )


def extract_excerpt(html: str, article: BeautifulSoup | None = None) -> str | None:
    """Short page summary: the meta description, else the first paragraph.

    Args:
        html: Full page markup
        article: Parsed article body to take the first paragraph from

    Returns:
        str | None: Excerpt of at most ``EXCERPT_CHARS`` characters, or None
    """
    page = BeautifulSoup(html, "lxml")
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        meta = page.find("meta", attrs=attrs)
        if meta and meta.get("content", "").strip():
            return _shorten(meta["content"])

    source = article if article is not None else page
    for paragraph in source.find_all("p"):
        text = paragraph.get_text(" ", strip=True)
        if text:
            return _shorten(text)
    return None


def _shorten(text: str) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    if len(text) <= EXCERPT_CHARS:
        return text
    return text[:EXCERPT_CHARS].rstrip() + "..."


def _clean_markdown(markdown: str) -> str:
    lines = [line.rstrip() for line in markdown.splitlines()]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()
