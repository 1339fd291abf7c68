"""Base class for search engine adapters.

An adapter describes how to search one engine through a browser surface: the
URL to load, the script that scrapes the rendered page, and how to turn the
script's postback message into result items. Adapters hold no state and
never perform I/O.
"""

import json
import re
from abc import ABC, abstractmethod
from string import Template
from typing import Any
from urllib.parse import quote, urlparse

from searchlight.logging import get_logger
from searchlight.models import SearchEngine, SearchResultItem

logger = get_logger("searchlight.search.providers")

# Message types posted back by extraction scripts
MESSAGE_RESULTS = "search_results"
MESSAGE_CAPTCHA = "captcha_required"
MESSAGE_ERROR = "search_error"
MESSAGE_LOG = "console_log"

# Scripts post through this object, which the browser host must provide.
BRIDGE_OBJECT = "searchlightBridge"

_EXTRACTION_TEMPLATE = Template(
    """
(function() {
  const post = (message) => window.$bridge.postMessage(JSON.stringify(message));
  try {
    const html = document.documentElement.outerHTML.toLowerCase();
    const captchaMarkers = $captcha_markers;
    const headingCount = document.querySelectorAll($heading_selector).length;
    if (captchaMarkers.some((marker) => html.includes(marker)) || headingCount < $min_headings) {
      post({type: '$captcha', message: 'CAPTCHA verification required'});
      return true;
    }

    const internalMarkers = $internal_markers;
    const results = [];
    const seenUrls = new Set();
    const seenTitles = new Set();
    const add = (rawTitle, url) => {
      const title = (rawTitle || '').trim();
      if (!title || !url || url.startsWith('javascript:') || url.startsWith('#')) return;
      if (internalMarkers.some((marker) => url.includes(marker))) return;
      const titleKey = title.toLowerCase().replace(/\\s+/g, ' ');
      if (seenUrls.has(url) || seenTitles.has(titleKey)) return;
      seenUrls.add(url);
      seenTitles.add(titleKey);
      results.push({title: title, url: url});
    };

    const selectors = $selectors;
    for (const selector of selectors) {
      const nodes = document.querySelectorAll(selector);
      nodes.forEach((node) => {
        try {
          const link = node.tagName === 'A' ? node : node.querySelector('a[href]');
          const heading = node.tagName === 'A' ? null : node.querySelector('h3, h2');
          if (link && link.href) add(heading ? heading.textContent : link.textContent, link.href);
        } catch (error) {}
      });
      post({type: '$log', log: 'Selector ' + selector + ' matched ' + nodes.length + ' nodes'});
      if (results.length > 0) break;
    }

    if (results.length === 0) {
      document.querySelectorAll('h3, h2').forEach((heading) => {
        try {
          const link = heading.closest('a')
            || heading.querySelector('a[href]')
            || (heading.parentElement && heading.parentElement.querySelector('a[href]'));
          if (link && link.href) add(heading.textContent, link.href);
        } catch (error) {}
      });
    }

    post({type: '$results', results: results, actualUrl: window.location.href});
  } catch (error) {
    post({type: '$error', error: error.message});
  }
  return true;
})();
"""
)


def normalize_title(title: str) -> str:
    """Key used to detect the same result listed under two URLs."""
    return re.sub(r"\s+", " ", title).strip().casefold()


class SearchProvider(ABC):
    """A search engine scraped through a browser surface."""

    engine: SearchEngine
    name: str

    # Containers or anchors holding one result each, most specific first
    result_selectors: tuple[str, ...] = ()
    # Elements whose count signals a real result page
    heading_selector: str = "h3"
    min_headings: int = 1
    captcha_markers: tuple[str, ...] = ()
    # Substrings marking links that point back into the engine itself
    internal_markers: tuple[str, ...] = ()

    @abstractmethod
    def build_search_url(self, query: str) -> str:
        """Build the results page URL for a query."""
        ...

    def extraction_script(self) -> str:
        """Script that scrapes the rendered results page.

        The script posts exactly one message: ``search_results``,
        ``captcha_required`` or ``search_error``, optionally preceded by
        ``console_log`` messages.
        """
        return _EXTRACTION_TEMPLATE.substitute(
            bridge=BRIDGE_OBJECT,
            captcha_markers=json.dumps(list(self.captcha_markers)),
            heading_selector=json.dumps(self.heading_selector),
            min_headings=self.min_headings,
            internal_markers=json.dumps(list(self.internal_markers)),
            selectors=json.dumps(list(self.result_selectors)),
            captcha=MESSAGE_CAPTCHA,
            log=MESSAGE_LOG,
            results=MESSAGE_RESULTS,
            error=MESSAGE_ERROR,
        )

    def parse_results(self, message: dict[str, Any] | str) -> list[SearchResultItem]:
        """Turn a script postback into result items.

        Links are unwrapped from engine redirects, internal and non-HTTP links
        are dropped, and results are deduplicated by URL and by title.

        Args:
            message: Decoded postback message, or its JSON text

        Returns:
            list[SearchResultItem]: Results in page order
        """
        if isinstance(message, str):
            try:
                message = json.loads(message)
            except json.JSONDecodeError:
                logger.warning("Discarding undecodable search message", engine=self.engine.value)
                return []

        if not isinstance(message, dict) or message.get("type") != MESSAGE_RESULTS:
            return []
        raw_results = message.get("results")
        if not isinstance(raw_results, list):
            return []

        items: list[SearchResultItem] = []
        seen_urls: set[str] = set()
        seen_titles: set[str] = set()

        for raw in raw_results:
            if not isinstance(raw, dict):
                continue
            title = raw.get("title")
            url = raw.get("url")
            if not isinstance(title, str) or not isinstance(url, str) or not title.strip():
                continue

            url = self.resolve_url(url.strip())
            if url is None or not _is_http_url(url) or self.is_internal(url):
                continue

            title_key = normalize_title(title)
            if url in seen_urls or title_key in seen_titles:
                continue
            seen_urls.add(url)
            seen_titles.add(title_key)
            items.append(SearchResultItem(title=title.strip(), url=url))

        logger.debug("Parsed search results", engine=self.engine.value, count=len(items))
        return items

    def resolve_url(self, url: str) -> str | None:
        """Unwrap engine redirect links. Returns None to drop the link."""
        return url

    def is_internal(self, url: str) -> bool:
        return any(marker in url for marker in self.internal_markers)

    @staticmethod
    def encode_query(query: str) -> str:
        return quote(query, safe="")


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
