"""Searchlight - web search augmentation for conversational models.

Decides whether a user turn needs live web knowledge, searches, fetches and
distills the top pages, and builds a citation-annotated prompt.
"""

__version__ = "0.1.0"

from searchlight.config import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings", "__version__"]
