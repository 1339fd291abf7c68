"""Augmented prompt assembly."""

from searchlight.prompt.builder import BuiltPrompt, PromptBuilder

__all__ = ["PromptBuilder", "BuiltPrompt"]
