"""Search intent classification."""

from searchlight.intent.analyzer import IntentAnalyzer, parse_intent
from searchlight.intent.repair import JSONRepairError, repair_json

__all__ = [
    "IntentAnalyzer",
    "parse_intent",
    "repair_json",
    "JSONRepairError",
]
