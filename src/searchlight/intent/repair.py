"""Best-effort repair of JSON produced by language models.

Model output is unstructured: it may be wrapped in markdown fences or prose,
use single or typographic quotes, unquoted keys, trailing commas, or simply
be cut off. Well-formed JSON is taken as is; anything else is handed to
``json_repair``.
"""

import json

from json_repair import repair_json as _repair_json

_decoder = json.JSONDecoder()


class JSONRepairError(ValueError):
    """Raised when no JSON structure can be recovered from the text."""

    pass


def repair_json(text: str) -> str:
    """Normalize model output into parseable JSON text.

    Args:
        text: Raw model response

    Returns:
        str: JSON text for the first object or array in the response

    Raises:
        JSONRepairError: If the text contains no object or array at all
    """
    starts = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not starts:
        raise JSONRepairError("No JSON object or array found in response")
    candidate = text[min(starts):].strip()

    # Prose or a closing fence after a complete value is ignored
    try:
        _, end = _decoder.raw_decode(candidate)
        return candidate[:end]
    except json.JSONDecodeError:
        pass

    try:
        repaired = _repair_json(candidate)
    except (ValueError, RecursionError) as e:
        raise JSONRepairError(f"Could not repair JSON: {e}") from e
    if repaired in ("", '""'):
        raise JSONRepairError("No JSON structure could be recovered from response")
    return repaired
