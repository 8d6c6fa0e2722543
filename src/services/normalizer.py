"""Recover a JSON object from free-form model output.

Models wrap JSON in markdown fences, prepend prose, or leave trailing commas.
extract_json_object() undoes exactly those, in a fixed order, and does no
schema checking: the formatter decides whether the object is a usable recipe.
"""

import json
import re
from typing import Any

from src.utils.errors import FormatError
from src.utils.logger import logger


_FENCE_JSON = re.compile(r"```json\s*")
_FENCE = re.compile(r"```\s*")
_LEADING_JSON_TOKEN = re.compile(r"^json\s*")
# Greedy: first "{" to last "}" across lines
_OBJECT = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _strip_fences(text: str) -> str:
    cleaned = _FENCE_JSON.sub("", text)
    cleaned = _FENCE.sub("", cleaned)
    return _LEADING_JSON_TOKEN.sub("", cleaned)


def _locate_object(text: str) -> str:
    match = _OBJECT.search(text)
    if match:
        return match.group(0)

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace == -1 or last_brace == -1:
        raise FormatError("🔧 Invalid response format from provider. Please try again.")
    return text[first_brace : last_brace + 1]


def _strip_trailing_commas(json_text: str) -> str:
    # {"a": 1,} -> {"a": 1} and [1, 2,] -> [1, 2]
    return _TRAILING_COMMA.sub(r"\1", json_text)


def extract_json_object(text: str) -> Any:
    """Extract and parse the JSON object embedded in a model reply.

    Steps, in order:
    1. Trim whitespace
    2. Remove ```json / ``` fences and a leading bare "json" token
    3. Take the greedy {...} span, else slice first "{" to last "}"
    4. json.loads, retrying once with trailing commas removed

    Args:
        text: Raw completion text.

    Returns:
        The parsed JSON value (normally a dict). No schema checks are applied.

    Raises:
        FormatError: No braces found, or the candidate is not valid JSON.
    """
    cleaned = _strip_fences((text or "").strip())
    candidate = _locate_object(cleaned)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    try:
        parsed = json.loads(_strip_trailing_commas(candidate))
    except json.JSONDecodeError as e:
        logger.debug(f"JSON recovery failed: {e}; first 200 chars: {candidate[:200]!r}")
        raise FormatError("🔧 Provider response format error. Please try generating again.") from e

    logger.debug("Recovered JSON after removing trailing commas")
    return parsed
