"""Extraction of a JSON object from free-form model output."""

import json
import logging
import re
from typing import Any, Dict, Iterator, Union

from report_engine.errors import ParseError

logger = logging.getLogger(__name__)

# Closing fence is optional: streamed output is sometimes cut short
_JSON_FENCE = re.compile(r"```json\s*(.*?)(?:\s*```|$)", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[a-zA-Z]*\s*(.*?)(?:\s*```|$)", re.DOTALL)

# Non-printable control characters, keeping \t \n \r
_UNSAFE_CONTROL = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ALL_CONTROL = re.compile(r"[\x00-\x1F\x7F]")

_decoder = json.JSONDecoder()


def sanitize_text(text: Union[str, bytes]) -> str:
    """
    Drop malformed UTF-8 sequences and non-printable control characters.

    Args:
        text: Raw provider output (str or bytes)

    Returns:
        Cleaned text, newlines and tabs preserved
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="ignore")
    else:
        # Lone surrogates survive str concatenation of bad chunks
        text = text.encode("utf-8", errors="ignore").decode("utf-8", errors="ignore")

    text = text.lstrip("\ufeff")
    return _UNSAFE_CONTROL.sub("", text)


def _candidates(text: str) -> Iterator[str]:
    match = _JSON_FENCE.search(text)
    if match:
        yield match.group(1)
    match = _ANY_FENCE.search(text)
    if match:
        yield match.group(1)
    yield text


def _parse_object(candidate: str):
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        value = json.loads(candidate)
        if isinstance(value, dict):
            return value
    except json.JSONDecodeError:
        pass

    # Object followed (or preceded) by prose
    start = candidate.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(candidate, start)
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        start = candidate.find("{", start + 1)
    return None


def extract_json(text: Union[str, bytes]) -> Dict[str, Any]:
    """
    Extract the first plausible JSON object from model output.

    Tries a ```json fenced block, a generic fenced block, then the whole
    string (tolerating surrounding prose). If none parse, all control
    characters are stripped and the same sequence is retried.

    Raises:
        ParseError: If no JSON object can be recovered
    """
    cleaned = sanitize_text(text)

    for candidate in _candidates(cleaned):
        value = _parse_object(candidate)
        if value is not None:
            return value

    stripped = _ALL_CONTROL.sub("", cleaned)
    for candidate in _candidates(stripped):
        value = _parse_object(candidate)
        if value is not None:
            logger.info("JSON decoded after removing all control characters")
            return value

    logger.error(f"Failed to extract JSON from response. First 500 chars: {cleaned[:500]!r}")
    raise ParseError("No JSON object found in model output")
