"""JSON extraction from raw model text.

Models asked for JSON in free-text mode often wrap it in markdown fences,
<think> blocks, or a line of preamble. This module digs the payload out.
Used only by the "auto" and "json" backend modes; "tool-call" mode gets
parsed arguments straight from the provider.
"""

import json
import re
from typing import Any, Optional

from conflux.errors import ConfluxError, ErrorKind
from conflux.utils.logging import log, get_logger

MODULE = "llm.parser"
logger = get_logger()


class JSONExtractionError(ConfluxError):
    """Raw model output contained no parseable JSON object."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output


_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)
_THINK = re.compile(r"<think>(.*?)</think>", re.DOTALL)


def strip_think_tags(raw: str) -> tuple[str, Optional[str]]:
    """Split `<think>...</think>` reasoning off the front of a response.

    Returns (content_after_think, thinking) or (raw, None) if there is none.
    """
    match = _THINK.search(raw)
    if not match:
        return raw, None
    return raw[match.end():].strip(), match.group(1)


def extract_json(raw: str) -> Any:
    """Return the first JSON object (or array) found in `raw`.

    Tried in order: the whole string, a fenced code block, the first
    balanced {...} or [...] span, then a raw_decode scan of the text
    before any <think> stripping.

    Raises:
        JSONExtractionError: nothing parseable was found.
    """
    original = raw
    text, thinking = strip_think_tags(raw.strip())
    if thinking is not None:
        log.debug(logger, MODULE, "stripped_think", "Stripped <think> block",
                  think_len=len(thinking))

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fence = _FENCE.search(text)
    if fence:
        try:
            return json.loads(fence.group(1).strip())
        except json.JSONDecodeError:
            pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = text.find(open_char)
        if start < 0:
            continue
        candidate = _extract_balanced(text[start:], open_char, close_char)
        if candidate:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                pass

    # Everything may have been inside the think block
    decoder = json.JSONDecoder()
    for i, char in enumerate(original):
        if char != "{":
            continue
        try:
            parsed, _ = decoder.raw_decode(original[i:])
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise JSONExtractionError(
        f"malformed response: no JSON found in model output ({len(text)} chars)",
        raw_output=original,
    )


def _extract_balanced(text: str, open_char: str, close_char: str) -> Optional[str]:
    """Return the bracket expression that balances text[0], or None."""
    if not text or text[0] != open_char:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[:i + 1]
    return None
