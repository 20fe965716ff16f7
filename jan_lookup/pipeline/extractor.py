# jan_lookup/pipeline/extractor.py
import json
import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence

import json5

from ..models import ExtractionError, FailureReason, ProductRecord, PromptMode, PromptText, UNKNOWN_NAME
from .markers import MarkerProtocol, normalize_markers

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 500

_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
_HOST_ESCAPES = {"n": "\n", "t": "\t", "r": "", '"': '"', "\\": "\\"}
_SIMPLE_ESCAPE = re.compile(r'\\([nrt"\\])')


def decode_host_text(raw: Optional[str]) -> str:
    """
    Undoes the string-escaping layer some hosts put around script results.

    A result that is itself a JSON string literal is decoded as such. Otherwise
    literal \\n, \\", \\\\ and \\uXXXX sequences are collapsed into real characters.
    """
    if not raw:
        return ""
    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        try:
            decoded = json.loads(raw)
            if isinstance(decoded, str):
                return decoded
        except ValueError:
            logger.debug("Host text looked like a JSON string literal but did not decode, unescaping manually.")
            raw = raw[1:-1]
    text = _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), raw)
    return _SIMPLE_ESCAPE.sub(lambda m: _HOST_ESCAPES[m.group(1)], text)


def candidate_region(text: str, prompt: PromptText, trailing_window: int) -> str:
    """
    Narrows the page text down to the AI's own answer.

    Skips past the sentinels contributed by the echoed prompt, then ends the
    region at the next sentinel (the AI's own) or, failing that, at a bare
    sentinel opening bracket. Without either boundary only the tail of the page is used.
    """
    protocol = MarkerProtocol(sentinel=prompt.sentinel)
    position = 0
    for _ in range(prompt.sentinel_count):
        found = text.find(protocol.sentinel, position)
        if found == -1:
            logger.debug("Prompt echo not found in page text, falling back to the trailing window.")
            return text[-trailing_window:]
        position = found + len(protocol.sentinel)

    remainder = text[position:]
    boundary = remainder.find(protocol.sentinel)
    if boundary == -1:
        boundary = remainder.find(protocol.sentinel_open)
    if boundary == -1:
        logger.debug("No response boundary found, falling back to the trailing %d characters.", trailing_window)
        return text[-trailing_window:]
    return remainder[:boundary]


def locate_payload(region: str, prompt: PromptText) -> str:
    """Returns the text strictly between the last start marker and the first end marker after it."""
    protocol = MarkerProtocol(sentinel=prompt.sentinel)
    start_index = region.rfind(protocol.start)
    if start_index == -1:
        raise ExtractionError(FailureReason.MARKER_NOT_FOUND, excerpt=region[-EXCERPT_LENGTH:])
    start_index += len(protocol.start)

    end_index = region.find(protocol.end, start_index)
    if end_index == -1:
        logger.debug("Start marker found without an end marker, taking the rest of the region.")
        end_index = len(region)

    payload = protocol.strip_sentinel_fragments(region[start_index:end_index]).strip()
    if not payload:
        raise ExtractionError(FailureReason.PAYLOAD_EMPTY, excerpt=region[-EXCERPT_LENGTH:])
    return payload


def parse_payload(payload: str, mode: PromptMode) -> List[Any]:
    """Parses the payload leniently (trailing commas, comments) and always returns a list of items."""
    try:
        parsed = json5.loads(payload)
    except ValueError as e:
        logger.error("Failed to parse payload: %s", e)
        raise ExtractionError(FailureReason.PARSE_ERROR, detail=str(e), excerpt=payload[:EXCERPT_LENGTH])

    if isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed, list):
        if mode is PromptMode.SINGLE and len(parsed) != 1:
            logger.warning("Single-object prompt answered with an array of %d items.", len(parsed))
        return parsed
    raise ExtractionError(
        FailureReason.PARSE_ERROR,
        detail=f"expected a JSON object or array, got {type(parsed).__name__}",
        excerpt=payload[:EXCERPT_LENGTH],
    )


_NUMBER_TOKEN = re.compile(r"\d[\d,]*(?:\.\d+)?")


def _as_number(value: Any) -> Optional[float]:
    """First finite number in value. Strings like "128円" or "98-128" give their first number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _NUMBER_TOKEN.search(value)
        if not match:
            return None
        value = match.group(0).replace(",", "")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # json5 accepts Infinity and NaN, and 1e400 overflows to inf
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    number = _as_number(value)
    return None if number is None else int(round(number))


def _cm_to_mm(value: Any) -> Optional[int]:
    cm = _as_number(value)
    if cm is None or not math.isfinite(cm * 10):
        return None
    return int(round(cm * 10))


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def record_from_item(item: Dict[str, Any], code: str) -> ProductRecord:
    """Maps one parsed JSON object to a ProductRecord. Unusable fields become None."""
    return ProductRecord(
        code=code,
        name=_as_text(item.get("name")) or UNKNOWN_NAME,
        maker=_as_text(item.get("maker")),
        category=_as_text(item.get("category")),
        min_price=_as_int(item.get("min_price")),
        max_price=_as_int(item.get("max_price")),
        width_mm=_cm_to_mm(item.get("width_cm")),
        height_mm=_cm_to_mm(item.get("height_cm")),
        depth_mm=_cm_to_mm(item.get("depth_cm")),
    )


def reconcile(items: Sequence[Any], codes: Sequence[str]) -> Dict[str, ProductRecord]:
    """
    Pairs parsed items with the requested codes: by "jan" first, then by
    position for items without one. Items for codes we never asked about are
    dropped. Codes without a usable item are simply absent from the result.
    """
    by_code: Dict[str, ProductRecord] = {}
    requested = set(codes)
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("Skipping malformed item at position %d: %r", position, item)
            continue
        jan = _as_text(item.get("jan"))
        if jan is None and position < len(codes):
            jan = codes[position]
        if jan not in requested:
            logger.warning("Ignoring item for unrequested code %s", jan)
            continue
        if jan in by_code:
            logger.debug("Duplicate item for %s, keeping the first one.", jan)
            continue
        by_code[jan] = record_from_item(item, jan)
    return by_code


def extract_records(page_text: str, prompt: PromptText, trailing_window: int) -> Dict[str, ProductRecord]:
    """Full extraction pipeline: decode, normalize, narrow, locate, parse, reconcile."""
    text = normalize_markers(decode_host_text(page_text))
    region = candidate_region(text, prompt, trailing_window)
    payload = locate_payload(region, prompt)
    logger.debug("Extracted payload (first 300 chars): %s", payload[:300])
    items = parse_payload(payload, prompt.mode)
    records = reconcile(items, prompt.codes)
    logger.info("Parsed %d item(s), %d matched the %d requested code(s).", len(items), len(records), len(prompt.codes))
    return records
