# jan_lookup/pipeline/markers.py
"""
Delimiters the harness looks for in the page text.

The AI is asked to wrap its JSON between a start and an end marker and to
finish with a per-session sentinel token. The page usually re-displays the
prompt, so every marker shows up at least once before the AI writes a single
character; counts are always compared against what the prompt itself contains.
"""
import re
import uuid
from dataclasses import dataclass

from .. import config

_ESCAPED_LT = re.compile(r"&(?:lt|#60|#x3c);", re.IGNORECASE)
_ESCAPED_GT = re.compile(r"&(?:gt|#62|#x3e);", re.IGNORECASE)


def new_sentinel() -> str:
    """A token that practically never appears in natural AI output."""
    return f"{config.SENTINEL_PREFIX}{uuid.uuid4().hex[:8]}{config.SENTINEL_SUFFIX}"


@dataclass(frozen=True)
class MarkerProtocol:
    sentinel: str
    start: str = config.DATA_START_MARKER
    end: str = config.DATA_END_MARKER
    sentinel_open: str = config.SENTINEL_PREFIX

    @classmethod
    def create(cls) -> "MarkerProtocol":
        return cls(sentinel=new_sentinel())

    def count_sentinels(self, text: str) -> int:
        return text.count(self.sentinel)

    def count_end_markers(self, text: str) -> int:
        return text.count(self.end)

    def strip_sentinel_fragments(self, text: str) -> str:
        """Removes whole sentinels and any dangling sentinel prefix/suffix left in a payload."""
        text = text.replace(self.sentinel, "")
        text = re.sub(re.escape(self.sentinel_open) + r"[0-9a-fA-F]*(?:" + re.escape(config.SENTINEL_SUFFIX) + ")?", "", text)
        return text


def normalize_markers(text: str) -> str:
    """Turns HTML-escaped angle brackets back into real ones so <DATA_START> is findable."""
    return _ESCAPED_GT.sub(">", _ESCAPED_LT.sub("<", text))
