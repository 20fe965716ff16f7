# jan_lookup/utils/codes.py
import logging
import re
from pathlib import Path
from typing import Iterable, List

from .. import config

logger = logging.getLogger(__name__)


def is_valid_code(code: str) -> bool:
    return len(code) >= config.MIN_CODE_LENGTH and code.isdigit()


def normalize_codes(codes: Iterable[str]) -> List[str]:
    """Strips, validates and de-duplicates codes, keeping first-seen order."""
    seen = set()
    result = []
    for raw in codes:
        code = str(raw).strip()
        if not is_valid_code(code):
            logger.warning("Skipping invalid product code: %r", raw)
            continue
        if code in seen:
            continue
        seen.add(code)
        result.append(code)
    return result


def chunk_codes(codes: List[str], size: int) -> List[List[str]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [codes[i:i + size] for i in range(0, len(codes), size)]


def parse_codes_text(text: str) -> List[str]:
    """Codes separated by commas and/or newlines. Lines starting with '#' are comments."""
    codes = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        codes.extend(part.strip() for part in re.split(r"[,\s]+", line) if part.strip())
    return [code for code in codes if is_valid_code(code)]


def read_codes_file(path: Path) -> List[str]:
    with path.open("r", encoding="utf-8") as f:
        codes = parse_codes_text(f.read())
    logger.info("Loaded %d code(s) from %s", len(codes), path.name)
    return codes
