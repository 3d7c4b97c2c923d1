"""
TapMedia Backend — OCR Text and Tag Extraction
===============================================

What:  Turns Cloudinary OCR output into a short list of searchable name tags.
How:   A fixed chain of regex clean-ups and filters over a comma-separated
       name list. Each step removes one kind of layout noise.
Who:   Called by UploadService after an image upload with adv_ocr enabled.

Input shape:
    OCR of scanned group photos and rosters comes back as comma-separated
    names interleaved with artifacts:

        "Σ John Smith (captain), Front Row: Jane Doe, Sigma, A, Bob"

    becomes

        ["John Smith", "Jane Doe", "Bob"]
"""

import json
import logging
import re
from typing import Any, List, Mapping

logger = logging.getLogger(__name__)

# Maximum number of tags derived from one OCR pass
MAX_OCR_TAGS = 30

# Structural words that appear on rosters but are never names
STOPLIST = frozenset(
    {"sigma", "back", "row", "front", "second", "third", "middle", "side", "group"}
)

# ── Normalisation patterns (applied in order) ─────────────────────────────
_NORMALISERS = (
    (re.compile(r"[Σσ]"), ""),
    (re.compile(r"[\r\n]+"), " "),
    (re.compile(r"\\n"), " "),
    (re.compile(r"ocr_"), ""),
    (re.compile(r"\\t"), " "),
    (re.compile(r"\s+"), " "),
)

_PARENTHESISED = re.compile(r"\s*\(.*\)\s*")
_ROW_LABEL = re.compile(r"^(Front|Second|Third|Middle)\s+Row:\s*", re.IGNORECASE)
_TRAILING_NOISE = re.compile(r"[^a-zA-Z\s\-.']+$")
_HAS_LETTER = re.compile(r"[a-zA-Z]")


def normalise_text(raw_text: str) -> str:
    """Strip vendor artifacts and collapse whitespace into single spaces."""
    text = raw_text
    for pattern, replacement in _NORMALISERS:
        text = pattern.sub(replacement, text)
    return text.strip()


def _clean_segment(segment: str) -> str:
    cleaned = segment.strip()
    cleaned = _PARENTHESISED.sub("", cleaned).strip()
    cleaned = _ROW_LABEL.sub("", cleaned).strip()
    cleaned = _TRAILING_NOISE.sub("", cleaned).strip()
    return cleaned


def _is_candidate(item: str) -> bool:
    if len(item) < 2:
        return False
    if not _HAS_LETTER.search(item):
        return False
    if item.lower() in STOPLIST:
        return False
    # Single short tokens are noise; two-word names of any length survive
    if " " not in item and len(item) < 3:
        return False
    return True


def extract_tags(raw_text: str) -> List[str]:
    """
    Extract deduplicated, name-like tags from raw OCR text.

    Pure function: the same input always yields the same list, and it never
    raises. Empty or all-noise input yields an empty list.

    Args:
        raw_text: Text recognised by the upstream OCR engine.

    Returns:
        At most MAX_OCR_TAGS tags, in first-seen order, deduplicated
        case-insensitively (the first occurrence's casing wins).
    """
    if not raw_text:
        return []

    segments = normalise_text(raw_text).split(",")
    candidates = [c for c in (_clean_segment(s) for s in segments) if _is_candidate(c)]
    candidates = candidates[:MAX_OCR_TAGS]

    seen = set()
    tags = []
    for candidate in candidates:
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        tags.append(candidate)
    return tags


def extract_ocr_text(upload_result: Mapping[str, Any]) -> str:
    """
    Pull recognised text out of a Cloudinary upload response.

    Supported shapes of ``info.ocr``:
        - ``{"adv_ocr": {"data": [{"textAnnotations": [{"description": ...}]}]}}``
        - ``{"data": [{"text": ...}, ...]}``

    Anything else is returned verbatim (strings) or JSON-encoded, so the tag
    extractor still gets a chance at it. Malformed entries inside a known
    shape are skipped. Never raises.

    Returns:
        Text blocks joined by spaces, or "" when the response carries no OCR.
    """
    info = upload_result.get("info") or {}
    ocr_data = info.get("ocr") if isinstance(info, Mapping) else None
    if not ocr_data:
        logger.debug("No OCR data in upload response")
        return ""

    if isinstance(ocr_data, Mapping):
        adv = ocr_data.get("adv_ocr")
        if isinstance(adv, Mapping) and isinstance(adv.get("data"), list):
            text = " ".join(_adv_ocr_blocks(adv["data"]))
            logger.debug("Extracted %d chars from adv_ocr data", len(text))
            return text

        if isinstance(ocr_data.get("data"), list):
            text = " ".join(
                block["text"]
                for block in ocr_data["data"]
                if isinstance(block, Mapping) and _is_text(block.get("text"))
            )
            logger.debug("Extracted %d chars from OCR blocks", len(text))
            return text

    if isinstance(ocr_data, str):
        return ocr_data
    return json.dumps(ocr_data, default=str)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _adv_ocr_blocks(data: List[Any]) -> List[str]:
    """First (full-text) annotation of each block; malformed blocks are skipped."""
    blocks = []
    for block in data:
        annotations = block.get("textAnnotations") if isinstance(block, Mapping) else None
        if not isinstance(annotations, list) or not annotations:
            continue
        first = annotations[0]
        if not isinstance(first, Mapping):
            logger.debug("Skipping OCR block with %s annotation", type(first).__name__)
            continue
        description = first.get("description")
        if _is_text(description):
            blocks.append(description)
    return blocks
