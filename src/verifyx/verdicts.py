"""
Verdict parsing for oracle responses
"""

import json
import logging
import math
import re
from typing import Any, Mapping, Optional

from .models import OracleVerdict

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 50

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_VERDICT_RE = re.compile(r"VERDICT:\s*\[?\s*(TRUE|FALSE)", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"CONFIDENCE:\s*\[?\s*(\d{1,3})", re.IGNORECASE)
_REASONING_RE = re.compile(r"REASONING:\s*(.+)", re.IGNORECASE | re.DOTALL)
_TRUE_WORDS_RE = re.compile(r"\b(true|correct|accurate|right|valid)\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"(\d{1,3})\s*%?")


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _coerce_confidence(value: Any) -> int:
    try:
        confidence = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(confidence):
        return DEFAULT_CONFIDENCE
    return max(0, min(100, int(confidence)))


def _truncate(text: str, max_chars: int) -> str:
    text = " ".join(text.split())
    return text[:max_chars]


def _from_mapping(data: Mapping[str, Any], max_chars: int) -> OracleVerdict:
    raw_verdict = data.get("verdict", data.get("isTrue", data.get("is_true")))
    reasoning = data.get("reasoning") or "No reasoning provided"
    return OracleVerdict(
        verdict=_coerce_bool(raw_verdict),
        confidence=_coerce_confidence(data.get("confidence")),
        reasoning=_truncate(str(reasoning), max_chars),
    )


def _from_json(text: str) -> Optional[Mapping[str, Any]]:
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    if isinstance(data, dict) and any(k in data for k in ("verdict", "isTrue", "is_true")):
        return data
    return None


def parse_verdict(raw: Any, max_chars: int = 200) -> OracleVerdict:
    """Turn an oracle response into a verdict.

    Accepts a structured mapping, a JSON object embedded in text (code
    fences are fine), ``VERDICT:/CONFIDENCE:/REASONING:`` lines, and as a
    last resort free text scanned for affirmative keywords and a number.
    """
    if isinstance(raw, Mapping):
        return _from_mapping(raw, max_chars)

    text = str(raw or "").strip()

    data = _from_json(text)
    if data is not None:
        return _from_mapping(data, max_chars)

    verdict_match = _VERDICT_RE.search(text)
    if verdict_match:
        confidence_match = _CONFIDENCE_RE.search(text)
        reasoning_match = _REASONING_RE.search(text)
        return OracleVerdict(
            verdict=verdict_match.group(1).upper() == "TRUE",
            confidence=_coerce_confidence(confidence_match.group(1) if confidence_match else None),
            reasoning=_truncate(reasoning_match.group(1) if reasoning_match else text, max_chars),
        )

    logger.warning(f"Unstructured oracle response, using keyword analysis: {text[:80]!r}")
    number_match = _NUMBER_RE.search(text)
    return OracleVerdict(
        verdict=bool(_TRUE_WORDS_RE.search(text)),
        confidence=_coerce_confidence(number_match.group(1) if number_match else None),
        reasoning=_truncate(text, max_chars) or "No reasoning provided",
    )
