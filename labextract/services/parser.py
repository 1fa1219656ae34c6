import json
import re
from typing import Any

from labextract.schemas.extraction import ExtractionPayload
from labextract.services.errors import NoBiomarkersFailure, ParseFailure

_OPENING_FENCE = re.compile(r"```json\n?")
_CLOSING_FENCE = re.compile(r"\n?```")


def strip_code_fence(raw_text: str) -> str:
    text = _OPENING_FENCE.sub("", raw_text)
    text = _CLOSING_FENCE.sub("", text)
    return text.strip()


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def normalize_payload(parsed: Any) -> ExtractionPayload:
    """Fold the two accepted response shapes into ``ExtractionPayload``.

    A bare array is treated as the biomarker list with no lab/date metadata.
    Anything without a ``biomarkers`` array is rejected.
    """
    if isinstance(parsed, list):
        return ExtractionPayload(lab_name=None, test_date=None, biomarkers=parsed)
    if isinstance(parsed, dict) and isinstance(parsed.get("biomarkers"), list):
        return ExtractionPayload(
            lab_name=_optional_str(parsed.get("lab_name")),
            test_date=_optional_str(parsed.get("test_date")),
            biomarkers=parsed["biomarkers"],
        )
    raise NoBiomarkersFailure("No biomarkers extracted")


def parse_extraction_response(raw_text: str) -> ExtractionPayload:
    try:
        parsed = json.loads(strip_code_fence(raw_text))
    except json.JSONDecodeError as exc:
        raise ParseFailure("Failed to parse AI response", detail=str(exc)) from exc
    return normalize_payload(parsed)
