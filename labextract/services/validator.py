import logging
from collections.abc import Iterable
from typing import Any

from labextract.schemas.biomarker import MatchType, ValidatedBiomarker
from labextract.services.matcher import find_best_match
from labextract.services.ranges import is_finite_number
from labextract.services.taxonomy import TAXONOMY, BiomarkerTaxonomy

logger = logging.getLogger(__name__)


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def is_acceptable_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    if not _non_empty_string(entry.get("name")):
        return False
    if not is_finite_number(entry.get("value")):
        return False
    if not _non_empty_string(entry.get("unit")):
        return False
    return is_finite_number(entry.get("referenceMin")) or is_finite_number(entry.get("referenceMax"))


def _finite_or_none(value: Any) -> float | None:
    return float(value) if is_finite_number(value) else None


def validate_batch(entries: Iterable[Any], taxonomy: BiomarkerTaxonomy = TAXONOMY) -> list[ValidatedBiomarker]:
    """Keep the raw entries that are safe to classify, in their original order.

    Rejected entries are dropped without individual reporting; only the
    count is logged.
    """
    accepted: list[ValidatedBiomarker] = []
    rejected = 0
    for entry in entries:
        if not is_acceptable_entry(entry):
            rejected += 1
            continue
        match = find_best_match(entry["name"], taxonomy)
        accepted.append(
            ValidatedBiomarker(
                name=entry["name"],
                value=float(entry["value"]),
                unit=entry["unit"],
                reference_min=_finite_or_none(entry.get("referenceMin")),
                reference_max=_finite_or_none(entry.get("referenceMax")),
                matched_name=match.matched_name if match.match_type == MatchType.FUZZY else None,
                match=match,
            )
        )
    if rejected:
        logger.info("Dropped %d of %d extracted biomarker entries", rejected, rejected + len(accepted))
    return accepted
