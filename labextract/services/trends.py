from labextract.models.test_result import TestResultRecord
from labextract.services.matcher import find_best_match
from labextract.services.normalizer import normalize_name
from labextract.services.taxonomy import TAXONOMY, BiomarkerTaxonomy


def compute_delta(prev: float | None, curr: float | None) -> float | None:
    if prev is None or curr is None or prev == 0:
        return None
    return ((curr - prev) / abs(prev)) * 100.0


def _comparison_key(name: str, taxonomy: BiomarkerTaxonomy) -> str:
    # Readings of the same canonical biomarker compare across reports even when labs spell it differently.
    match = find_best_match(name, taxonomy)
    return match.matched_name or normalize_name(name)


def biomarker_history(
    records: list[TestResultRecord],
    name: str,
    taxonomy: BiomarkerTaxonomy = TAXONOMY,
) -> list[dict]:
    """Readings of one biomarker across completed records, oldest first."""
    wanted = _comparison_key(name, taxonomy)
    ordered = sorted(records, key=lambda record: (record.test_date, record.created_at))

    points: list[dict] = []
    previous_value = None
    for record in ordered:
        for extracted_name, reading in (record.results or {}).items():
            if _comparison_key(extracted_name, taxonomy) != wanted:
                continue
            value = reading.get("value")
            points.append(
                {
                    "test_result_id": record.id,
                    "test_date": record.test_date.isoformat(),
                    "name": extracted_name,
                    "value": value,
                    "unit": reading.get("unit"),
                    "reference_range": reading.get("reference_range"),
                    "status": reading.get("status"),
                    "delta_percent": compute_delta(previous_value, value),
                }
            )
            previous_value = value
            break
    return points
