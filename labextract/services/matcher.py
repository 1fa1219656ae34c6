from rapidfuzz.distance import Levenshtein

from labextract.config import settings
from labextract.schemas.biomarker import MatchResult, MatchType
from labextract.services.normalizer import normalize_name
from labextract.services.taxonomy import TAXONOMY, BiomarkerTaxonomy

NORMALIZED_MATCH_CONFIDENCE = 0.95


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute edit distance, case sensitive."""
    return Levenshtein.distance(a, b)


def _similarity(distance: int, max_length: int) -> float:
    if max_length == 0:
        return 1.0
    return 1 - distance / max_length


def _closest_by_distance(name_norm: str, taxonomy: BiomarkerTaxonomy, threshold: float) -> tuple[str | None, int]:
    best_name = None
    best_distance = -1
    for known_name, known_norm in taxonomy.normalized_names:
        distance = levenshtein_distance(name_norm, known_norm)
        if _similarity(distance, max(len(name_norm), len(known_norm))) < threshold:
            continue
        # Strict comparison keeps the earliest entry on distance ties.
        if best_name is None or distance < best_distance:
            best_name = known_name
            best_distance = distance
    return best_name, best_distance


def find_best_match(
    extracted_name: str,
    taxonomy: BiomarkerTaxonomy = TAXONOMY,
    threshold: float | None = None,
) -> MatchResult:
    if extracted_name in taxonomy:
        return MatchResult(matched_name=extracted_name, match_type=MatchType.EXACT, confidence=1.0)

    score_threshold = threshold if threshold is not None else settings.match_similarity_threshold
    name_norm = normalize_name(extracted_name)
    for known_name, known_norm in taxonomy.normalized_names:
        if known_norm == name_norm:
            return MatchResult(matched_name=known_name, match_type=MatchType.FUZZY, confidence=NORMALIZED_MATCH_CONFIDENCE)

    best_name, best_distance = _closest_by_distance(name_norm, taxonomy, score_threshold)
    if best_name is None:
        return MatchResult()

    max_length = max(len(name_norm), len(normalize_name(best_name)))
    return MatchResult(
        matched_name=best_name,
        match_type=MatchType.FUZZY,
        confidence=_similarity(best_distance, max_length),
    )


def match_many(names: list[str], taxonomy: BiomarkerTaxonomy = TAXONOMY) -> dict[str, MatchResult]:
    return {name: find_best_match(name, taxonomy) for name in names}
