from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BodySystem(str, Enum):
    BLOOD = "Blood"
    HEART = "Heart"
    HORMONES = "Hormones"
    IMMUNITY = "Immunity"
    KIDNEYS = "Kidneys"
    LIVER = "Liver"
    METABOLISM = "Metabolism"
    VITAMINS = "Vitamins"
    MINERALS = "Minerals"


class BiomarkerStatus(str, Enum):
    IN_RANGE = "in-range"
    BORDERLINE = "borderline"
    OUT_OF_RANGE = "out-of-range"
    UNKNOWN = "unknown"


class MatchType(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    NONE = "none"


class MatchResult(BaseModel):
    """Outcome of matching one extracted name against the taxonomy."""
    model_config = ConfigDict(frozen=True)

    matched_name: str | None = None
    match_type: MatchType = MatchType.NONE
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class RangeClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: BiomarkerStatus
    display_range: str


class ValidatedBiomarker(BaseModel):
    """An extracted entry that passed the validation gate."""
    name: str
    value: float
    unit: str
    reference_min: float | None = None
    reference_max: float | None = None
    matched_name: str | None = Field(default=None, description="Canonical name when matched fuzzily")
    match: MatchResult = Field(default_factory=MatchResult)


class ClassifiedBiomarker(BaseModel):
    """One persisted reading of a ResultSet.

    Serialized with the camelCase/legacy keys the stored ``results`` JSON uses.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, allow_inf_nan=False)

    value: float
    unit: str
    reference_min: float | None = Field(default=None, alias="referenceMin")
    reference_max: float | None = Field(default=None, alias="referenceMax")
    display_range: str = Field(alias="reference_range")
    status: BiomarkerStatus
    body_system: BodySystem = Field(alias="system")
    explanation: str = ""
