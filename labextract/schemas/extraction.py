from typing import Any

from pydantic import BaseModel, Field


class ExtractionPayload(BaseModel):
    """Canonical object form of an extraction response.

    Bare-array responses are folded into this shape with no lab/date metadata
    before anything downstream sees them.
    """
    lab_name: str | None = None
    test_date: str | None = None
    biomarkers: list[Any] = Field(default_factory=list, description="Raw, unvalidated biomarker entries")
