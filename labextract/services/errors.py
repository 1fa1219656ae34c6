from enum import Enum


class PipelineErrorCode(str, Enum):
    UPLOAD_FAILURE = "UploadFailure"
    EXTRACTION_CALL_FAILURE = "ExtractionCallFailure"
    PARSE_FAILURE = "ParseFailure"
    NO_BIOMARKERS = "NoBiomarkersFailure"
    EMPTY_VALIDATED_SET = "EmptyValidatedSetFailure"
    UNKNOWN = "UnknownFailure"


class PipelineError(Exception):
    """Base class for failures of a report analysis run.

    ``job_id`` and ``record_id`` are bound by the orchestrator once known.
    """
    code = PipelineErrorCode.UNKNOWN
    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        upstream_status: int | None = None,
        job_id: str | None = None,
        record_id: str | None = None,
    ):
        self.message = message
        self.detail = detail
        self.upstream_status = upstream_status
        self.job_id = job_id
        self.record_id = record_id
        super().__init__(f"{self.code.value}: {message}")

    def to_details(self) -> dict:
        return {
            "job_id": self.job_id,
            "test_result_id": self.record_id,
            "detail": self.detail,
            "upstream_status": self.upstream_status,
        }


class UploadFailure(PipelineError):
    code = PipelineErrorCode.UPLOAD_FAILURE


class ExtractionCallFailure(PipelineError):
    code = PipelineErrorCode.EXTRACTION_CALL_FAILURE
    http_status = 502


class ParseFailure(PipelineError):
    code = PipelineErrorCode.PARSE_FAILURE


class NoBiomarkersFailure(PipelineError):
    code = PipelineErrorCode.NO_BIOMARKERS


class EmptyValidatedSetFailure(PipelineError):
    code = PipelineErrorCode.EMPTY_VALIDATED_SET


class UnknownFailure(PipelineError):
    code = PipelineErrorCode.UNKNOWN
