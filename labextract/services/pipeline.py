import logging
from datetime import date, datetime
from typing import Protocol
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labextract.config import settings
from labextract.models.test_result import TestResultRecord
from labextract.schemas.biomarker import ClassifiedBiomarker, ValidatedBiomarker
from labextract.schemas.test_result import AnalysisResult, RecordStatus, Submission
from labextract.services.errors import EmptyValidatedSetFailure, PipelineError, UnknownFailure
from labextract.services.parser import parse_extraction_response
from labextract.services.ranges import classify
from labextract.services.storage import build_object_path
from labextract.services.taxonomy import TAXONOMY, BiomarkerTaxonomy
from labextract.services.validator import validate_batch

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    def upload(self, object_path: str, data: bytes, content_type: str) -> str: ...


class Extractor(Protocol):
    def extract(self, file_bytes: bytes, mime_type: str) -> str: ...


def safe_date(value: str | None) -> date | None:
    if not value:
        return None
    for fmt in ("%Y-%m-%d", "%d.%m.%Y", "%m/%d/%Y", "%m/%d/%y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def build_result_set(
    biomarkers: list[ValidatedBiomarker],
    taxonomy: BiomarkerTaxonomy = TAXONOMY,
) -> dict[str, ClassifiedBiomarker]:
    """Classify validated entries, keyed by the name as it was extracted.

    The matched canonical name is only used to look up the body system.
    """
    results: dict[str, ClassifiedBiomarker] = {}
    for item in biomarkers:
        classification = classify(item.value, item.reference_min, item.reference_max)
        results[item.name] = ClassifiedBiomarker(
            value=item.value,
            unit=item.unit,
            reference_min=item.reference_min,
            reference_max=item.reference_max,
            display_range=classification.display_range,
            status=classification.status,
            body_system=taxonomy.body_system_for(item.matched_name or item.name),
            explanation="",
        )
    return results


def _create_record(db: Session, submission: Submission, file_path: str) -> TestResultRecord:
    record = TestResultRecord(
        user_id=submission.user_id,
        test_date=submission.test_date or date.today(),
        file_path=file_path,
        lab_name=settings.default_lab_name,
        status=RecordStatus.PROCESSING.value,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def _mark_failed(db: Session, record_id: str, job_id: str) -> None:
    try:
        db.rollback()
        record = db.get(TestResultRecord, record_id)
        if record is None:
            return
        record.status = RecordStatus.FAILED.value
        record.updated_at = datetime.utcnow()
        db.commit()
    except SQLAlchemyError:
        logger.exception("[%s] Could not mark test result %s as failed", job_id, record_id)


def _run_after_record(
    db: Session,
    record: TestResultRecord,
    submission: Submission,
    extractor: Extractor,
    taxonomy: BiomarkerTaxonomy,
    job_id: str,
) -> int:
    raw_text = extractor.extract(submission.file_bytes, submission.mime_type)
    payload = parse_extraction_response(raw_text)
    logger.info("[%s] Extraction returned %d biomarker entries", job_id, len(payload.biomarkers))

    validated = validate_batch(payload.biomarkers, taxonomy)
    if not validated:
        raise EmptyValidatedSetFailure("No valid biomarkers extracted")

    results = build_result_set(validated, taxonomy)
    record.results = {name: item.model_dump(by_alias=True) for name, item in results.items()}
    record.status = RecordStatus.COMPLETED.value
    record.lab_name = settings.default_lab_name
    record.test_date = submission.test_date or safe_date(payload.test_date) or record.test_date
    record.updated_at = datetime.utcnow()
    db.commit()
    return len(results)


def analyze_test_report(
    db: Session,
    submission: Submission,
    storage: ObjectStorage,
    extractor: Extractor,
    taxonomy: BiomarkerTaxonomy = TAXONOMY,
    job_id: str | None = None,
) -> AnalysisResult:
    """Run one submission from upload through to a completed test result.

    Every failure surfaces as a ``PipelineError`` tagged with the job id; once a
    record exists it is moved to ``failed`` before the error propagates.
    """
    job_id = job_id or str(uuid4())
    logger.info("[%s] Analyzing %s (%s) for user %s", job_id, submission.file_name, submission.mime_type, submission.user_id)

    record_id = None
    try:
        file_path = storage.upload(
            build_object_path(submission.user_id, submission.file_name),
            submission.file_bytes,
            submission.mime_type,
        )
        record = _create_record(db, submission, file_path)
        record_id = record.id
        logger.info("[%s] Created test result %s", job_id, record_id)
        biomarker_count = _run_after_record(db, record, submission, extractor, taxonomy, job_id)
    except PipelineError as exc:
        exc.job_id = job_id
        exc.record_id = record_id
        if record_id is not None:
            _mark_failed(db, record_id, job_id)
        logger.warning("[%s] %s: %s (%s)", job_id, exc.code.value, exc.message, exc.detail)
        raise
    except Exception as exc:
        logger.exception("[%s] Unexpected pipeline error", job_id)
        if record_id is not None:
            _mark_failed(db, record_id, job_id)
        raise UnknownFailure(str(exc) or "Unknown error occurred", job_id=job_id, record_id=record_id) from exc

    logger.info("[%s] Completed test result %s with %d biomarkers", job_id, record_id, biomarker_count)
    return AnalysisResult(job_id=job_id, result_record_id=record_id, biomarker_count=biomarker_count)
