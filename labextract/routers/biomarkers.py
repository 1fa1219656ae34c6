from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from labextract.database import get_db
from labextract.models.test_result import TestResultRecord
from labextract.schemas.test_result import RecordStatus
from labextract.services.matcher import match_many
from labextract.services.taxonomy import TAXONOMY
from labextract.services.trends import biomarker_history

router = APIRouter(prefix="/api/biomarkers", tags=["biomarkers"])


@router.get("")
def list_taxonomy():
    groups = TAXONOMY.grouped()
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "total": len(TAXONOMY),
            "systems": [{"system": system.value, "biomarkers": names} for system, names in groups.items()],
        },
    }


@router.get("/match")
def match_names(name: list[str] = Query(...)):
    matches = match_many(name)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "matches": [
                {
                    "name": extracted,
                    "matched_name": match.matched_name,
                    "match_type": match.match_type.value,
                    "confidence": match.confidence,
                    "system": TAXONOMY.body_system_for(match.matched_name or extracted).value,
                }
                for extracted, match in matches.items()
            ]
        },
    }


@router.get("/history")
def history(user_id: str = Query(..., min_length=1), name: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    records = (
        db.query(TestResultRecord)
        .filter(TestResultRecord.user_id == user_id, TestResultRecord.status == RecordStatus.COMPLETED.value)
        .all()
    )
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {"name": name, "points": biomarker_history(records, name)},
    }
