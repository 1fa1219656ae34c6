import base64
from datetime import date, datetime

import pytest
from fakes import extraction_json

from labextract.models.test_result import TestResultRecord
from labextract.services.errors import ExtractionCallFailure
from labextract.services.taxonomy import TAXONOMY

READINGS = [
    {"name": "Hämoglobin (Hb)", "value": 13.5, "unit": "g/dl", "referenceMin": 12, "referenceMax": 16},
    {"name": "Kreatinine", "value": 0.9, "unit": "mg/dl", "referenceMin": 0.7, "referenceMax": 1.2},
    {"name": "Notes", "value": "see page 2", "unit": "", "referenceMin": None},
]


def _analyze(client, user_id="user-1", **overrides):
    body = {
        "file_base64": base64.b64encode(b"%PDF-1.4 mock").decode(),
        "file_name": "sample.pdf",
        "mime_type": "application/pdf",
        "user_id": user_id,
    }
    body.update(overrides)
    return client.post("/api/test-results/analyze", json=body)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_analyze_and_fetch_test_result(client, fake_extractor):
    fake_extractor.response_text = extraction_json(READINGS)

    response = _analyze(client, test_date="2025-02-01")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["success"] is True
    assert data["biomarker_count"] == 2
    assert data["job_id"]

    detail = client.get(f"/api/test-results/{data['test_result_id']}").json()["data"]
    assert detail["status"] == "completed"
    assert detail["approval_status"] == "pending"
    assert detail["test_date"] == "2025-02-01"
    assert list(detail["results"]) == ["Hämoglobin (Hb)", "Kreatinine"]
    assert detail["results"]["Kreatinine"]["system"] == "Kidneys"


def test_invalid_base64_is_rejected(client, fake_extractor):
    response = _analyze(client, file_base64="***not base64***")
    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "BadRequest"
    assert fake_extractor.calls == []


def test_missing_fields_use_validation_envelope(client):
    response = client.post("/api/test-results/analyze", json={"file_name": "sample.pdf"})
    assert response.status_code == 422
    payload = response.json()
    assert payload["error"] == "ValidationError"
    assert payload["details"]["errors"]


def test_pipeline_failure_envelope_carries_job_and_record(client, fake_extractor):
    fake_extractor.response_text = "not json"

    response = _analyze(client)
    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "ParseFailure"
    assert payload["message"] == "Failed to parse AI response"
    assert payload["details"]["job_id"]

    record_id = payload["details"]["test_result_id"]
    detail = client.get(f"/api/test-results/{record_id}").json()["data"]
    assert detail["status"] == "failed"


def test_empty_validated_set_is_reported(client, fake_extractor):
    fake_extractor.response_text = extraction_json([READINGS[2]])

    payload = _analyze(client).json()
    assert payload["error"] == "EmptyValidatedSetFailure"
    assert payload["message"] == "No valid biomarkers extracted"


def test_extraction_failure_is_a_bad_gateway(client, fake_extractor):
    fake_extractor.error = ExtractionCallFailure("AI extraction failed", detail="Rate limit exceeded", upstream_status=429)

    response = _analyze(client)
    assert response.status_code == 502
    payload = response.json()
    assert payload["error"] == "ExtractionCallFailure"
    assert payload["details"]["detail"] == "Rate limit exceeded"
    assert payload["details"]["upstream_status"] == 429


def test_list_filters_by_status_and_user(client, fake_extractor):
    fake_extractor.response_text = extraction_json(READINGS)
    _analyze(client, user_id="user-1")
    fake_extractor.response_text = "not json"
    _analyze(client, user_id="user-2")

    failed = client.get("/api/test-results", params={"status": "failed"}).json()["data"]
    assert failed["total"] == 1
    assert failed["test_results"][0]["user_id"] == "user-2"
    assert "results" not in failed["test_results"][0]

    mine = client.get("/api/test-results", params={"user_id": "user-1"}).json()["data"]
    assert [item["status"] for item in mine["test_results"]] == ["completed"]


def test_results_edit_replaces_the_whole_set(client, fake_extractor):
    fake_extractor.response_text = extraction_json(READINGS)
    record_id = _analyze(client).json()["data"]["test_result_id"]

    edited = {
        "Hämoglobin (Hb)": {
            "value": 14.0,
            "unit": "g/dl",
            "referenceMin": 12,
            "referenceMax": 16,
            "reference_range": "12-16",
            "status": "in-range",
            "system": "Blood",
            "explanation": "Within the normal range.",
        }
    }
    response = client.patch(f"/api/test-results/{record_id}/results", json={"results": edited})
    assert response.status_code == 200
    results = response.json()["data"]["results"]
    assert list(results) == ["Hämoglobin (Hb)"]
    assert results["Hämoglobin (Hb)"]["value"] == 14.0
    assert results["Hämoglobin (Hb)"]["explanation"] == "Within the normal range."


def test_results_edit_rejects_unknown_status(client, fake_extractor):
    fake_extractor.response_text = extraction_json(READINGS)
    record_id = _analyze(client).json()["data"]["test_result_id"]

    bad = {"X": {"value": 1, "unit": "u", "reference_range": "N/A", "status": "fine", "system": "Blood"}}
    response = client.patch(f"/api/test-results/{record_id}/results", json={"results": bad})
    assert response.status_code == 422


def test_approve_only_completed_results(client, fake_extractor):
    fake_extractor.response_text = extraction_json(READINGS)
    completed_id = _analyze(client).json()["data"]["test_result_id"]
    fake_extractor.response_text = "not json"
    failed_id = _analyze(client, user_id="user-2").json()["details"]["test_result_id"]

    approved = client.post(f"/api/test-results/{completed_id}/approve")
    assert approved.status_code == 200
    assert approved.json()["data"]["approval_status"] == "approved"

    rejected = client.post(f"/api/test-results/{failed_id}/approve")
    assert rejected.status_code == 400

    listed = client.get("/api/test-results", params={"approval_status": "approved"}).json()["data"]
    assert [item["id"] for item in listed["test_results"]] == [completed_id]


def test_delete_removes_record_and_file(client, fake_extractor, storage):
    fake_extractor.response_text = extraction_json(READINGS)
    record_id = _analyze(client).json()["data"]["test_result_id"]
    file_path = client.get(f"/api/test-results/{record_id}").json()["data"]["file_path"]
    assert storage.resolve(file_path).exists()

    response = client.delete(f"/api/test-results/{record_id}")
    assert response.status_code == 200
    assert not storage.resolve(file_path).exists()

    missing = client.get(f"/api/test-results/{record_id}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "NotFound"


def test_taxonomy_listing(client):
    data = client.get("/api/biomarkers").json()["data"]
    assert data["total"] == len(TAXONOMY)
    systems = {group["system"]: group["biomarkers"] for group in data["systems"]}
    assert list(systems) == ["Blood", "Heart", "Hormones", "Immunity", "Kidneys", "Liver", "Metabolism", "Vitamins", "Minerals"]
    assert systems["Blood"][:2] == ["Erythrozyten", "Hämoglobin (Hb)"]


def test_match_endpoint(client):
    response = client.get("/api/biomarkers/match", params=[("name", "TSH"), ("name", "Kreatinine"), ("name", "hb")])
    matches = {item["name"]: item for item in response.json()["data"]["matches"]}
    assert matches["TSH"]["match_type"] == "exact"
    assert matches["Kreatinine"]["matched_name"] == "Kreatinin"
    assert matches["Kreatinine"]["system"] == "Kidneys"
    assert matches["hb"]["match_type"] == "none"
    assert matches["hb"]["system"] == "Metabolism"


def test_history_compares_spellings_of_the_same_biomarker(client, db_session):
    def reading(value):
        return {"value": value, "unit": "mg/dl", "reference_range": "0.7-1.2", "status": "in-range", "system": "Kidneys"}

    db_session.add_all(
        [
            TestResultRecord(
                user_id="user-1",
                test_date=date(2025, 2, 1),
                file_path="user-1/2.pdf",
                status="completed",
                results={"Kreatinine": reading(1.0)},
                created_at=datetime(2025, 2, 1),
            ),
            TestResultRecord(
                user_id="user-1",
                test_date=date(2025, 1, 1),
                file_path="user-1/1.pdf",
                status="completed",
                results={"Kreatinin": reading(0.8)},
                created_at=datetime(2025, 1, 1),
            ),
            TestResultRecord(user_id="user-1", test_date=date(2025, 3, 1), file_path="user-1/3.pdf", status="failed"),
            TestResultRecord(
                user_id="user-2",
                test_date=date(2025, 1, 1),
                file_path="user-2/1.pdf",
                status="completed",
                results={"Kreatinin": reading(5.0)},
            ),
        ]
    )
    db_session.commit()

    response = client.get("/api/biomarkers/history", params={"user_id": "user-1", "name": "Kreatinin"})
    points = response.json()["data"]["points"]
    assert [point["value"] for point in points] == [0.8, 1.0]
    assert [point["name"] for point in points] == ["Kreatinin", "Kreatinine"]
    assert points[0]["delta_percent"] is None
    assert points[1]["delta_percent"] == pytest.approx(25.0)


@pytest.mark.parametrize("raw_value", ["NaN", "Infinity", "-Infinity"])
def test_results_edit_rejects_non_finite_numbers(client, fake_extractor, raw_value):
    fake_extractor.response_text = extraction_json(READINGS)
    record_id = _analyze(client).json()["data"]["test_result_id"]
    before = client.get(f"/api/test-results/{record_id}").json()["data"]["results"]

    body = (
        '{"results": {"TSH": {"value": %s, "unit": "mIU/l", "reference_range": "<4", '
        '"status": "in-range", "system": "Hormones"}}}' % raw_value
    )
    response = client.patch(
        f"/api/test-results/{record_id}/results",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"

    after = client.get(f"/api/test-results/{record_id}")
    assert after.status_code == 200
    assert after.json()["data"]["results"] == before


def test_overlong_user_id_is_rejected_before_upload(client, fake_extractor, storage):
    response = _analyze(client, user_id="u" * 37)
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
    assert fake_extractor.calls == []
    assert not storage.bucket_dir.exists()


def test_run_serves_app_with_configured_host_and_port(monkeypatch):
    from labextract import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(main.settings, "app_host", "127.0.0.1")
    monkeypatch.setattr(main.settings, "app_port", 8123)
    monkeypatch.setattr(main.settings, "app_env", "production")
    monkeypatch.setattr(main.settings, "log_level", "INFO")

    main.run()

    assert calls == [
        ("labextract.main:app", {"host": "127.0.0.1", "port": 8123, "reload": False, "log_level": "info"})
    ]
