import base64
import json
import logging

import httpx

from labextract.config import settings
from labextract.services.errors import ExtractionCallFailure

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Extract ALL biomarker data from this medical lab report. Return ONLY a JSON object with this structure:
{
  "lab_name": "Lab name or null",
  "test_date": "YYYY-MM-DD or null",
  "biomarkers": [
    {"name": "Biomarker Name", "value": 5.2, "unit": "G/l", "referenceMin": 4.5, "referenceMax": 12.5}
  ]
}
Rules:
- Extract EVERY biomarker visible in the report
- Return a JSON OBJECT with a "biomarkers" key, NOT a flat array
- Convert German decimal commas to dots (13,5 -> 13.5)
- Reference ranges: "4.1-5.1" -> referenceMin: 4.1, referenceMax: 5.1; "<35" -> referenceMin: 0, referenceMax: 35; ">40" -> referenceMin: 40, referenceMax: 999
- No guessing, only extract visible data
- Return ONLY valid JSON, no markdown"""

USER_INSTRUCTION = "Extract all biomarker data from this blood test report."


def _error_detail(body: str) -> str:
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        return parsed["error"].get("message") or body
    return body


def _message_content(payload) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class ExtractionClient:
    """Chat-completions client that turns a report file into raw extraction text."""

    def __init__(self, api_key: str | None = None, http_client: httpx.Client | None = None):
        self.api_key = api_key or settings.openrouter_api_key
        self.http_client = http_client

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": settings.extraction_referer,
            "X-Title": settings.extraction_title,
        }

    def build_request(self, file_bytes: bytes, mime_type: str) -> dict:
        data_url = f"data:{mime_type};base64,{base64.b64encode(file_bytes).decode('ascii')}"
        return {
            "model": settings.extraction_model,
            "messages": [
                {"role": "system", "content": EXTRACTION_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_INSTRUCTION},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                },
            ],
            "temperature": settings.extraction_temperature,
            "max_tokens": settings.extraction_max_tokens,
        }

    def _post(self, client: httpx.Client, body: dict) -> httpx.Response:
        return client.post(settings.extraction_api_url, headers=self.headers, json=body)

    def extract(self, file_bytes: bytes, mime_type: str) -> str:
        if not self.api_key:
            raise ExtractionCallFailure("AI extraction failed", detail="OPENROUTER_API_KEY is missing")

        body = self.build_request(file_bytes, mime_type)
        try:
            if self.http_client is not None:
                response = self._post(self.http_client, body)
            else:
                with httpx.Client(timeout=settings.extraction_timeout_seconds) as client:
                    response = self._post(client, body)
        except httpx.HTTPError as exc:
            raise ExtractionCallFailure("AI extraction failed", detail=str(exc) or type(exc).__name__) from exc

        if response.is_error:
            logger.error("Extraction API error %s: %s", response.status_code, response.text)
            raise ExtractionCallFailure(
                "AI extraction failed",
                detail=_error_detail(response.text),
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExtractionCallFailure("AI extraction failed", detail="Extraction API returned a non-JSON body") from exc
        return _message_content(payload)
