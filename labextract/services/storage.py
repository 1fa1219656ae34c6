import logging
from datetime import datetime, timezone
from pathlib import Path

from labextract.config import settings
from labextract.services.errors import UploadFailure

logger = logging.getLogger(__name__)


def build_object_path(user_id: str, file_name: str, uploaded_at: datetime | None = None) -> str:
    """``<user_id>/<epoch millis>.<extension>`` for a submitted file."""
    moment = uploaded_at or datetime.now(timezone.utc)
    extension = file_name.split(".")[-1]
    return f"{user_id}/{int(moment.timestamp() * 1000)}.{extension}"


class FileStorage:
    """Bucketed object store on the local filesystem; objects are never overwritten."""

    def __init__(self, root: str | Path | None = None, bucket: str | None = None):
        self.root = Path(root or settings.storage_root)
        self.bucket = bucket or settings.storage_bucket

    @property
    def bucket_dir(self) -> Path:
        return (self.root / self.bucket).resolve()

    def resolve(self, object_path: str) -> Path:
        target = (self.bucket_dir / object_path).resolve()
        if not target.is_relative_to(self.bucket_dir):
            raise UploadFailure("Failed to upload file to storage", detail=f"Invalid object path: {object_path}")
        return target

    def upload(self, object_path: str, data: bytes, content_type: str) -> str:
        target = self.resolve(object_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as handle:
                handle.write(data)
        except OSError as exc:
            raise UploadFailure("Failed to upload file to storage", detail=str(exc)) from exc
        logger.info("Stored %s (%s, %d bytes)", object_path, content_type, len(data))
        return object_path

    def delete(self, object_path: str) -> None:
        self.resolve(object_path).unlink(missing_ok=True)
