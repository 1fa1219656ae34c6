from functools import lru_cache

from labextract.services.extraction import ExtractionClient
from labextract.services.storage import FileStorage


@lru_cache
def get_storage() -> FileStorage:
    return FileStorage()


def get_extraction_client() -> ExtractionClient:
    return ExtractionClient()
