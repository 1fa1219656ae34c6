from labextract.models.test_result import TestResultRecord

__all__ = [
    "TestResultRecord",
]
