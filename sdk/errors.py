# sdk/errors.py
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class for everything the SDK raises on purpose."""


class CatalogAPIError(CatalogError):
    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.detail
        return f"HTTP {self.status_code}: {self.detail}"


class FormValidationError(CatalogError):
    pass


class BatchUpdateError(CatalogError):
    """Some writes of a concurrent batch failed. The successful ones stay applied."""

    def __init__(self, failures: Dict[Any, Exception]):
        self.failures = failures
        ids = ", ".join(str(k) for k in sorted(failures))
        super().__init__(f"{len(failures)} update(s) failed: {ids}")


class EditorStateError(CatalogError):
    pass
