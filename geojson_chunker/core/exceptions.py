"""Unified pipeline exception taxonomy.

Provides a shared base exception hierarchy for every stage of the chunking
pipeline and the query side. Every domain exception inherits from
``PipelineError`` and carries structured context fields that enable
consistent retry decisions and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   : input/contract violations, never retryable.
- ``TransientError``    : temporary failures (stale index), retryable.
- ``PermanentError``    : unrecoverable failures (disk full), not retryable.
- ``ContractError``     : chunk document drift between writer and reader.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for region summaries and logging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"write_chunks"``, ``"query_tiles"``).
        code: Machine-readable error code (e.g. ``"CHUNK_WRITE_FAILED"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Run or request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Chunk document or schema drift between stages. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Shared concrete errors
# ---------------------------------------------------------------------------


class InputFileNotFoundError(PermanentError):
    """Raised when a region's input GeoJSON file does not exist."""

    default_stage = "extract_features"
    default_code = "INPUT_NOT_FOUND"
