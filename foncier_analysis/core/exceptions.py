"""Unified analysis exception taxonomy.

Every domain exception inherits from ``AnalysisError`` and carries
structured context fields so that the HTTP boundary can turn any fatal
condition into a single human-readable message plus a stable error
payload.

Taxonomy categories
-------------------
- ``ValidationError``   — input violations (bad boundary points), never retryable.
- ``PermanentError``    — unrecoverable domain failures, not retryable.
- ``ContractError``     — payload/schema drift at a boundary, never retryable.

Degraded-but-continuing conditions (a missing reference dataset, a
feature with an unsupported geometry) are not exceptions: they are
reported through the ``LayerLoadWarning`` and
``UnsupportedGeometryWarning`` categories and logged.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base exception for all analysis-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Analysis stage where the error occurred
            (e.g. ``"normalize_coordinates"``, ``"generate_report"``).
        code: Machine-readable error code (e.g. ``"INSUFFICIENT_COORDINATES"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Request correlation identifier.
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


class ValidationError(AnalysisError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(AnalysisError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(AnalysisError):
    """Payload or schema drift at a system boundary. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


class InvalidGeometryError(ValidationError):
    """Raised when the incoming parcel boundary cannot form a polygon."""

    default_stage = "normalize_coordinates"
    default_code = "INVALID_GEOMETRY"


class InsufficientCoordinatesError(InvalidGeometryError):
    """Raised when fewer than 3 distinct boundary points remain."""

    default_code = "INSUFFICIENT_COORDINATES"


class MissingAnalysisDataError(ContractError):
    """Raised when the overlap match source is absent.

    An empty match list means "computed, no hits"; an absent one means
    the overlap computation never ran. The two must not be conflated.
    """

    default_stage = "generate_report"
    default_code = "MISSING_ANALYSIS_DATA"


class UnsupportedCRSError(PermanentError):
    """Raised when the configured source/target CRS pair cannot be built."""

    default_stage = "reproject"
    default_code = "UNSUPPORTED_CRS"


# ---------------------------------------------------------------------------
# Warning categories (degraded, non-fatal)
# ---------------------------------------------------------------------------


class LayerLoadWarning(UserWarning):
    """A reference dataset is missing or unreadable; the layer is treated as empty."""


class UnsupportedGeometryWarning(UserWarning):
    """A reference feature has a non-polygonal geometry and was skipped."""
