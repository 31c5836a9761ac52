"""
Failure Classification for Fleet Import and Editing.

Two severities exist:

- Fatal: the whole operation is aborted and no partial state is applied.
  These are raised as KnownError subclasses.
- Recoverable: a single catalog item could not be resolved. These are
  never raised; they are collected into skip lists and surfaced to the
  caller alongside the successful result.

Every KnownError can be converted to a FailureDetail for display.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    UNKNOWN_FORMAT = "unknown_format"

    # Import failures
    FACTION_MISMATCH = "faction_mismatch"
    FACTION_UNDETERMINED = "faction_undetermined"

    # Editing constraint violations
    UNIQUE_CONFLICT = "unique_conflict"
    SLOT_UNAVAILABLE = "slot_unavailable"
    NOT_FOUND = "not_found"

    # Catalog failures
    CATALOG_UNAVAILABLE = "catalog_unavailable"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a FailureDetail for display."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class ImportInputError(KnownError):
    """Raised when raw import text is rejected before parsing."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=f"Fleet text rejected: {reason}",
            suggestion="Paste a single fleet list exported from a list builder.",
        )


class FactionMismatchError(KnownError):
    """
    Raised when the imported fleet belongs to another faction.

    This is fatal: the target fleet is left untouched.
    """

    def __init__(self, imported_faction: str, target_faction: str):
        self.imported_faction = imported_faction
        self.target_faction = target_faction
        super().__init__(
            kind=FailureKind.FACTION_MISMATCH,
            message=(
                f"Fleet is for {imported_faction} but current faction is {target_faction}"
            ),
            suggestion=f"Switch to the {imported_faction} faction before importing.",
        )


class FactionUndeterminedError(KnownError):
    """Raised when no faction is declared and none can be inferred."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.FACTION_UNDETERMINED,
            message="Could not determine faction from fleet list",
            suggestion="Add a 'Faction: <name>' line to the fleet text.",
        )


class UnknownFormatError(KnownError):
    """Raised when fleet text is imported with an unrecognized dialect tag."""

    def __init__(self, format_tag: str, known_formats: list[str]):
        self.format_tag = format_tag
        super().__init__(
            kind=FailureKind.UNKNOWN_FORMAT,
            message=f"Unknown fleet format '{format_tag}'",
            detail=f"Known formats: {', '.join(known_formats)}",
            suggestion="Pick the list builder the fleet text was exported from.",
        )
