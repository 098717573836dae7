"""
Meal Board - Error types.

Validation, cut-off and permission errors are raised before any store
call and leave the board unchanged. Store errors are raised after
validation passed; the board keeps its prior state and the caller
decides whether to retry.
"""

from typing import Any


class MealBoardError(Exception):
    """Base class for all board errors."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(MealBoardError):
    """The request was rejected before touching the store."""


class EmptyName(ValidationError):
    def __init__(self, message: str = "Name must not be empty"):
        super().__init__(message)


class DuplicateName(ValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is already on this week's board")


class InvalidCount(ValidationError):
    def __init__(self, count: Any):
        self.count = count
        super().__init__(f"Headcount must be a positive integer, got {count!r}")


class UnknownPerson(ValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is not on this week's board")


class OutOfWindow(ValidationError):
    def __init__(self, day: Any, start: Any, end: Any):
        self.day = day
        super().__init__(f"{day} is outside the loaded week {start}..{end}")


# =============================================================================
# Gating
# =============================================================================


class CutoffPassed(MealBoardError):
    def __init__(self, day: Any, slot: Any, cutoff: Any):
        self.day = day
        self.slot = slot
        self.cutoff = cutoff
        super().__init__(f"{day} {slot} closed at {cutoff:%H:%M}")


class PermissionDenied(MealBoardError):
    def __init__(self, name: str, owner: str | None, acting: str | None):
        self.name = name
        self.owner = owner
        self.acting = acting
        super().__init__(f"'{acting}' may not edit '{name}' (owned by '{owner}')")


class ConfirmationRequired(MealBoardError):
    """The action is allowed but the caller must confirm it first."""

    def __init__(self, action: str, name: str):
        self.action = action
        self.name = name
        super().__init__(f"{action} of '{name}' must be confirmed")


# =============================================================================
# Store
# =============================================================================


class StoreError(MealBoardError):
    """The remote store did not confirm a write or read."""


class StoreUnavailable(StoreError):
    """Network or remote failure; nothing was confirmed."""


class PartialBatchFailure(StoreError):
    """
    Some rows of a batch were written, some were not.

    `failed` pairs each failed item with its exception; `succeeded`
    lists the items the store confirmed.
    """

    def __init__(self, failed: list[tuple[Any, BaseException]], succeeded: list[Any]):
        self.failed = failed
        self.succeeded = succeeded
        super().__init__(
            f"{len(failed)} of {len(failed) + len(succeeded)} rows failed: "
            f"{failed[0][1]}"
        )
