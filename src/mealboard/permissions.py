"""
Meal Board - Edit permissions.

The core never prompts. It answers "may this identity do this to that
person?" with a Decision, and the presentation layer decides how to ask
for confirmation. Gating applies to writes only; every viewer can read
the whole board.
"""

from enum import Enum


class Action(Enum):
    """Kinds of edits a user can request on a person's entry."""

    TOGGLE = "toggle"
    RECOUNT = "recount"
    RENAME = "rename"
    BULK_EDIT = "bulk_edit"
    DELETE = "delete"


class Decision(Enum):
    ALLOW = "allow"
    DENY = "deny"
    REQUIRES_CONFIRMATION = "requires_confirmation"


# Destructive actions that always need an explicit yes
CONFIRM_ACTIONS = {Action.DELETE}


def check_capability(
    action: Action,
    owner_identity: str | None,
    acting_identity: str | None,
) -> Decision:
    """
    Decide whether acting_identity may perform action on an entry.

    No acting identity, or an entry without an owner, is open-edit mode.
    A different owner is always denied.
    """
    if acting_identity and owner_identity and owner_identity != acting_identity:
        return Decision.DENY
    if action in CONFIRM_ACTIONS:
        return Decision.REQUIRES_CONFIRMATION
    return Decision.ALLOW
