from __future__ import annotations

from mediamod.errors import ValidationError

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

STATES: list[str] = [PENDING, APPROVED, REJECTED]

TERMINAL_STATES: frozenset[str] = frozenset({APPROVED, REJECTED})

# Statuses a moderator may set. Applies regardless of the current status:
# there is no guard against re-moderating a terminal item.
MODERATION_TARGETS: frozenset[str] = frozenset({APPROVED, REJECTED})


class WorkflowError(ValidationError):
    """Raised when a status value or moderation target is invalid."""


def list_states() -> list[str]:
    return list(STATES)


_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [APPROVED, REJECTED],
    APPROVED: [],
    REJECTED: [],
}


def normalize_status(status: str | None) -> str:
    if not status:
        return ""
    return status.strip().lower()


def validate_status(status: str | None) -> str:
    """Return the normalized status or raise WorkflowError if it is not a known state."""
    s = normalize_status(status)
    if s not in STATES:
        raise WorkflowError(f"Unknown status: {status!r}. Expected one of {STATES}")
    return s


def allowed_transitions(from_status: str) -> list[str]:
    """
    Returns the designed next statuses from `from_status`.

    Terminal statuses have none. This is informational: moderation itself
    only checks the target, see validate_moderation_target.
    """
    s = normalize_status(from_status)
    if s not in _TRANSITIONS:
        return []
    return list(_TRANSITIONS[s])


def validate_moderation_target(to_status: str | None) -> str:
    """
    Raises WorkflowError unless `to_status` is approved or rejected.
    """
    s = normalize_status(to_status)
    if s not in MODERATION_TARGETS:
        raise WorkflowError(
            f"Invalid moderation status: {to_status!r}. Allowed: {sorted(MODERATION_TARGETS)}"
        )
    return s


def is_terminal(status: str) -> bool:
    return normalize_status(status) in TERMINAL_STATES
