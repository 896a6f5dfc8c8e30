# This project was developed with assistance from AI tools.
"""Central validation for the enum transition tables declared in ``db.enums``."""

import enum

from ..core.errors import InvalidStateError


def can_transition(current: enum.Enum, target: enum.Enum) -> bool:
    """True when ``target`` is reachable from ``current`` in one step."""
    return target in type(current).valid_transitions().get(current, frozenset())


def require_transition(current: enum.Enum, target: enum.Enum, *, entity: str) -> None:
    """Raise InvalidStateError if ``current -> target`` is not allowed."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot move {entity} from '{current.value}' to '{target.value}'",
            current_state=current.value,
        )
