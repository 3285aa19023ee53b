from __future__ import annotations

from app.core.errors import Forbidden, InvalidState


# (current_status, role) -> statuses that role may move a Request to.
# Anything absent is rejected; completed and cancelled are terminal.
REQUEST_TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    ("pending", "beneficiary"): frozenset({"cancelled"}),
    ("approved", "beneficiary"): frozenset({"cancelled"}),
    ("in_progress", "beneficiary"): frozenset({"cancelled"}),

    ("pending", "provider"): frozenset({"approved", "cancelled"}),
    ("approved", "provider"): frozenset({"pending", "cancelled"}),
    ("in_progress", "provider"): frozenset({"cancelled"}),

    # delivery agents reach in_progress only by accepting a delivery
    ("in_progress", "delivery"): frozenset({"completed"}),

    ("pending", "admin"): frozenset({"approved", "cancelled"}),
    ("approved", "admin"): frozenset({"pending", "cancelled"}),
    ("in_progress", "admin"): frozenset({"completed", "cancelled"}),
}

# current_status -> next statuses for the assigned agent
DELIVERY_TRANSITIONS: dict[str, frozenset[str]] = {
    "assigned": frozenset({"picked_up", "delivered", "cancelled"}),
    "picked_up": frozenset({"delivered", "cancelled"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}


def _role_targets(role: str) -> frozenset[str]:
    targets: set[str] = set()
    for (_, r), allowed in REQUEST_TRANSITIONS.items():
        if r == role:
            targets |= allowed
    return frozenset(targets)


def check_request_transition(*, current: str, target: str, role: str) -> None:
    """
    Forbidden when the role can never set target (e.g. a beneficiary approving),
    InvalidState when it can, just not from current. Same-status is allowed
    through; the caller treats it as a no-op.
    """
    if target not in _role_targets(role):
        if role == "beneficiary":
            raise Forbidden("Beneficiaries can only cancel requests")
        raise Forbidden(f"Role {role} cannot set request status to {target}")

    if target == current:
        return

    if target not in REQUEST_TRANSITIONS.get((current, role), frozenset()):
        raise InvalidState(f"Cannot move request from {current} to {target}")


def check_delivery_transition(*, current: str, target: str) -> None:
    if target == current:
        return
    if target not in DELIVERY_TRANSITIONS.get(current, frozenset()):
        raise InvalidState(f"Cannot move delivery from {current} to {target}")
