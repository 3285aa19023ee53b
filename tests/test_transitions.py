import pytest

from app.core.errors import Forbidden, InvalidState
from app.services.transitions import check_delivery_transition, check_request_transition


@pytest.mark.parametrize(
    "current,target,role",
    [
        ("pending", "approved", "provider"),
        ("approved", "pending", "provider"),
        ("approved", "cancelled", "beneficiary"),
        ("in_progress", "cancelled", "beneficiary"),
        ("in_progress", "completed", "delivery"),
        ("in_progress", "completed", "admin"),
        ("pending", "cancelled", "admin"),
    ],
)
def test_allowed_request_moves(current, target, role):
    check_request_transition(current=current, target=target, role=role)


def test_beneficiary_only_cancels():
    with pytest.raises(Forbidden) as exc:
        check_request_transition(current="pending", target="approved", role="beneficiary")
    assert exc.value.detail == "Beneficiaries can only cancel requests"


def test_delivery_agent_cannot_approve():
    with pytest.raises(Forbidden):
        check_request_transition(current="pending", target="approved", role="delivery")


@pytest.mark.parametrize(
    "current,target,role",
    [
        ("completed", "pending", "admin"),
        ("cancelled", "approved", "provider"),
        ("pending", "completed", "admin"),
        ("in_progress", "approved", "provider"),
        ("completed", "cancelled", "beneficiary"),
    ],
)
def test_rejected_request_moves(current, target, role):
    with pytest.raises(InvalidState):
        check_request_transition(current=current, target=target, role=role)


def test_same_status_passes_through():
    check_request_transition(current="cancelled", target="cancelled", role="beneficiary")
    check_delivery_transition(current="delivered", target="delivered")


@pytest.mark.parametrize(
    "current,target",
    [("delivered", "picked_up"), ("cancelled", "assigned"), ("picked_up", "assigned"), ("delivered", "cancelled")],
)
def test_rejected_delivery_moves(current, target):
    with pytest.raises(InvalidState):
        check_delivery_transition(current=current, target=target)


def test_delivery_happy_path():
    check_delivery_transition(current="assigned", target="picked_up")
    check_delivery_transition(current="picked_up", target="delivered")


def test_assigned_delivery_can_be_marked_delivered_directly():
    check_delivery_transition(current="assigned", target="delivered")
