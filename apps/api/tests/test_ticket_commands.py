import pytest

from bcare.core.exceptions import ValidationError
from bcare.schemas.ticket import Close, Decline, Escalate, HandleByCXC, MarkDoneByUIC, UpdateNotes
from bcare.services.ticket_service import parse_ticket_command


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"action": "HANDLEDCXC", "division_notes": "Called customer back"}, HandleByCXC),
        ({"action": "ESCALATED", "record": "Call recording #88"}, Escalate),
        ({"action": "CLOSED", "solution": "Dana dikembalikan"}, Close),
        ({"action": "DECLINED", "reason": "Out of scope"}, Decline),
        ({"action": "DONE_BY_UIC", "division_notes": "Refund processed"}, MarkDoneByUIC),
        ({"division_notes": "Waiting for switching log"}, UpdateNotes),
    ],
)
def test_parse_ticket_command_picks_command_type(payload, expected):
    assert isinstance(parse_ticket_command(payload), expected)


def test_parse_ticket_command_rejects_unknown_action():
    with pytest.raises(ValidationError):
        parse_ticket_command({"action": "REOPEN"})


def test_parse_ticket_command_rejects_field_outside_whitelist():
    # Only CLOSED carries a solution
    with pytest.raises(ValidationError):
        parse_ticket_command({"action": "ESCALATED", "solution": "n/a"})


def test_parse_ticket_command_handle_cannot_reclassify():
    with pytest.raises(ValidationError):
        parse_ticket_command({"action": "HANDLEDCXC", "complaint_id": 2})


def test_parse_ticket_command_specialist_cannot_reclassify():
    with pytest.raises(ValidationError):
        parse_ticket_command({"action": "DONE_BY_UIC", "priority_id": 1})


def test_parse_ticket_command_empty_body():
    with pytest.raises(ValidationError, match="No valid update data provided"):
        parse_ticket_command({})


def test_parse_ticket_command_rejects_non_object():
    with pytest.raises(ValidationError):
        parse_ticket_command(["ESCALATED"])


def test_parse_ticket_command_negative_amount():
    with pytest.raises(ValidationError):
        parse_ticket_command({"action": "ESCALATED", "amount": "-5"})
