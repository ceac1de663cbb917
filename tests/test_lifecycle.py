import pytest

from solarconnect.config import settings
from solarconnect.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from solarconnect.queries import service_request_queries
from solarconnect.services import lifecycle
from solarconnect.services.lifecycle import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, is_transition_allowed
from solarconnect.models.service_request import ServiceRequestStatus as Status

from tests.fakes import FakeGateway

pytestmark = pytest.mark.anyio

NEW_REQUEST = {
    "service_type": "installation",
    "property_type": "commercial",
    "title": "Warehouse roof",
    "description": "120 panels on a flat roof",
    "address": "Industrial Area 2",
    "city": "Dammam",
}


@pytest.fixture
def strict_transitions(monkeypatch):
    monkeypatch.setattr(settings, "strict_status_transitions", True)


def test_terminal_states_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()


def test_cancel_reachable_from_every_open_state():
    for status in Status:
        if status not in TERMINAL_STATUSES:
            assert is_transition_allowed(status, Status.CANCELLED)


def test_same_status_is_allowed():
    assert is_transition_allowed(Status.PAID, Status.PAID)
    assert not is_transition_allowed(Status.PENDING, Status.COMPLETED)


async def test_create_starts_pending_and_unpaid(conn, make_user):
    user = make_user()
    request = await lifecycle.create_service_request(conn, user["id"], NEW_REQUEST)

    assert request["status"] == "pending"
    assert request["is_paid"] is False
    assert request["technician_id"] is None
    assert request["price"] is None
    assert request["user_id"] == user["id"]


async def test_create_with_technician_stays_pending(conn, make_user, make_technician):
    _, technician = make_technician()
    request = await lifecycle.create_service_request(
        conn, make_user()["id"], {**NEW_REQUEST, "technician_id": technician["id"], "price": 4500}
    )
    assert request["status"] == "pending"
    assert request["technician_id"] == technician["id"]
    assert request["price"] == 4500


async def test_create_rejects_unknown_technician(conn, make_user):
    with pytest.raises(NotFoundError):
        await lifecycle.create_service_request(
            conn, make_user()["id"], {**NEW_REQUEST, "technician_id": 42}
        )
    assert conn.rows("service_requests") == []


async def test_create_rejects_bad_enum(conn, make_user):
    with pytest.raises(ValidationError):
        await lifecycle.create_service_request(
            conn, make_user()["id"], {**NEW_REQUEST, "service_type": "demolition"}
        )


async def test_assign_moves_pending_to_assigned(conn, make_user, make_technician):
    _, technician = make_technician()
    request = conn.add_service_request(make_user()["id"])

    updated = await lifecycle.assign_technician(conn, request["id"], technician["id"])
    assert updated["status"] == "assigned"
    assert updated["technician_id"] == technician["id"]


async def test_reassign_keeps_later_status(conn, make_user, make_technician):
    _, first = make_technician()
    _, second = make_technician()
    request = conn.add_service_request(
        make_user()["id"], technician_id=first["id"], status="in_progress"
    )

    updated = await lifecycle.assign_technician(conn, request["id"], second["id"])
    assert updated["status"] == "in_progress"
    assert updated["technician_id"] == second["id"]


@pytest.mark.parametrize("status", ["paid", "cancelled"])
async def test_assign_refused_on_terminal_request(conn, make_user, make_technician, status):
    _, technician = make_technician()
    request = conn.add_service_request(
        make_user()["id"], status=status, is_paid=status == "paid"
    )
    with pytest.raises(ConflictError):
        await lifecycle.assign_technician(conn, request["id"], technician["id"])


async def test_assign_unknown_entities(conn, make_user, make_technician):
    _, technician = make_technician()
    request = conn.add_service_request(make_user()["id"])

    with pytest.raises(NotFoundError):
        await lifecycle.assign_technician(conn, 999, technician["id"])
    with pytest.raises(NotFoundError):
        await lifecycle.assign_technician(conn, request["id"], 999)
    assert conn.get("service_requests", request["id"])["status"] == "pending"


async def test_update_status_rejects_unknown_value(conn, make_user):
    request = conn.add_service_request(make_user()["id"])
    with pytest.raises(ValidationError):
        await lifecycle.update_status(conn, request["id"], "on_hold")


async def test_update_status_is_permissive_by_default(conn, make_user):
    request = conn.add_service_request(make_user()["id"])
    updated = await lifecycle.update_status(conn, request["id"], "completed")
    assert updated["status"] == "completed"
    assert updated["completed_date"] is not None


async def test_strict_mode_enforces_graph(conn, make_user, strict_transitions):
    request = conn.add_service_request(make_user()["id"])

    with pytest.raises(ConflictError):
        await lifecycle.update_status(conn, request["id"], "completed")

    for status in ("assigned", "in_progress", "completed"):
        updated = await lifecycle.update_status(conn, request["id"], status)
        assert updated["status"] == status


async def test_paid_request_cannot_leave_paid(conn, make_user):
    request = conn.add_service_request(
        make_user()["id"], status="paid", is_paid=True, price=100
    )
    with pytest.raises(ConflictError):
        await lifecycle.update_status(conn, request["id"], "in_progress")

    unchanged = await lifecycle.update_status(conn, request["id"], Status.PAID)
    assert unchanged["status"] == "paid"
    assert unchanged["is_paid"] is True


async def test_set_price(conn, make_user):
    request = conn.add_service_request(make_user()["id"])
    updated = await lifecycle.set_price(conn, request["id"], 1500)
    assert updated["price"] == 1500


@pytest.mark.parametrize("price", [0, -5, 12.5, True])
async def test_set_price_rejects_non_positive_integers(conn, make_user, price):
    request = conn.add_service_request(make_user()["id"])
    with pytest.raises(ValidationError):
        await lifecycle.set_price(conn, request["id"], price)


async def test_set_price_refused_once_paid(conn, make_user):
    request = conn.add_service_request(make_user()["id"], status="paid", is_paid=True, price=100)
    with pytest.raises(ConflictError):
        await lifecycle.set_price(conn, request["id"], 200)


async def test_reprice_drops_stale_intent(conn, make_user):
    request = conn.add_service_request(make_user()["id"], price=100, payment_intent_id="pi_old")

    same = await lifecycle.set_price(conn, request["id"], 100)
    assert same["payment_intent_id"] == "pi_old"

    changed = await lifecycle.set_price(conn, request["id"], 250)
    assert changed["payment_intent_id"] is None


async def test_mark_paid_is_idempotent(conn, make_user):
    request = conn.add_service_request(make_user()["id"], status="completed", price=300)

    first = await lifecycle.mark_paid(conn, request["id"], "pi_123")
    assert first["is_paid"] is True
    assert first["status"] == "paid"
    assert first["payment_intent_id"] == "pi_123"

    second = await lifecycle.mark_paid(conn, request["id"])
    assert second["is_paid"] is True
    assert second["status"] == "paid"
    assert second["payment_intent_id"] == "pi_123"


async def test_mark_paid_refused_for_cancelled(conn, make_user):
    request = conn.add_service_request(make_user()["id"], status="cancelled")
    with pytest.raises(ConflictError):
        await lifecycle.mark_paid(conn, request["id"])


async def test_mark_paid_unknown_request(conn):
    with pytest.raises(NotFoundError):
        await lifecycle.mark_paid(conn, 12345)


async def test_payment_intent_requires_price(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"])
    with pytest.raises(ValidationError, match="does not have a price"):
        await lifecycle.create_payment_intent(conn, request["id"], gateway)
    assert gateway.intents == {}


async def test_payment_intent_refused_when_paid(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"], price=100, status="paid", is_paid=True)
    with pytest.raises(ConflictError, match="already paid"):
        await lifecycle.create_payment_intent(conn, request["id"], gateway)


async def test_payment_intent_created_in_minor_units(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"], price=1500)

    result = await lifecycle.create_payment_intent(conn, request["id"], gateway)

    intent = gateway.intents[result["payment_intent_id"]]
    assert intent["amount"] == 150000
    assert intent["currency"] == settings.payment_currency
    assert intent["metadata"] == {"service_request_id": str(request["id"])}
    assert result["client_secret"] == intent["client_secret"]
    stored = conn.get("service_requests", request["id"])
    assert stored["payment_intent_id"] == result["payment_intent_id"]


async def test_payment_intent_reused_until_canceled(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"], price=200)

    first = await lifecycle.create_payment_intent(conn, request["id"], gateway)
    again = await lifecycle.create_payment_intent(conn, request["id"], gateway)
    assert again == first
    assert len(gateway.intents) == 1

    gateway.intents[first["payment_intent_id"]]["status"] = "canceled"
    fresh = await lifecycle.create_payment_intent(conn, request["id"], gateway)
    assert fresh["payment_intent_id"] != first["payment_intent_id"]
    assert conn.get("service_requests", request["id"])["payment_intent_id"] == fresh["payment_intent_id"]


async def test_gateway_failure_leaves_request_untouched(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"], price=200)
    gateway.fail = True
    with pytest.raises(UpstreamError):
        await lifecycle.create_payment_intent(conn, request["id"], gateway)
    assert conn.get("service_requests", request["id"])["payment_intent_id"] is None


async def test_failed_write_rolls_back(conn, make_user, make_technician, monkeypatch):
    _, technician = make_technician()
    request = conn.add_service_request(make_user()["id"])
    real_update = service_request_queries.update_service_request

    async def update_then_fail(conn, request_id, fields):
        await real_update(conn, request_id, fields)
        raise RuntimeError("connection reset")

    monkeypatch.setattr(service_request_queries, "update_service_request", update_then_fail)
    with pytest.raises(RuntimeError):
        await lifecycle.assign_technician(conn, request["id"], technician["id"])

    stored = conn.get("service_requests", request["id"])
    assert stored["status"] == "pending"
    assert stored["technician_id"] is None


async def test_payment_intent_refused_for_cancelled(conn, make_user, gateway):
    request = conn.add_service_request(make_user()["id"], price=500, status="cancelled")
    with pytest.raises(ConflictError, match="cancelled"):
        await lifecycle.create_payment_intent(conn, request["id"], gateway)
    assert gateway.intents == {}
    assert conn.get("service_requests", request["id"])["payment_intent_id"] is None


class ObservingGateway(FakeGateway):
    """Records how many transactions were open during each call, optionally re-quoting the request mid-call."""

    def __init__(self, conn, request_id, reprice_to=None):
        super().__init__()
        self.conn = conn
        self.request_id = request_id
        self.reprice_to = reprice_to
        self.open_during_calls = []

    def create_payment_intent(self, amount, currency, metadata):
        self.open_during_calls.append(self.conn.open_transactions)
        if self.reprice_to is not None:
            self.conn.tables["service_requests"][self.request_id]["price"] = self.reprice_to
        return super().create_payment_intent(amount, currency, metadata)

    def retrieve_payment_intent(self, payment_intent_id):
        self.open_during_calls.append(self.conn.open_transactions)
        return super().retrieve_payment_intent(payment_intent_id)


async def test_gateway_called_without_lock_held(conn, make_user):
    request = conn.add_service_request(make_user()["id"], price=200)
    observing = ObservingGateway(conn, request["id"])

    first = await lifecycle.create_payment_intent(conn, request["id"], observing)
    await lifecycle.create_payment_intent(conn, request["id"], observing)

    assert observing.open_during_calls == [0, 0]
    stored = conn.get("service_requests", request["id"])
    assert stored["payment_intent_id"] == first["payment_intent_id"]


async def test_request_changed_during_gateway_call(conn, make_user):
    request = conn.add_service_request(make_user()["id"], price=200)
    racing = ObservingGateway(conn, request["id"], reprice_to=350)

    with pytest.raises(ConflictError, match="changed"):
        await lifecycle.create_payment_intent(conn, request["id"], racing)

    stored = conn.get("service_requests", request["id"])
    assert stored["price"] == 350
    assert stored["payment_intent_id"] is None
