import pytest

from solarconnect.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from solarconnect.queries import technician_queries
from solarconnect.services import rating
from solarconnect.services.rating import compute_rating

pytestmark = pytest.mark.anyio


def test_first_review_sets_rating_exactly():
    assert compute_rating(None, 0, 4) == (4.0, 1)


def test_running_mean():
    value, count = compute_rating(4.0, 1, 5)
    assert (value, count) == (4.5, 2)

    value, count = compute_rating(value, count, 3)
    assert count == 3
    assert value == pytest.approx(4.0)


def test_stale_rating_with_zero_count_is_ignored():
    assert compute_rating(2.5, 0, 5) == (5.0, 1)


def test_mean_stays_within_review_bounds():
    value, count = None, 0
    for new_rating in (1, 5, 5, 1, 3, 2, 4, 5):
        value, count = compute_rating(value, count, new_rating)
        assert 1 <= value <= 5
    assert count == 8
    assert value == pytest.approx(26 / 8)


async def test_add_review_updates_aggregate(conn, make_user, make_technician):
    reviewer = make_user(name="Sara")
    _, technician = make_technician()

    first = await rating.add_review(
        conn,
        {"technician_id": technician["id"], "rating": 4, "comment": "Great work",
         "service_type": "installation"},
        reviewer=reviewer,
    )
    assert first["user_name"] == "Sara"
    assert first["user_id"] == reviewer["id"]
    stored = conn.get("technicians", technician["id"])
    assert stored["rating"] == 4.0
    assert stored["review_count"] == 1

    await rating.add_review(
        conn,
        {"technician_id": technician["id"], "rating": 5, "comment": "Fast",
         "service_type": "maintenance"},
        reviewer=reviewer,
    )
    stored = conn.get("technicians", technician["id"])
    assert stored["rating"] == 4.5
    assert stored["review_count"] == 2
    assert len(conn.rows("reviews")) == 2


@pytest.mark.parametrize("bad_rating", [0, 6, -1])
async def test_out_of_range_rating_rejected(conn, make_user, make_technician, bad_rating):
    _, technician = make_technician()
    with pytest.raises(ValidationError):
        await rating.add_review(
            conn,
            {"technician_id": technician["id"], "rating": bad_rating, "comment": "x",
             "service_type": "installation"},
            reviewer=make_user(),
        )
    assert conn.rows("reviews") == []
    assert conn.get("technicians", technician["id"])["review_count"] == 0


async def test_unknown_technician(conn, make_user):
    with pytest.raises(NotFoundError):
        await rating.add_review(
            conn,
            {"technician_id": 99, "rating": 3, "comment": "x", "service_type": "installation"},
            reviewer=make_user(),
        )


async def test_service_type_defaults_from_request(conn, make_user, make_technician):
    reviewer = make_user()
    _, technician = make_technician()
    request = conn.add_service_request(
        reviewer["id"], technician_id=technician["id"], service_type="maintenance",
    )

    review = await rating.add_review(
        conn,
        {"technician_id": technician["id"], "service_request_id": request["id"],
         "rating": 5, "comment": "Panels cleaned"},
        reviewer=reviewer,
    )
    assert review["service_type"] == "maintenance"
    assert review["service_request_id"] == request["id"]


async def test_request_handled_by_other_technician(conn, make_user, make_technician):
    reviewer = make_user()
    _, assigned = make_technician()
    _, other = make_technician()
    request = conn.add_service_request(reviewer["id"], technician_id=assigned["id"])

    with pytest.raises(ValidationError):
        await rating.add_review(
            conn,
            {"technician_id": other["id"], "service_request_id": request["id"],
             "rating": 1, "comment": "Never came"},
            reviewer=reviewer,
        )


async def test_one_review_per_request(conn, make_user, make_technician):
    reviewer = make_user()
    _, technician = make_technician()
    request = conn.add_service_request(reviewer["id"], technician_id=technician["id"])
    data = {"technician_id": technician["id"], "service_request_id": request["id"],
            "rating": 4, "comment": "Good"}

    await rating.add_review(conn, data, reviewer=reviewer)
    with pytest.raises(ConflictError):
        await rating.add_review(conn, data, reviewer=reviewer)

    stored = conn.get("technicians", technician["id"])
    assert stored["review_count"] == 1


async def test_missing_service_type_rejected(conn, make_user, make_technician):
    _, technician = make_technician()
    with pytest.raises(ValidationError):
        await rating.add_review(
            conn,
            {"technician_id": technician["id"], "rating": 3, "comment": "ok"},
            reviewer=make_user(),
        )


async def test_anonymous_review_needs_user_name(conn, make_technician):
    _, technician = make_technician()
    data = {"technician_id": technician["id"], "rating": 3, "comment": "ok",
            "service_type": "assessment"}

    with pytest.raises(ValidationError):
        await rating.add_review(conn, data)

    review = await rating.add_review(conn, {**data, "user_name": "Walk-in"})
    assert review["user_id"] is None
    assert review["user_name"] == "Walk-in"


async def test_failed_aggregate_update_rolls_back_review(conn, make_user, make_technician, monkeypatch):
    _, technician = make_technician()

    async def broken_update(conn, technician_id, rating, review_count):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(technician_queries, "update_technician_rating", broken_update)

    with pytest.raises(RuntimeError):
        await rating.add_review(
            conn,
            {"technician_id": technician["id"], "rating": 5, "comment": "x",
             "service_type": "installation"},
            reviewer=make_user(),
        )

    assert conn.rows("reviews") == []
    stored = conn.get("technicians", technician["id"])
    assert stored["rating"] is None
    assert stored["review_count"] == 0


async def test_cannot_review_someone_elses_request(conn, make_user, make_technician):
    owner = make_user()
    stranger = make_user()
    _, technician = make_technician()
    request = conn.add_service_request(owner["id"], technician_id=technician["id"])
    data = {"technician_id": technician["id"], "service_request_id": request["id"],
            "rating": 1, "comment": "Terrible"}

    with pytest.raises(ForbiddenError):
        await rating.add_review(conn, data, reviewer=stranger)
    assert conn.rows("reviews") == []
    assert conn.get("technicians", technician["id"])["review_count"] == 0

    review = await rating.add_review(conn, data, reviewer=make_user("admin"))
    assert review["service_request_id"] == request["id"]
