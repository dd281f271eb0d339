"""Tests for event CRUD, moderation, proximity search and participation.

Covers:
- Creator-only update / delete
- Moderation by MODERATOR / ADMIN, rejection reason required
- Nearby search: exact distance filter, nearest first, pagination
- Online and unapproved events never appear in nearby results
- Join / leave with approval, capacity and age checks
"""
import pytest

from andex.config import settings
from andex.models.user import User, UserRole
from tests.conftest import create_test_event, create_test_user

QUERY_POINT = {"latitude": 55.75, "longitude": 37.61}


def _make_moderator(db, user: dict, role: UserRole = UserRole.moderator) -> None:
    db.query(User).filter(User.user_id == user["user_id"]).update({"role": role})
    db.commit()


def _nearby(client, user: dict, **params) -> dict:
    query = dict(QUERY_POINT)
    query.update(params)
    resp = client.get("/api/events/nearby", params=query, headers=user["headers"])
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestEventCrud:
    def test_create_event(self, client):
        alice = create_test_user(client, name="Alice")
        event = create_test_event(client, alice, title="Jazz Night", price=15)
        assert event["title"] == "Jazz Night"
        assert event["status"] == "APPROVED"
        assert event["created_by_id"] == alice["user_id"]
        assert event["price"] == 15

    def test_create_event_defaults_price(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        assert event["price"] == 0

    def test_create_event_pending_when_approval_required(self, client, monkeypatch):
        monkeypatch.setattr(settings, "EVENTS_REQUIRE_APPROVAL", True)
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        assert event["status"] == "PENDING"

    def test_create_event_invalid_coordinates(self, client):
        alice = create_test_user(client)
        resp = client.post("/api/events/", json={
            "title": "Nowhere",
            "category": "music",
            "start_time": "2030-06-01T18:00:00+00:00",
            "latitude": 100,
            "longitude": 0,
        }, headers=alice["headers"])
        assert resp.status_code == 400

    def test_create_event_end_before_start(self, client):
        alice = create_test_user(client)
        resp = client.post("/api/events/", json={
            "title": "Backwards",
            "category": "music",
            "start_time": "2030-06-01T18:00:00+00:00",
            "end_time": "2030-06-01T17:00:00+00:00",
        }, headers=alice["headers"])
        assert resp.status_code == 400

    def test_create_event_short_title(self, client):
        alice = create_test_user(client)
        resp = client.post("/api/events/", json={
            "title": "No",
            "category": "music",
            "start_time": "2030-06-01T18:00:00+00:00",
        }, headers=alice["headers"])
        assert resp.status_code == 422

    def test_get_event_details(self, client):
        alice = create_test_user(client, name="Alice")
        event = create_test_event(client, alice)
        resp = client.get(f"/api/events/{event['event_id']}", headers=alice["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["creator"]["display_name"] == "Alice"
        assert data["participants_count"] == 0
        assert data["is_participating"] is False

    def test_get_event_not_found(self, client):
        alice = create_test_user(client)
        resp = client.get("/api/events/missing", headers=alice["headers"])
        assert resp.status_code == 404

    def test_update_by_creator(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.put(f"/api/events/{event['event_id']}", json={"title": "Renamed"}, headers=alice["headers"])
        assert resp.status_code == 200
        assert resp.json()["title"] == "Renamed"

    def test_update_rejects_null_required_fields(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice, title="Original")
        resp = client.put(
            f"/api/events/{event['event_id']}", json={"title": None, "is_online": None}, headers=alice["headers"]
        )
        assert resp.status_code == 400
        assert "is_online" in resp.json()["detail"]
        assert "title" in resp.json()["detail"]
        current = client.get(f"/api/events/{event['event_id']}", headers=alice["headers"]).json()
        assert current["title"] == "Original"

    @pytest.mark.parametrize("field", ["category", "start_time", "price"])
    def test_update_rejects_each_null_required_field(self, client, field):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.put(f"/api/events/{event['event_id']}", json={field: None}, headers=alice["headers"])
        assert resp.status_code == 400

    def test_update_clears_optional_fields(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice, description="Bring snacks", max_participants=10)
        resp = client.put(
            f"/api/events/{event['event_id']}",
            json={"description": None, "max_participants": None},
            headers=alice["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["description"] is None
        assert resp.json()["max_participants"] is None

    def test_update_by_non_creator(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.put(f"/api/events/{event['event_id']}", json={"title": "Hijacked"}, headers=bob["headers"])
        assert resp.status_code == 403

    def test_update_missing_event(self, client):
        alice = create_test_user(client)
        resp = client.put("/api/events/missing", json={"title": "Renamed"}, headers=alice["headers"])
        assert resp.status_code == 404

    def test_delete_by_creator(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.delete(f"/api/events/{event['event_id']}", headers=alice["headers"])
        assert resp.status_code == 204
        assert client.get(f"/api/events/{event['event_id']}", headers=alice["headers"]).status_code == 404

    def test_delete_by_non_creator(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.delete(f"/api/events/{event['event_id']}", headers=bob["headers"])
        assert resp.status_code == 403

    def test_list_events_filters(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, title="Rock Concert", category="music")
        create_test_event(client, alice, title="Chess Club", category="games")
        create_test_event(client, alice, title="Webinar", category="music", is_online=True)

        music = client.get("/api/events/?category=music", headers=alice["headers"]).json()
        assert music["pagination"]["total"] == 2
        offline = client.get("/api/events/?category=music&is_online=false", headers=alice["headers"]).json()
        assert [e["title"] for e in offline["items"]] == ["Rock Concert"]
        searched = client.get("/api/events/?search=chess", headers=alice["headers"]).json()
        assert [e["title"] for e in searched["items"]] == ["Chess Club"]

    def test_list_events_invalid_status(self, client):
        alice = create_test_user(client)
        resp = client.get("/api/events/?status=UNKNOWN", headers=alice["headers"])
        assert resp.status_code == 400

    def test_my_events(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        create_test_event(client, alice, title="Alice's")
        create_test_event(client, bob, title="Bob's")
        data = client.get("/api/events/mine", headers=alice["headers"]).json()
        assert [e["title"] for e in data["items"]] == ["Alice's"]


class TestModeration:
    def test_regular_user_cannot_moderate(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.post(
            f"/api/events/{event['event_id']}/moderate",
            json={"status": "REJECTED", "rejection_reason": "spam"},
            headers=alice["headers"],
        )
        assert resp.status_code == 403

    @pytest.mark.parametrize("role", [UserRole.moderator, UserRole.admin])
    def test_reject_with_reason(self, client, db, role):
        alice = create_test_user(client)
        mod = create_test_user(client, name="Mod")
        _make_moderator(db, mod, role)
        event = create_test_event(client, alice)
        resp = client.post(
            f"/api/events/{event['event_id']}/moderate",
            json={"status": "REJECTED", "rejection_reason": "spam"},
            headers=mod["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "REJECTED"
        assert resp.json()["rejection_reason"] == "spam"

    def test_reject_requires_reason(self, client, db):
        alice = create_test_user(client)
        mod = create_test_user(client, name="Mod")
        _make_moderator(db, mod)
        event = create_test_event(client, alice)
        resp = client.post(f"/api/events/{event['event_id']}/moderate", json={"status": "REJECTED"}, headers=mod["headers"])
        assert resp.status_code == 400

    def test_approve_clears_reason(self, client, db):
        alice = create_test_user(client)
        mod = create_test_user(client, name="Mod")
        _make_moderator(db, mod)
        event = create_test_event(client, alice)
        url = f"/api/events/{event['event_id']}/moderate"
        client.post(url, json={"status": "REJECTED", "rejection_reason": "spam"}, headers=mod["headers"])
        resp = client.post(url, json={"status": "APPROVED"}, headers=mod["headers"])
        assert resp.json()["status"] == "APPROVED"
        assert resp.json()["rejection_reason"] is None

    def test_invalid_status(self, client, db):
        alice = create_test_user(client)
        mod = create_test_user(client, name="Mod")
        _make_moderator(db, mod)
        event = create_test_event(client, alice)
        resp = client.post(f"/api/events/{event['event_id']}/moderate", json={"status": "MAYBE"}, headers=mod["headers"])
        assert resp.status_code == 400


class TestNearbySearch:
    def test_event_within_radius(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, latitude=55.76, longitude=37.62)
        data = _nearby(client, alice, max_distance=5000)
        assert data["pagination"]["total"] == 1
        assert 0 < data["items"][0]["distance"] < 5000

    def test_event_outside_radius(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, latitude=55.76, longitude=37.62)
        data = _nearby(client, alice, max_distance=100)
        assert data["items"] == []
        assert data["pagination"]["total"] == 0

    def test_event_at_query_point(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, **QUERY_POINT)
        data = _nearby(client, alice, max_distance=0)
        assert len(data["items"]) == 1
        assert data["items"][0]["distance"] == 0

    def test_nearest_first(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, title="Far", latitude=55.80, longitude=37.70)
        create_test_event(client, alice, title="Near", latitude=55.751, longitude=37.611)
        create_test_event(client, alice, title="Middle", latitude=55.76, longitude=37.62)
        data = _nearby(client, alice, max_distance=20000)
        titles = [e["title"] for e in data["items"]]
        assert titles == ["Near", "Middle", "Far"]
        distances = [e["distance"] for e in data["items"]]
        assert distances == sorted(distances)

    def test_excludes_online_and_unapproved(self, client, db):
        alice = create_test_user(client)
        mod = create_test_user(client, name="Mod")
        _make_moderator(db, mod)
        create_test_event(client, alice, title="Online", is_online=True)
        rejected = create_test_event(client, alice, title="Rejected")
        pending = create_test_event(client, alice, title="Pending")
        create_test_event(client, alice, title="Visible")
        client.post(
            f"/api/events/{rejected['event_id']}/moderate",
            json={"status": "REJECTED", "rejection_reason": "spam"},
            headers=mod["headers"],
        )
        client.post(f"/api/events/{pending['event_id']}/moderate", json={"status": "PENDING"}, headers=mod["headers"])

        data = _nearby(client, alice, max_distance=5000)
        assert [e["title"] for e in data["items"]] == ["Visible"]

    def test_excludes_events_without_coordinates(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, title="Somewhere", latitude=None, longitude=None)
        assert _nearby(client, alice)["items"] == []

    def test_category_filter(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, title="Gig", category="music")
        create_test_event(client, alice, title="Match", category="sports")
        data = _nearby(client, alice, category="sports")
        assert [e["title"] for e in data["items"]] == ["Match"]

    def test_pagination(self, client):
        alice = create_test_user(client)
        for i in range(5):
            create_test_event(client, alice, title=f"Event {i}", latitude=55.75 + i * 0.001, longitude=37.61)
        first = _nearby(client, alice, page=1, limit=2)
        last = _nearby(client, alice, page=3, limit=2)
        assert first["pagination"] == {"page": 1, "limit": 2, "total": 5, "total_pages": 3}
        assert [e["title"] for e in first["items"]] == ["Event 0", "Event 1"]
        assert [e["title"] for e in last["items"]] == ["Event 4"]

    def test_invalid_query_point(self, client):
        alice = create_test_user(client)
        resp = client.get("/api/events/nearby", params={"latitude": 0, "longitude": 200}, headers=alice["headers"])
        assert resp.status_code == 400

    def test_box_corner_outside_radius_excluded(self, client):
        alice = create_test_user(client)
        # Inside the lat/lon box around the query point but ~6.2 km away
        create_test_event(client, alice, title="Corner", latitude=55.79, longitude=37.68)
        # Due east, ~4.4 km away
        create_test_event(client, alice, title="East", latitude=55.75, longitude=37.68)
        data = _nearby(client, alice, max_distance=5000)
        assert [e["title"] for e in data["items"]] == ["East"]
        assert data["pagination"]["total"] == 1

    def test_far_events_outside_box(self, client):
        alice = create_test_user(client)
        create_test_event(client, alice, title="Paris", latitude=48.85, longitude=2.35)
        create_test_event(client, alice, title="Here", **QUERY_POINT)
        data = _nearby(client, alice, max_distance=50000)
        assert [e["title"] for e in data["items"]] == ["Here"]


class TestParticipation:
    def test_join_and_count(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client, name="Bob")
        event = create_test_event(client, alice)
        resp = client.post(f"/api/events/{event['event_id']}/participants", json={}, headers=bob["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "participation": "GOING"}

        details = client.get(f"/api/events/{event['event_id']}", headers=bob["headers"]).json()
        assert details["participants_count"] == 1
        assert details["is_participating"] is True

        participants = client.get(f"/api/events/{event['event_id']}/participants", headers=alice["headers"]).json()
        assert [p["display_name"] for p in participants["items"]] == ["Bob"]

    def test_rejoin_updates_status(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        event = create_test_event(client, alice)
        url = f"/api/events/{event['event_id']}/participants"
        client.post(url, json={"status": "GOING"}, headers=bob["headers"])
        resp = client.post(url, json={"status": "INTERESTED"}, headers=bob["headers"])
        assert resp.json()["participation"] == "INTERESTED"
        participants = client.get(url, headers=alice["headers"]).json()
        assert participants["pagination"]["total"] == 1
        assert participants["items"][0]["status"] == "INTERESTED"

    def test_invalid_participation_status(self, client):
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.post(f"/api/events/{event['event_id']}/participants", json={"status": "MAYBE"}, headers=alice["headers"])
        assert resp.status_code == 400

    def test_cannot_join_unapproved_event(self, client, monkeypatch):
        monkeypatch.setattr(settings, "EVENTS_REQUIRE_APPROVAL", True)
        alice = create_test_user(client)
        event = create_test_event(client, alice)
        resp = client.post(f"/api/events/{event['event_id']}/participants", json={}, headers=alice["headers"])
        assert resp.status_code == 400

    def test_full_event(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        carol = create_test_user(client)
        event = create_test_event(client, alice, max_participants=1)
        url = f"/api/events/{event['event_id']}/participants"
        assert client.post(url, json={}, headers=bob["headers"]).status_code == 200
        assert client.post(url, json={}, headers=carol["headers"]).status_code == 400
        # An existing participant may still change status
        assert client.post(url, json={"status": "INTERESTED"}, headers=bob["headers"]).status_code == 200

    def test_age_restriction(self, client):
        alice = create_test_user(client)
        teen = create_test_user(client, age=16)
        unknown_age = create_test_user(client)
        event = create_test_event(client, alice, min_age=18)
        url = f"/api/events/{event['event_id']}/participants"
        assert client.post(url, json={}, headers=teen["headers"]).status_code == 400
        assert client.post(url, json={}, headers=unknown_age["headers"]).status_code == 200

    def test_leave_event(self, client):
        alice = create_test_user(client)
        bob = create_test_user(client)
        event = create_test_event(client, alice)
        url = f"/api/events/{event['event_id']}/participants"
        client.post(url, json={}, headers=bob["headers"])
        assert client.delete(url, headers=bob["headers"]).status_code == 204
        assert client.delete(url, headers=bob["headers"]).status_code == 404
        assert client.get(url, headers=alice["headers"]).json()["pagination"]["total"] == 0

    def test_join_missing_event(self, client):
        alice = create_test_user(client)
        resp = client.post("/api/events/missing/participants", json={}, headers=alice["headers"])
        assert resp.status_code == 404

    def test_delete_event_removes_participants(self, client, db):
        from andex.models.participant import Participant
        alice = create_test_user(client)
        bob = create_test_user(client)
        event = create_test_event(client, alice)
        client.post(f"/api/events/{event['event_id']}/participants", json={}, headers=bob["headers"])
        client.delete(f"/api/events/{event['event_id']}", headers=alice["headers"])
        assert db.query(Participant).count() == 0
