"""Tests for proof endpoints."""

import io

import pytest
from PIL import Image

from verao_fitness.core.cache import QueryKeys


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color="orange").save(buffer, format="PNG")
    return buffer.getvalue()


def _notifications(client, api_base, headers):
    return client.get(f"{api_base}/notifications", headers=headers).json()


def test_list_point_events(client, api_base):
    """GET /proofs/events returns the catalog grouped by category."""
    r = client.get(f"{api_base}/proofs/events")
    assert r.status_code == 200
    data = r.json()
    assert {e["value"] for e in data["GAIN"]} == {
        "perfect_meal",
        "weight_training",
        "cardio",
        "water_goal",
    }
    assert all(e["points"] < 0 for e in data["LOSE"])


def test_create_proof_requires_auth(client, api_base):
    r = client.post(f"{api_base}/proofs", data={"category": "GAIN", "event": "cardio"})
    assert r.status_code == 401


def test_create_proof_without_photo(client, api_base, auth_headers, gateway, user):
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    data = r.json()
    assert data["event_type"] == "Cardio"
    assert data["points"] == 10
    assert data["competitor_id"] == user["id"]
    assert data["photo_url"] is None

    toasts = _notifications(client, api_base, auth_headers)
    assert toasts["in_flight"] == []
    assert toasts["recent"][0]["message"] == "Proof registered!"


def test_create_proof_with_photo(client, api_base, auth_headers, gateway, png_bytes):
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "LOSE", "event": "cheat_meal"},
        files={"photo": ("pizza.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 201
    data = r.json()
    assert data["points"] == -5
    assert data["photo_url"].startswith("https://storage.test/proof_photos/")
    assert data["photo_url"].endswith(".png")
    assert "pizza" not in data["photo_url"]
    assert len(gateway.uploads) == 1


def test_event_from_other_category_is_rejected(client, api_base, auth_headers, gateway):
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "LOSE", "event": "cardio"},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid event for this category."
    assert gateway.writes == []


def test_invalid_photo_is_rejected_before_upload(client, api_base, auth_headers, gateway):
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert gateway.uploads == {}
    assert gateway.writes == []


def test_upload_failure_aborts_insert(client, api_base, auth_headers, gateway, png_bytes):
    """No proof row is written when the photo cannot be stored."""
    gateway.fail_uploads = "Bucket not found"
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("proof.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Photo upload failed."
    assert gateway.writes == []

    toasts = _notifications(client, api_base, auth_headers)
    assert toasts["in_flight"] == []
    assert toasts["recent"][0]["type"] == "error"


def test_write_failure_shows_operation_message(client, api_base, auth_headers, gateway, context):
    context.cache.set(QueryKeys.RECENT_PROOFS, ["cached"])
    gateway.fail_writes = "connection reset by peer"

    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "water_goal"},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Failed to register proof."
    assert context.cache.get(QueryKeys.RECENT_PROOFS) == ["cached"]


def test_create_proof_invalidates_dependent_views(client, api_base, auth_headers, context):
    for key in (
        QueryKeys.COMPETITORS,
        (*QueryKeys.PROOFS, "2024-01"),
        (*QueryKeys.RECENT_PROOFS, "5"),
        (*QueryKeys.WEEKLY_LEADERBOARD, "2024-01-08"),
        QueryKeys.HALL_OF_FAME,
        QueryKeys.COMPETITORS_LIST,
    ):
        context.cache.set(key, ["cached"])

    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "perfect_meal"},
        headers=auth_headers,
    )
    assert r.status_code == 201

    assert context.cache.get(QueryKeys.COMPETITORS) is None
    assert context.cache.get((*QueryKeys.PROOFS, "2024-01")) is None
    assert context.cache.get((*QueryKeys.RECENT_PROOFS, "5")) is None
    assert context.cache.get((*QueryKeys.WEEKLY_LEADERBOARD, "2024-01-08")) is None
    assert context.cache.get(QueryKeys.HALL_OF_FAME) is None
    assert context.cache.get(QueryKeys.COMPETITORS_LIST) == ["cached"]


def test_update_keeps_photo_when_none_sent(client, api_base, auth_headers, gateway, user):
    proof = gateway.add_proof(
        user["id"], "Cardio", 10, "2024-01-10T12:00:00+00:00", photo_url="https://old/photo.png"
    )
    r = client.put(
        f"{api_base}/proofs/{proof['id']}",
        data={"category": "GAIN", "event": "weight_training"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["event_type"] == "Weight training"
    assert data["photo_url"] == "https://old/photo.png"
    assert data["competitor_id"] == user["id"]


def test_update_replaces_photo(client, api_base, auth_headers, gateway, user, png_bytes):
    proof = gateway.add_proof(
        user["id"], "Cardio", 10, "2024-01-10T12:00:00+00:00", photo_url="https://old/photo.png"
    )
    r = client.put(
        f"{api_base}/proofs/{proof['id']}",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("new.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["photo_url"].endswith(".png")
    assert r.json()["photo_url"] != "https://old/photo.png"


def test_photo_key_ignores_client_path(client, api_base, auth_headers, gateway, png_bytes):
    """Directory parts of the uploaded filename never reach the storage key."""
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("../../other/evil.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 201

    [stored] = list(gateway.uploads)
    bucket, key = stored.split("/", 1)
    assert bucket == "proof_photos"
    assert "/" not in key
    assert ".." not in key
    assert key.endswith(".png")


def test_photo_key_drops_accented_name(client, api_base, auth_headers, gateway, png_bytes):
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "water_goal"},
        files={"photo": ("Férias.PNG", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 201

    [stored] = list(gateway.uploads)
    key = stored.split("/", 1)[1]
    assert key.isascii()
    assert key.endswith(".png")


def test_failed_insert_removes_uploaded_photo(client, api_base, auth_headers, gateway, png_bytes):
    gateway.fail_writes = "connection reset by peer"
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("proof.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Failed to register proof."
    assert gateway.uploads == {}
    assert len(gateway.removed) == 1


def test_failed_update_removes_new_photo(client, api_base, auth_headers, gateway, user, png_bytes):
    proof = gateway.add_proof(
        user["id"], "Cardio", 10, "2024-01-10T12:00:00+00:00", photo_url="https://old/photo.png"
    )
    gateway.fail_writes = "connection reset by peer"
    r = client.put(
        f"{api_base}/proofs/{proof['id']}",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("new.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert gateway.uploads == {}
    assert gateway.tables["proofs"][0]["photo_url"] == "https://old/photo.png"


def test_cleanup_failure_keeps_write_error(client, api_base, auth_headers, gateway, png_bytes):
    """A photo that cannot be removed does not mask the original failure."""
    gateway.fail_writes = "connection reset by peer"
    gateway.fail_removals = "storage offline"
    r = client.post(
        f"{api_base}/proofs",
        data={"category": "GAIN", "event": "cardio"},
        files={"photo": ("proof.png", png_bytes, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Failed to register proof."
    assert len(gateway.uploads) == 1


def test_cannot_change_someone_elses_proof(client, api_base, auth_headers, gateway):
    other = gateway.add_user("bruno@example.com", "secret123", "Bruno")
    proof = gateway.add_proof(other["id"], "Cardio", 10, "2024-01-10T12:00:00+00:00")

    r = client.put(
        f"{api_base}/proofs/{proof['id']}",
        data={"category": "GAIN", "event": "cardio"},
        headers=auth_headers,
    )
    assert r.status_code == 403

    r = client.delete(f"{api_base}/proofs/{proof['id']}", headers=auth_headers)
    assert r.status_code == 403
    assert len(gateway.tables["proofs"]) == 1


def test_admin_can_delete_any_proof(client, api_base, admin_headers, gateway, user):
    proof = gateway.add_proof(user["id"], "Cardio", 10, "2024-01-10T12:00:00+00:00")
    r = client.delete(f"{api_base}/proofs/{proof['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert gateway.tables["proofs"] == []


def test_delete_missing_proof(client, api_base, auth_headers):
    r = client.delete(f"{api_base}/proofs/does-not-exist", headers=auth_headers)
    assert r.status_code == 404


def test_recent_proofs_newest_first(client, api_base, auth_headers, gateway, user):
    for day in range(1, 8):
        gateway.add_proof(user["id"], "Cardio", 10, f"2024-01-{day:02d}T12:00:00+00:00")

    r = client.get(f"{api_base}/proofs/recent", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 5
    assert data[0]["created_at"].startswith("2024-01-07")
    assert data[0]["competitors"]["name"] == "Ana"


def test_recent_proofs_read_failure(client, api_base, auth_headers, gateway):
    gateway.fail_reads["proofs"] = "timeout"
    r = client.get(f"{api_base}/proofs/recent", headers=auth_headers)
    assert r.status_code == 502
    assert r.json()["detail"] == "Could not load the recent proofs."
