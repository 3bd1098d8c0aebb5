import jwt
import pytest

from src.config import get_config

from conftest import ADMIN, ORGANIZER, OTHER_ORGANIZER


@pytest.fixture
def create(client, auth_headers):
    def _create(actor, name="Trail Fest", resource="organizers", **extra):
        response = client.post(
            f"/{resource}",
            json={"name": name, "country": "FR", **extra},
            headers=auth_headers(actor),
        )
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _create


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "service": "trail-directory"}


def test_create_requires_token(client):
    response = client.post("/organizers", json={"name": "Trail Fest", "country": "FR"})

    assert response.status_code == 401
    assert response.get_json()["error"]["code"] == 401


@pytest.mark.parametrize(
    "header",
    ["Bearer not-a-jwt", "Basic abc", "Bearer"],
)
def test_malformed_tokens_are_rejected(client, header):
    response = client.get("/organizers", headers={"Authorization": header})
    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client):
    token = jwt.encode(
        {"sub": "u1", "role": "ADMIN"},
        "another-secret-that-is-long-enough-for-hs256",
        algorithm=get_config().auth.jwt_algorithm,
    )
    response = client.get("/organizers", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_draft_lifecycle_over_http(client, auth_headers, create):
    created = create(ORGANIZER)["organizer"]
    assert created["slug"] == "trail-fest"
    assert created["status"] == "DRAFT"
    entity_url = f"/organizers/{created['id']}"

    assert client.get(entity_url).status_code == 404
    assert client.get("/organizers/slug/trail-fest").status_code == 404
    assert client.get(entity_url, headers=auth_headers(ORGANIZER)).status_code == 200

    pending = client.get("/organizers/pending", headers=auth_headers(ADMIN))
    assert [item["id"] for item in pending.get_json()["data"]] == [created["id"]]

    response = client.post(
        f"{entity_url}/approve",
        json={"notes": "Bienvenue"},
        headers=auth_headers(ADMIN),
    )
    assert response.status_code == 200
    assert response.get_json()["organizer"]["status"] == "PUBLISHED"

    public = client.get("/organizers/slug/trail-fest")
    assert public.status_code == 200
    assert public.get_json()["organizer"]["id"] == created["id"]

    history = client.get(f"{entity_url}/history", headers=auth_headers(ORGANIZER))
    assert history.get_json()["history"][0]["notes"] == "Bienvenue"

    again = client.post(f"{entity_url}/reject", headers=auth_headers(ADMIN))
    assert again.status_code == 409


def test_admin_creation_is_public_immediately(client, create):
    create(ADMIN, name="Golden Trail Series", resource="special-series")

    response = client.get("/special-series")

    body = response.get_json()
    assert [item["slug"] for item in body["data"]] == ["golden-trail-series"]
    assert body["pagination"]["total"] == 1


def test_duplicate_name_conflicts(client, auth_headers, create):
    create(ADMIN)

    response = client.post(
        "/organizers",
        json={"name": "TRAIL fest", "country": "FR"},
        headers=auth_headers(ORGANIZER),
    )

    assert response.status_code == 409


def test_validation_errors_carry_details(client, auth_headers):
    response = client.post(
        "/organizers",
        json={"name": "Trail Fest", "status": "PUBLISHED"},
        headers=auth_headers(ORGANIZER),
    )

    assert response.status_code == 400
    details = response.get_json()["error"]["details"]
    assert set(details) == {"country", "status"}


def test_non_json_body_is_rejected(client, auth_headers):
    response = client.post(
        "/organizers", data="name=Trail", headers=auth_headers(ORGANIZER)
    )
    assert response.status_code == 415


def test_json_array_body_is_rejected(client, auth_headers):
    response = client.post("/organizers", json=["x"], headers=auth_headers(ORGANIZER))
    assert response.status_code == 400


def test_update_by_non_owner_is_forbidden(client, auth_headers, create):
    created = create(ORGANIZER)["organizer"]

    response = client.patch(
        f"/organizers/{created['id']}",
        json={"description": "hijack"},
        headers=auth_headers(OTHER_ORGANIZER),
    )
    assert response.status_code == 403

    response = client.put(
        f"/organizers/{created['id']}",
        json={"name": "Trail Fest Chamonix"},
        headers=auth_headers(ORGANIZER),
    )
    assert response.status_code == 200
    assert response.get_json()["organizer"]["slug"] == "trail-fest-chamonix"


def test_moderation_requires_admin(client, auth_headers, create):
    created = create(ORGANIZER)["organizer"]

    response = client.post(
        f"/organizers/{created['id']}/approve", headers=auth_headers(ORGANIZER)
    )

    assert response.status_code == 403
    assert client.get("/organizers/pending", headers=auth_headers(ORGANIZER)).status_code == 403
    assert client.get("/organizers/pending").status_code == 401


def test_check_slug(client, create):
    create(ADMIN)

    taken = client.get("/organizers/check-slug/Trail%20Fest").get_json()
    free = client.get("/organizers/check-slug/sky-race").get_json()

    assert taken == {"slug": "trail-fest", "available": False}
    assert free == {"slug": "sky-race", "available": True}


def test_delete_flow(client, auth_headers, create):
    organizer = create(ADMIN, name="UTMB Group")["organizer"]
    event = create(
        ADMIN, name="UTMB Mont-Blanc", resource="events", organizer_id=organizer["id"]
    )["event"]
    organizer_url = f"/organizers/{organizer['id']}"

    assert client.delete(organizer_url, headers=auth_headers(ORGANIZER)).status_code == 403
    blocked = client.delete(organizer_url, headers=auth_headers(ADMIN))
    assert blocked.status_code == 409

    response = client.delete(f"/events/{event['id']}", headers=auth_headers(ADMIN))
    assert response.status_code == 204
    assert client.delete(organizer_url, headers=auth_headers(ADMIN)).status_code == 204
    assert client.get(organizer_url, headers=auth_headers(ADMIN)).status_code == 404


def test_events_filter_by_organizer(client, create):
    organizer = create(ADMIN, name="UTMB Group")["organizer"]
    create(ADMIN, name="UTMB Mont-Blanc", resource="events", organizer_id=organizer["id"])
    create(ADMIN, name="Zegama", resource="events")

    response = client.get(f"/events?organizer_id={organizer['id']}")

    assert [item["name"] for item in response.get_json()["data"]] == ["UTMB Mont-Blanc"]


def test_list_with_invalid_filter(client):
    response = client.get("/organizers?sort_order=sideways")
    assert response.status_code == 400
    assert "sort_order" in response.get_json()["error"]["details"]


def test_unknown_route_and_method(client):
    assert client.get("/nowhere").get_json()["error"]["code"] == 404
    response = client.put("/organizers")
    assert response.status_code == 405
