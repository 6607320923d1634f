import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import auth

API = "/api/v1"
GALA = f"{API}/projects/spring-gala"

REGISTRATION = {
    "name": "Kim",
    "company": "ACME",
    "position": "Lead",
    "phone": "010-1234-5678",
    "email": "kim@example.com",
}


def test_health_and_security_headers(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Frame-Options"] == "DENY"
    assert client.get("/ready").json() == {"status": "ready"}


# --- auth ---

def test_login_and_me(client: TestClient, gateway):
    gateway.add_staff_role("user-owner", "mnc_admin")

    response = client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json() == {"id": "user-owner", "email": "owner@example.com", "staff_role": "mnc_admin"}


def test_login_with_wrong_password(client: TestClient):
    response = client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "nope"})
    assert response.status_code == 401


def test_logout(client: TestClient, gateway):
    assert client.post(f"{API}/auth/logout").status_code == 401
    response = client.post(f"{API}/auth/logout", headers=auth("owner"))
    assert response.json() == {"message": "Logged out successfully"}
    assert gateway.sign_outs == 1


def test_me_requires_token(client: TestClient):
    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/auth/me", headers={"Authorization": "Bearer bogus"}).status_code == 401


# --- access ---

def test_access_for_member(client: TestClient):
    body = client.get(f"{GALA}/access", headers=auth("admin")).json()
    assert body["role"] == "admin"
    assert body["can_manage_settings"] is True
    assert body["is_owner"] is False
    assert body["error"] is None


def test_access_failure_is_reported_once_per_session(client: TestClient):
    first = client.get(f"{GALA}/access", headers=auth("outsider")).json()
    second = client.get(f"{GALA}/access", headers=auth("outsider")).json()

    assert first["error"] == "not_authorized"
    assert first["redirect_to"] == "/projects"
    assert len(first["notifications"]) == 1
    assert second["error"] == "not_authorized"
    assert second["redirect_to"] is None
    assert second["notifications"] == []


def test_access_for_unknown_project(client: TestClient):
    body = client.get(f"{API}/projects/nowhere/access", headers=auth("owner")).json()
    assert body["error"] == "not_found"
    assert body["notifications"][0]["title"] == "Project not found"


def test_preview_access_for_unknown_project_is_not_found(client: TestClient):
    response = client.get(f"{API}/projects/nowhere/access", params={"preview": "true"})
    assert response.status_code == 404


def test_concurrent_requests_from_one_session_both_succeed(gateway, site):
    from eventsite.core.context import ServiceContext
    from eventsite.main import app

    async def scenario():
        gateway.hold("projects")
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            pending = [
                asyncio.ensure_future(http.get(f"{GALA}/panels/{panel}", headers=auth("editor")))
                for panel in ("program_cards", "info_cards")
            ]
            await asyncio.sleep(0.05)
            gateway.release("projects")
            return await asyncio.gather(*pending)

    app.state.context = ServiceContext(gateway)
    try:
        responses = asyncio.run(scenario())
    finally:
        app.state.context = None

    assert [r.status_code for r in responses] == [200, 200]
    assert [r.json()["panel"] for r in responses] == ["program_cards", "info_cards"]


def test_anonymous_access_has_no_role(client: TestClient):
    body = client.get(f"{GALA}/access").json()
    assert body["role"] is None
    assert body["error"] is None
    assert body["can_edit"] is False


def test_preview_grants_read_only_access(client: TestClient):
    body = client.get(f"{GALA}/access", params={"preview": "true"}).json()
    assert body["preview"] is True
    assert body["can_edit"] is True

    panel = client.get(f"{GALA}/panels/form_fields", params={"preview": "true"})
    assert panel.status_code == 200
    assert len(panel.json()["items"]) == 6

    mutation = client.post(f"{GALA}/panels/form_fields/items", params={"preview": "true"}, json={"fields": {}})
    assert mutation.status_code == 401


# --- editor panels ---

def test_editor_adds_and_reorders_items(client: TestClient):
    added = client.post(
        f"{GALA}/panels/program_cards/items",
        headers=auth("editor"),
        json={"fields": {"id": "opening", "time": "18:00", "title": "Opening"}},
    )
    assert added.status_code == 201
    client.post(
        f"{GALA}/panels/program_cards/items",
        headers=auth("editor"),
        json={"fields": {"id": "dinner", "time": "19:00", "title": "Dinner"}},
    )

    moved = client.post(f"{GALA}/panels/program_cards/drag-end", headers=auth("editor"),
                        json={"active_id": "dinner", "over_id": "opening"})
    assert [item["id"] for item in moved.json()["items"]] == ["dinner", "opening"]

    reordered = client.post(f"{GALA}/panels/program_cards/reorder", headers=auth("editor"),
                            json={"source_index": 1, "target_index": 1})
    assert [item["id"] for item in reordered.json()["items"]] == ["dinner", "opening"]

    listed = client.get(f"{GALA}/panels/program_cards", headers=auth("viewer")).json()
    assert listed["key"] == "program_cards"
    assert [item["title"] for item in listed["items"]] == ["Dinner", "Opening"]


def test_editor_item_errors(client: TestClient):
    missing = client.patch(f"{GALA}/panels/info_cards/items/nope", headers=auth("editor"), json={"fields": {}})
    assert missing.status_code == 404

    out_of_range = client.post(f"{GALA}/panels/info_cards/reorder", headers=auth("editor"),
                               json={"source_index": 0, "target_index": 3})
    assert out_of_range.status_code == 400

    unknown = client.get(f"{GALA}/panels/sponsors", headers=auth("editor"))
    assert unknown.status_code == 404


def test_stored_items_without_ids_keep_their_ids_across_reads(client: TestClient, gateway, site):
    gateway.add_setting(site["project"]["id"], "program", "program_cards",
                        json.dumps([{"time": "18:00", "title": "Opening"}, {"time": "19:00", "title": "Dinner"}]))

    first = client.get(f"{GALA}/panels/program_cards", headers=auth("editor")).json()
    second = client.get(f"{GALA}/panels/program_cards", headers=auth("editor")).json()
    assert [item["id"] for item in first["items"]] == [item["id"] for item in second["items"]]

    item_id = first["items"][1]["id"]
    updated = client.patch(f"{GALA}/panels/program_cards/items/{item_id}", headers=auth("editor"),
                           json={"fields": {"title": "Gala dinner"}})
    assert updated.status_code == 200
    assert [item["title"] for item in updated.json()["items"]] == ["Opening", "Gala dinner"]


def test_button_and_download_panels(client: TestClient):
    button = client.post(f"{GALA}/panels/bottom_buttons/items", headers=auth("editor"),
                         json={"fields": {"text": "See program", "link": "/program"}})
    assert button.status_code == 201
    assert button.json()["key"] == "home_bottom_buttons"
    assert button.json()["items"][0]["variant"] == "outline"

    client.post(f"{GALA}/panels/download_files/items", headers=auth("editor"),
                json={"fields": {"name": "Map", "url": "https://example.com/map.pdf"}})
    files = client.post(f"{GALA}/panels/download_files/items", headers=auth("editor"),
                        json={"fields": {"name": "Agenda", "url": "https://example.com/agenda.pdf"}}).json()
    assert files["key"] == "location_download_files"

    moved = client.post(f"{GALA}/panels/download_files/reorder", headers=auth("editor"),
                        json={"source_index": 1, "target_index": 0})
    assert [item["name"] for item in moved.json()["items"]] == ["Agenda", "Map"]


def test_viewer_cannot_edit_panels(client: TestClient):
    response = client.post(f"{GALA}/panels/info_cards/items", headers=auth("viewer"), json={"fields": {}})
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions. Required: can_edit"


def test_outsider_is_redirected(client: TestClient):
    response = client.get(f"{GALA}/panels/info_cards", headers=auth("outsider"))
    assert response.status_code == 403
    assert response.json()["redirect_to"] == "/projects"


# --- settings and navigation ---

def test_settings_saved_by_admin_are_public(client: TestClient):
    saved = client.put(f"{GALA}/settings", headers=auth("admin"),
                       json={"values": {"hero_title": "Spring Gala", "program_enabled": "false"}})
    assert saved.status_code == 200

    listed = client.get(f"{GALA}/settings", params={"category": "home,program"}).json()
    assert {(s["category"], s["key"], s["value"]) for s in listed} == {
        ("home", "hero_title", "Spring Gala"),
        ("program", "program_enabled", "false"),
    }

    flags = client.get(f"{GALA}/page-settings").json()
    assert flags == {"program": False, "registration": True, "location": True}

    nav = client.get(f"{API}/navigation/next",
                     params={"current": "/spring-gala", "direction": "forward", "project_slug": "spring-gala"})
    assert nav.json()["page"] == "/spring-gala/registration"


def test_editor_cannot_save_settings(client: TestClient):
    response = client.put(f"{GALA}/settings", headers=auth("editor"), json={"values": {"hero_title": "x"}})
    assert response.status_code == 403


def test_navigation_rejects_unknown_direction(client: TestClient):
    response = client.get(f"{API}/navigation/next", params={"current": "/", "direction": "up"})
    assert response.status_code == 422

    missing = client.get(f"{API}/navigation/next", params={"current": "/", "project_slug": "nowhere"})
    assert missing.status_code == 404


def test_global_page_settings(client: TestClient):
    assert client.get(f"{API}/page-settings").json() == {"program": True, "registration": True, "location": True}


# --- registrations ---

def test_public_registration_and_admin_listing(client: TestClient):
    created = client.post(f"{GALA}/registrations", json={"data": REGISTRATION})
    assert created.status_code == 201
    registration_id = created.json()["id"]

    listed = client.get(f"{GALA}/registrations", headers=auth("editor"))
    assert [r["id"] for r in listed.json()] == [registration_id]
    assert client.get(f"{GALA}/registrations", headers=auth("viewer")).status_code == 403

    assert client.delete(f"{GALA}/registrations/{registration_id}", headers=auth("editor")).status_code == 403
    assert client.delete(f"{GALA}/registrations/{registration_id}", headers=auth("admin")).status_code == 204


def test_registration_missing_required_field(client: TestClient):
    response = client.post(f"{GALA}/registrations", json={"data": {"name": "Kim"}})
    assert response.status_code == 422


def test_registration_closed_when_page_disabled(client: TestClient, gateway, site):
    gateway.add_setting(site["project"]["id"], "registration", "registration_enabled", "false")
    response = client.post(f"{GALA}/registrations", json={"data": REGISTRATION})
    assert response.status_code == 403


def test_registration_closes_after_flag_change_with_warm_cache(client: TestClient):
    assert client.get(f"{GALA}/page-settings").json()["registration"] is True

    saved = client.put(f"{GALA}/settings", headers=auth("admin"), json={"values": {"registration_enabled": "false"}})
    assert saved.status_code == 200

    response = client.post(f"{GALA}/registrations", json={"data": REGISTRATION})
    assert response.status_code == 403


def test_registration_check_and_qr_verify(client: TestClient):
    created = client.post(f"{GALA}/registrations", json={"data": REGISTRATION}).json()
    assert created["phone"] == "01012345678"

    found = client.post(f"{GALA}/registrations/check", json={"name": " Kim ", "phone": "010-1234-5678"})
    assert found.status_code == 200
    assert found.json()["id"] == created["id"]

    wrong = client.post(f"{GALA}/registrations/check", json={"name": "Kim", "phone": "010-0000-0000"})
    assert wrong.status_code == 404

    verified = client.get(f"{GALA}/registrations/verify/{created['id']}")
    assert verified.json()["name"] == "Kim"
    assert client.get(f"{GALA}/registrations/verify/unknown").status_code == 404


def test_duplicate_groups_and_bulk_delete(client: TestClient):
    first = client.post(f"{GALA}/registrations", json={"data": REGISTRATION}).json()
    second = client.post(f"{GALA}/registrations", json={"data": {**REGISTRATION, "name": "KIM "}}).json()
    client.post(f"{GALA}/registrations", json={"data": {**REGISTRATION, "name": "Lee"}})

    groups = client.get(f"{GALA}/registrations/duplicates", params={"fields": "name,phone"}, headers=auth("admin"))
    assert groups.status_code == 200
    assert len(groups.json()) == 1
    assert groups.json()[0]["key"] == "kim|||01012345678"
    assert {r["id"] for r in groups.json()[0]["registrations"]} == {first["id"], second["id"]}

    assert client.get(f"{GALA}/registrations/duplicates", params={"fields": "name"},
                      headers=auth("editor")).status_code == 403

    deleted = client.post(f"{GALA}/registrations/bulk-delete", headers=auth("admin"),
                          json={"ids": [second["id"], "missing"]})
    assert deleted.json() == {"deleted": 1}
    assert client.get(f"{GALA}/registrations/duplicates", params={"fields": "name,phone"},
                      headers=auth("admin")).json() == []


def test_registration_stream_pushes_new_entries(client: TestClient):
    with client.websocket_connect(f"{GALA}/registrations/stream?token=token-editor") as websocket:
        initial = websocket.receive_json()
        assert initial == {"registrations": [], "notifications": []}

        client.post(f"{GALA}/registrations", json={"data": REGISTRATION})
        update = websocket.receive_json()

    assert [r["name"] for r in update["registrations"]] == ["Kim"]
    assert update["notifications"][0]["description"] == "Kim has registered"


def test_streams_reject_non_editors(client: TestClient):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"{GALA}/registrations/stream?token=token-viewer") as websocket:
            websocket.receive_json()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"{GALA}/settings/stream?categories=home") as websocket:
            websocket.receive_json()


def test_settings_stream_pushes_on_change(client: TestClient):
    with client.websocket_connect(f"{GALA}/settings/stream?categories=home&token=token-admin") as websocket:
        assert websocket.receive_json() == {"settings": []}

        client.put(f"{GALA}/settings", headers=auth("admin"), json={"values": {"hero_title": "Welcome"}})
        update = websocket.receive_json()

    assert [s["key"] for s in update["settings"]] == ["hero_title"]


# --- projects and members ---

def test_member_sees_own_projects(client: TestClient, gateway):
    gateway.add_project("other-event")
    projects = client.get(f"{API}/projects", headers=auth("viewer")).json()
    assert [p["slug"] for p in projects] == ["spring-gala"]


def test_project_managers_create_projects(client: TestClient, gateway):
    assert client.post(f"{API}/projects", headers=auth("owner"),
                       json={"slug": "summer-fair", "name": "Summer Fair"}).status_code == 403

    gateway.add_staff_role("user-outsider", "master")
    created = client.post(f"{API}/projects", headers=auth("outsider"), json={"slug": "summer-fair", "name": "Summer Fair"})
    assert created.status_code == 201

    access = client.get(f"{API}/projects/summer-fair/access", headers=auth("outsider")).json()
    assert access["role"] == "owner"

    everything = client.get(f"{API}/projects", headers=auth("outsider")).json()
    assert {p["slug"] for p in everything} == {"spring-gala", "summer-fair"}

    assert client.delete(f"{API}/projects/summer-fair", headers=auth("outsider")).status_code == 204
    assert client.delete(f"{API}/projects/summer-fair", headers=auth("outsider")).status_code == 404


def test_members_listing_and_invites(client: TestClient, gateway):
    gateway.add_user("token-guest", "user-guest", "guest@example.com")

    members = client.get(f"{GALA}/members", headers=auth("viewer")).json()
    assert {m["role"] for m in members} == {"owner", "admin", "editor", "viewer"}
    assert all(m["profile"]["email"].endswith("@example.com") for m in members)

    invited = client.post(f"{GALA}/members", headers=auth("admin"), json={"email": "guest@example.com", "role": "editor"})
    assert invited.status_code == 201
    assert client.post(f"{GALA}/members", headers=auth("admin"),
                       json={"email": "guest@example.com"}).status_code == 400
    assert client.post(f"{GALA}/members", headers=auth("editor"),
                       json={"email": "outsider@example.com"}).status_code == 403

    member_id = invited.json()["id"]
    promoted = client.put(f"{GALA}/members/{member_id}", headers=auth("owner"), json={"role": "admin"})
    assert promoted.json()["role"] == "admin"
    assert client.delete(f"{GALA}/members/{member_id}", headers=auth("owner")).status_code == 204


def test_project_admins_edit_projects(client: TestClient, gateway):
    gateway.add_project("autumn-fair")

    edited = client.put(f"{GALA}", headers=auth("admin"),
                        json={"name": "Spring Gala 2026", "description": "Annual gala", "is_active": False})
    assert edited.status_code == 200
    assert edited.json()["name"] == "Spring Gala 2026"
    assert edited.json()["is_active"] is False

    assert client.put(f"{GALA}", headers=auth("editor"), json={"name": "x"}).status_code == 403
    assert client.put(f"{GALA}", headers=auth("admin"), json={"slug": "autumn-fair"}).status_code == 400

    renamed = client.put(f"{GALA}", headers=auth("owner"), json={"slug": "spring-gala-2026"})
    assert renamed.json()["slug"] == "spring-gala-2026"
    assert client.get(f"{API}/projects/spring-gala-2026/access", headers=auth("owner")).json()["role"] == "owner"


def test_new_project_copies_template_settings(client: TestClient, gateway):
    template = gateway.add_project("default")
    gateway.add_setting(template["id"], "home", "hero_title", "Welcome")
    gateway.add_setting(template["id"], "program", "program_enabled", "false")
    gateway.add_staff_role("user-owner", "mnc_admin")

    created = client.post(f"{API}/projects", headers=auth("owner"), json={"slug": "summer-fair", "name": "Summer Fair"})
    assert created.status_code == 201

    settings = client.get(f"{API}/projects/summer-fair/settings", params={"category": "home,program"}).json()
    assert {(s["key"], s["value"]) for s in settings} == {("hero_title", "Welcome"), ("program_enabled", "false")}
    assert all(s["project_id"] == created.json()["id"] for s in settings)

    duplicate = client.post(f"{API}/projects", headers=auth("owner"), json={"slug": "summer-fair", "name": "Again"})
    assert duplicate.status_code == 400


# --- staff administration ---

def test_staff_approve_and_reject_sign_ups(client: TestClient, gateway):
    gateway.add_staff_role("user-owner", "mnc_admin")
    gateway.add_user("token-newcomer", "user-newcomer", "newcomer@example.com")
    gateway.add_user("token-spammer", "user-spammer", "spammer@example.com")

    assert client.get(f"{API}/users", headers=auth("admin")).status_code == 403

    pending = client.get(f"{API}/users", params={"pending": "true"}, headers=auth("owner")).json()
    assert {"user-newcomer", "user-spammer"} <= {u["user_id"] for u in pending}

    approved = client.post(f"{API}/users/user-newcomer/approve", headers=auth("owner"))
    assert approved.json()["approved"] is True
    assert client.post(f"{API}/users/user-newcomer/reject", headers=auth("owner")).status_code == 400

    assert client.post(f"{API}/users/user-spammer/reject", headers=auth("owner")).status_code == 204
    remaining = {u["user_id"] for u in client.get(f"{API}/users", headers=auth("owner")).json()}
    assert "user-spammer" not in remaining
    assert "user-newcomer" in remaining


def test_master_grants_and_revokes_staff_roles(client: TestClient, gateway):
    gateway.add_staff_role("user-owner", "master")
    gateway.add_staff_role("user-admin", "mnc_admin")

    assert client.put(f"{API}/users/user-editor/staff-role", headers=auth("admin"),
                      json={"role": "project_staff"}).status_code == 403

    granted = client.put(f"{API}/users/user-editor/staff-role", headers=auth("owner"), json={"role": "mnc_admin"})
    assert granted.json()["staff_role"] == "mnc_admin"
    assert granted.json()["is_admin"] is True

    revoked = client.put(f"{API}/users/user-editor/staff-role", headers=auth("owner"), json={"role": None})
    assert revoked.json()["staff_role"] is None

    assert client.put(f"{API}/users/user-owner/staff-role", headers=auth("owner"),
                      json={"role": None}).status_code == 400
    assert client.put(f"{API}/users/user-editor/staff-role", headers=auth("owner"),
                      json={"role": "superuser"}).status_code == 422
