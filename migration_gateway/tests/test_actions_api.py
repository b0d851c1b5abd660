import json

from fastapi.testclient import TestClient

from migration_gateway.core.signature import signature_header_for
from migration_gateway.main import create_app
from migration_gateway.tests.payloads import list_users_payload, set_password_payload, set_session_payload

LOGIN = "legacy-user@gmail.com"
FORWARDED_MISMATCH = {
    "forwardedStatusCode": 400,
    "forwardedErrorMessage": "Wrong username or password. Please try again.",
}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_signature_is_rejected_before_processing(client, fake_zitadel):
    response = client.post("/action/list-users", json=list_users_payload(LOGIN))

    assert response.status_code == 400
    assert response.json() == {"error": "Missing signature"}
    assert fake_zitadel.requests == []


def test_malformed_signature_is_rejected(post_action):
    response = post_action("/action/set-session", set_session_payload("s", "t", "pw"), signature="t=123")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature format"}


def test_invalid_signature_is_forbidden(post_action, fake_zitadel):
    response = post_action("/action/list-users", list_users_payload(LOGIN), secret="not-the-key")

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid signature"}
    assert fake_zitadel.created_bodies == []


def test_each_endpoint_uses_its_own_key(post_action):
    response = post_action(
        "/action/set-password", set_password_payload("u-1"), secret="setsession-secret"
    )

    assert response.status_code == 403


def test_signature_covers_exact_body(client):
    raw_body = json.dumps(list_users_payload(LOGIN)).encode()
    header = signature_header_for(raw_body, "listusers-secret")

    response = client.post(
        "/action/list-users",
        content=raw_body.replace(b"legacy-user", b"legacy-admin"),
        headers={"zitadel-signature": header, "Content-Type": "application/json"},
    )
    assert response.status_code == 403


def test_stale_signature_is_rejected_when_freshness_window_is_set(settings, zitadel, legacy_directory, fake_zitadel):
    app = create_app(
        settings.model_copy(update={"signature_tolerance_seconds": 300}),
        zitadel=zitadel,
        legacy_directory=legacy_directory,
    )
    raw_body = json.dumps(list_users_payload(LOGIN)).encode()
    headers = {"Content-Type": "application/json"}

    with TestClient(app) as client:
        stale = client.post(
            "/action/list-users",
            content=raw_body,
            headers={**headers, "zitadel-signature": signature_header_for(raw_body, "listusers-secret", "1000")},
        )
        fresh = client.post(
            "/action/list-users",
            content=raw_body,
            headers={**headers, "zitadel-signature": signature_header_for(raw_body, "listusers-secret")},
        )

    assert stale.status_code == 403
    assert stale.json() == {"error": "Signature expired"}
    assert fresh.status_code == 200
    assert fake_zitadel.count("POST", "/v2/users/new") == 1


def test_invalid_json_is_a_bad_request(post_action):
    response = post_action("/action/list-users", b"{not json")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON"}


def test_non_object_json_is_a_bad_request(post_action):
    response = post_action("/action/list-users", b"[1, 2, 3]")

    assert response.status_code == 400


def test_wrongly_shaped_envelope_is_a_bad_request(post_action):
    response = post_action("/action/set-session", {"request": {"checks": "password"}, "response": {}})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action payload"}


def test_null_request_is_treated_as_empty(post_action):
    payload = {"userID": "zitadel-cloud-login", "request": None, "response": {"details": {"totalResult": "0"}}}

    response = post_action("/action/list-users", payload)

    assert response.status_code == 200
    assert response.json() == payload["response"]


def test_known_user_lookup_passes_through_unchanged(post_action):
    payload = list_users_payload(LOGIN, total="1")
    payload["response"]["result"] = [{"userId": "native-1", "loginNames": [LOGIN]}]

    response = post_action("/action/list-users", payload)

    assert response.status_code == 200
    assert response.json() == payload["response"]


def test_malformed_lookup_response_passes_through_unchanged(post_action, fake_zitadel):
    payload = list_users_payload(LOGIN)
    payload["response"]["details"] = "unexpected"

    response = post_action("/action/list-users", payload)

    assert response.status_code == 200
    assert response.json() == payload["response"]
    assert fake_zitadel.created_bodies == []


def test_unknown_user_lookup_passes_through_unchanged(post_action, fake_zitadel):
    payload = list_users_payload("nobody@example.com")

    response = post_action("/action/list-users", payload)

    assert response.status_code == 200
    assert response.json() == payload["response"]
    assert fake_zitadel.requests == []


def test_wrong_password_is_forwarded_as_abort(post_action, fake_zitadel):
    fake_zitadel.add_user("u-1", "legacy-user", LOGIN, marker="migrating")
    session_id, token = fake_zitadel.add_session("u-1", LOGIN)

    response = post_action("/action/set-session", set_session_payload(session_id, token, "nope"))

    assert response.status_code == 200
    assert response.json() == FORWARDED_MISMATCH


def test_set_password_without_user_id_is_a_bad_request(post_action):
    response = post_action("/action/set-password", set_password_payload())

    assert response.status_code == 400
    assert response.json() == {"error": "Missing userId in request"}


def test_set_password_failure_is_a_server_error(post_action, fake_zitadel):
    fake_zitadel.add_user("u-1", "legacy-user", LOGIN, marker="migrating")
    fake_zitadel.fail("POST", "/v2/users/u-1/metadata/search", 502)

    response = post_action("/action/set-password", set_password_payload("u-1"))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_set_password_twice_for_migrated_user(post_action, fake_zitadel):
    fake_zitadel.add_user("u-1", "legacy-user", LOGIN, marker="true")
    payload = set_password_payload("u-1")

    first = post_action("/action/set-password", payload)
    second = post_action("/action/set-password", payload)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json() == payload["response"]
    assert fake_zitadel.count("POST", "/v2/users/u-1/metadata") == 0


def test_legacy_user_full_migration(post_action, fake_zitadel):
    lookup = post_action("/action/list-users", list_users_payload(LOGIN))

    assert lookup.status_code == 200, lookup.text
    body = lookup.json()
    assert body["details"]["totalResult"] == "1"
    assert len(body["result"]) == 1
    user_id = body["result"][0]["userId"]
    assert user_id
    assert LOGIN in body["result"][0]["loginNames"]
    assert fake_zitadel.marker(user_id) == "migrating"

    session_id, token = fake_zitadel.add_session(user_id, LOGIN)
    login = set_session_payload(session_id, token, "Password1!")
    check = post_action("/action/set-session", login)

    assert check.status_code == 200, check.text
    assert check.json() == login["response"]
    assert fake_zitadel.marker(user_id) == "true"
    assert fake_zitadel.passwords[user_id] == "Password1!"

    again = set_session_payload(session_id, token, "whatever")
    repeat = post_action("/action/set-session", again)

    assert repeat.status_code == 200
    assert repeat.json() == again["response"]
    assert fake_zitadel.passwords[user_id] == "Password1!"


def test_legacy_user_migrated_through_password_reset(post_action, fake_zitadel):
    lookup = post_action("/action/list-users", list_users_payload(LOGIN))
    user_id = lookup.json()["result"][0]["userId"]

    reset = post_action("/action/set-password", set_password_payload(user_id))

    assert reset.status_code == 200
    assert fake_zitadel.marker(user_id) == "true"

    session_id, token = fake_zitadel.add_session(user_id, LOGIN)
    payload = set_session_payload(session_id, token, "Password1!")
    assert post_action("/action/set-session", payload).json() == payload["response"]
    assert fake_zitadel.count("PATCH", f"/v2/users/{user_id}") == 0
