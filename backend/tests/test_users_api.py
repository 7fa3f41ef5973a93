from conftest import login, make_user

from app.core.database import SessionLocal
from app.services.user_repository import user_repository

ALERT = "X-userManagementApp-alert"
ERROR = "X-userManagementApp-error"


def create(client, headers, **fields):
    return client.post("/api/users", json=fields, headers=headers)


def test_create_stores_lowercase_inactive_user_and_sends_one_email(client, admin_headers, mail):
    response = create(client, admin_headers, username="Alice", email="a@x.com")

    assert response.status_code == 201
    assert response.headers["location"] == "/api/users/alice"
    assert response.headers[ALERT] == "userManagement.created"
    body = response.json()
    assert body["username"] == "alice"
    assert body["activated"] is False
    assert "hashed_password" not in body
    assert "activation_key" not in body
    assert mail.sent == ["alice"]

    session = SessionLocal()
    try:
        stored = user_repository.find_one_by_username(session, "alice")
        assert stored is not None
        assert stored.activated is False
        assert stored.activation_key
        assert stored.created_by == "admin"
    finally:
        session.close()


def test_create_scenario_rejects_duplicate_username_then_email(client, admin_headers, mail):
    first = create(client, admin_headers, username="Alice", email="a@x.com")
    assert first.status_code == 201

    second = create(client, admin_headers, username="alice", email="b@x.com")
    assert second.status_code == 400
    assert second.json()["error_key"] == "messages.error.user_exists"
    assert second.headers[ERROR] == "messages.error.user_exists"

    third = create(client, admin_headers, username="bob", email="a@x.com")
    assert third.status_code == 400
    assert third.json()["error_key"] == "messages.error.email_exists"

    assert mail.sent == ["alice"]


def test_create_with_id_is_rejected_without_side_effects(client, admin_headers, mail):
    response = create(client, admin_headers, id="abc123", username="carol", email="carol@example.com")

    assert response.status_code == 400
    assert response.json()["error_key"] == "error.id_exists"
    assert client.get("/api/users/carol").status_code == 404
    assert mail.sent == []


def test_create_username_collision_is_case_insensitive(client, admin_headers):
    create(client, admin_headers, username="dave", email="dave@example.com")

    response = create(client, admin_headers, username="DAVE", email="other@example.com")

    assert response.status_code == 400
    assert response.json()["error_key"] == "messages.error.user_exists"


def test_email_uniqueness_is_case_sensitive(client, admin_headers):
    create(client, admin_headers, username="erin", email="erin@example.com")

    response = create(client, admin_headers, username="erin2", email="Erin@example.com")

    assert response.status_code == 201


def test_email_domain_case_is_kept_and_compared_exactly(client, admin_headers):
    create(client, admin_headers, username="bob", email="bob@x.com")

    response = create(client, admin_headers, username="bob2", email="bob@X.COM")

    assert response.status_code == 201
    assert response.json()["email"] == "bob@X.COM"
    assert client.get("/api/users/bob2").json()["email"] == "bob@X.COM"


def test_create_rejects_malformed_email(client, admin_headers):
    for email in ("not-an-email", "two@@example.com", "trailing.@example.com", "a b@example.com"):
        response = create(client, admin_headers, username="wrong", email=email)
        assert response.status_code == 422, email


def test_update_of_seeded_admin_keeps_single_label_email(client, admin_headers):
    admin = client.get("/api/users/admin").json()
    assert admin["email"] == "admin@localhost"

    response = client.put("/api/users", headers=admin_headers, json={
        "id": admin["id"],
        "username": "admin",
        "email": "admin@localhost",
        "first_name": "Site",
        "activated": True,
    })

    assert response.status_code == 200
    assert response.json()["email"] == "admin@localhost"
    assert response.json()["first_name"] == "Site"
    assert response.json()["authorities"] == ["ROLE_ADMIN", "ROLE_USER"]


def test_create_with_only_unknown_authorities_gets_user_role(client, admin_headers):
    response = create(client, admin_headers, username="fiona", email="fiona@example.com",
                      authorities=["ROLE_FOO"])

    assert response.status_code == 201
    assert client.get("/api/users/fiona").json()["authorities"] == ["ROLE_USER"]


def test_create_grants_requested_known_authorities(client, admin_headers):
    response = create(
        client, admin_headers,
        username="frank", email="frank@example.com",
        authorities=["ROLE_ADMIN", "ROLE_UNKNOWN"],
    )
    assert response.status_code == 201

    fetched = client.get("/api/users/frank").json()
    assert fetched["authorities"] == ["ROLE_ADMIN"]


def test_create_defaults_to_user_authority(client, admin_headers):
    create(client, admin_headers, username="gina", email="gina@example.com")

    assert client.get("/api/users/gina").json()["authorities"] == ["ROLE_USER"]


def test_create_rejects_invalid_username(client, admin_headers):
    response = create(client, admin_headers, username="bad name!", email="bad@example.com")

    assert response.status_code == 422


def test_get_user_round_trip_returns_lowercased_username(client, admin_headers):
    create(client, admin_headers, username="HeLLo", email="hello@example.com")

    response = client.get("/api/users/HeLLo")

    assert response.status_code == 200
    assert response.json()["username"] == "hello"


def test_get_missing_user_is_not_found(client):
    assert client.get("/api/users/nobody").status_code == 404


def test_username_outside_pattern_is_not_routed(client):
    assert client.get("/api/users/not%20valid").status_code == 404


def test_update_changes_fields_and_replaces_authorities(client, admin_headers):
    created = create(client, admin_headers, username="henry", email="henry@example.com").json()

    response = client.put("/api/users", headers=admin_headers, json={
        "id": created["id"],
        "username": "Henry2",
        "email": "henry2@example.com",
        "first_name": "Henry",
        "activated": True,
        "authorities": ["ROLE_ADMIN", "ROLE_USER"],
    })

    assert response.status_code == 200
    assert response.headers[ALERT] == "userManagement.updated"
    body = response.json()
    assert body["id"] == created["id"]
    assert body["username"] == "henry2"
    assert body["email"] == "henry2@example.com"
    assert body["activated"] is True
    assert body["authorities"] == ["ROLE_ADMIN", "ROLE_USER"]


def test_update_with_own_email_succeeds(client, admin_headers):
    created = create(client, admin_headers, username="iris", email="iris@example.com").json()

    response = client.put("/api/users", headers=admin_headers, json={
        "id": created["id"],
        "username": "iris",
        "email": "iris@example.com",
        "last_name": "Smith",
    })

    assert response.status_code == 200
    assert response.json()["last_name"] == "Smith"


def test_update_to_email_of_other_user_is_rejected(client, admin_headers):
    create(client, admin_headers, username="jack", email="jack@example.com")
    kate = create(client, admin_headers, username="kate", email="kate@example.com").json()

    response = client.put("/api/users", headers=admin_headers, json={
        "id": kate["id"],
        "username": "kate",
        "email": "jack@example.com",
    })

    assert response.status_code == 400
    assert response.json()["error_key"] == "messages.error.email_exists"


def test_update_to_username_of_other_user_is_rejected(client, admin_headers):
    create(client, admin_headers, username="liam", email="liam@example.com")
    mia = create(client, admin_headers, username="mia", email="mia@example.com").json()

    response = client.put("/api/users", headers=admin_headers, json={
        "id": mia["id"],
        "username": "LIAM",
        "email": "mia@example.com",
    })

    assert response.status_code == 400
    assert response.json()["error_key"] == "messages.error.user_exists"


def test_update_of_vanished_user_is_not_found(client, admin_headers):
    response = client.put("/api/users", headers=admin_headers, json={
        "id": "does-not-exist",
        "username": "ghost",
        "email": "ghost@example.com",
    })

    assert response.status_code == 404


def test_delete_removes_user(client, admin_headers):
    create(client, admin_headers, username="nina", email="nina@example.com")

    response = client.delete("/api/users/nina", headers=admin_headers)

    assert response.status_code == 200
    assert response.headers[ALERT] == "userManagement.deleted"
    assert client.get("/api/users/nina").status_code == 404


def test_delete_absent_user_succeeds(client, admin_headers):
    response = client.delete("/api/users/ghost", headers=admin_headers)

    assert response.status_code == 200


def test_list_users_is_paginated(client, admin_headers):
    for name in ("oscar", "paula", "quinn"):
        create(client, admin_headers, username=name, email=f"{name}@example.com")

    response = client.get("/api/users", params={"page": 0, "size": 2})

    assert response.status_code == 200
    # admin + three created users
    assert response.headers["x-total-count"] == "4"
    assert [u["username"] for u in response.json()] == ["admin", "oscar"]
    link = response.headers["link"]
    assert 'page=1&size=2>; rel="next"' in link
    assert 'page=1&size=2>; rel="last"' in link
    assert 'rel="prev"' not in link

    last = client.get("/api/users", params={"page": 1, "size": 2})
    assert [u["username"] for u in last.json()] == ["paula", "quinn"]
    assert 'rel="prev"' in last.headers["link"]


def test_list_users_sorted_by_requested_column(client, admin_headers):
    create(client, admin_headers, username="uma", email="b-uma@example.com")
    create(client, admin_headers, username="vic", email="z-vic@example.com")

    response = client.get("/api/users", params={"sort": "email,desc"})

    assert response.status_code == 200
    assert [u["username"] for u in response.json()] == ["vic", "uma", "admin"]


def test_list_users_rejects_unknown_sort(client):
    for sort in ("hashed_password", "username,sideways"):
        response = client.get("/api/users", params={"sort": sort})
        assert response.status_code == 400
        assert response.json()["error_key"] == "error.invalid_sort"


def test_get_authorities_lists_roles(client, admin_headers):
    response = client.get("/api/users/authorities", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == ["ROLE_ADMIN", "ROLE_USER"]


def test_admin_routes_require_authentication(client):
    assert create(client, {}, username="rita", email="rita@example.com").status_code == 401
    assert client.delete("/api/users/admin").status_code == 401
    assert client.get("/api/users/authorities").status_code == 401


def test_admin_routes_reject_non_admin(client, mail):
    make_user("sam", password="secret")
    headers = login(client, "sam", "secret")

    assert create(client, headers, username="tina", email="tina@example.com").status_code == 403
    assert client.put("/api/users", headers=headers, json={
        "username": "sam", "email": "sam@example.com",
    }).status_code == 403
    assert client.delete("/api/users/admin", headers=headers).status_code == 403
    assert client.get("/api/users/authorities", headers=headers).status_code == 403
    assert mail.sent == []
