from app.features.permissions.models import Role


def test_unknown_user_is_not_allowed_for_regular_users(client, identity, cast):
    identity.login("pfy")
    response = client.get("/users/doesnotexist")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "not-allowed"


def test_unknown_user_is_not_found_for_groot(client, identity, cast):
    identity.login("groot", groot=True)
    response = client.get("/users/doesnotexist")
    assert response.status_code == 404
    body = response.json()["error"]
    assert body == {
        "code": "entity-not-found",
        "message": "User not found",
        "status": 404,
        "details": {},
    }


def test_existing_unrelated_user_looks_the_same_as_a_missing_one(client, identity, cast):
    identity.login("roy")
    existing = client.get("/users/pfy")
    missing = client.get("/users/doesnotexist")
    assert existing.status_code == missing.status_code == 403
    assert existing.json() == missing.json()


def test_mentors_can_see_their_mentees(client, identity, cast, seed):
    seed.group("bastards", {"bofh": Role.SUPERMENTOR, "moss": Role.MENTOR, "pfy": Role.MENTEE})

    for mentor in ("bofh", "moss"):
        identity.login(mentor)
        response = client.get("/users/pfy")
        assert response.status_code == 200
        assert response.json()["id"] == "pfy"

    # but not the other way round
    identity.login("pfy")
    assert client.get("/users/bofh").status_code == 403


def test_users_can_see_themselves(client, identity, cast):
    identity.login("pfy")
    response = client.get("/users/pfy")
    assert response.status_code == 200
    assert response.json()["email"] == "pfy@example.com"


def test_list_users_is_groot_only(client, identity, cast):
    identity.login("bofh")
    assert client.get("/users/").status_code == 403

    identity.login("groot", groot=True)
    response = client.get("/users/")
    assert response.status_code == 200
    assert {user["id"] for user in response.json()} == {"groot", "bofh", "moss", "pfy", "roy"}


def test_current_user_profile(client, identity, cast):
    identity.login("groot", groot=True)
    response = client.get("/users/me")
    assert response.status_code == 200
    assert response.json()["id"] == "groot"
    assert response.json()["is_groot"] is True

    identity.login("pfy")
    assert client.get("/users/me").json()["is_groot"] is False


def test_update_current_user_profile(client, identity, cast):
    identity.login("pfy")
    response = client.patch("/users/me", json={"name": "Pimply-Faced Youth"})
    assert response.status_code == 200
    assert response.json()["name"] == "Pimply-Faced Youth"
    assert client.get("/users/me").json()["name"] == "Pimply-Faced Youth"
