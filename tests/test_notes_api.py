def _me(client, headers):
    return client.get("/api/users/me", headers=headers).json()["user"]


def test_notes_require_authentication(client):
    response = client.get("/api/notes")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_garbage_token_is_rejected(client):
    response = client.get("/api/notes", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert "error" in response.json()


def test_missing_user_record_is_not_found(client, login, remove_user):
    headers = login("gone@example.com")
    remove_user(_me(client, headers)["id"])

    response = client.get("/api/notes", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_create_note_uses_defaults(client, login):
    headers = login("ada@example.com")

    response = client.post("/api/notes", json={}, headers=headers)

    assert response.status_code == 201
    note = response.json()["note"]
    assert note["title"] == "Untitled Note"
    assert note["content"] == ""
    assert note["is_public"] is False
    assert note["public_id"] is None
    assert note["user_id"] == _me(client, headers)["id"]
    assert note["id"]


def test_list_returns_own_notes_newest_first(client, login):
    ada = login("ada@example.com")
    bob = login("bob@example.com")
    client.post("/api/notes", json={"title": "first"}, headers=ada)
    client.post("/api/notes", json={"title": "second"}, headers=ada)
    client.post("/api/notes", json={"title": "not mine"}, headers=bob)

    response = client.get("/api/notes", headers=ada)

    assert response.status_code == 200
    assert [note["title"] for note in response.json()["notes"]] == ["second", "first"]


def test_update_is_partial(client, login):
    headers = login("ada@example.com")
    created = client.post("/api/notes", json={"title": "Plan", "content": "<p>a</p>"}, headers=headers).json()["note"]

    response = client.put(f"/api/notes/{created['id']}", json={"content": "<p>b</p>"}, headers=headers)

    assert response.status_code == 200
    note = response.json()["note"]
    assert note["title"] == "Plan"
    assert note["content"] == "<p>b</p>"
    assert note["updated_at"] >= created["updated_at"]


def test_update_with_no_fields_returns_note_unchanged(client, login):
    headers = login("ada@example.com")
    created = client.post("/api/notes", json={"title": "Plan"}, headers=headers).json()["note"]

    response = client.put(f"/api/notes/{created['id']}", json={}, headers=headers)

    assert response.status_code == 200
    assert response.json()["note"]["title"] == "Plan"


def test_cannot_update_someone_elses_note(client, login):
    ada = login("ada@example.com")
    bob = login("bob@example.com")
    note = client.post("/api/notes", json={"title": "Ada's"}, headers=ada).json()["note"]

    response = client.put(f"/api/notes/{note['id']}", json={"title": "Bob's now"}, headers=bob)

    assert response.status_code == 404
    assert response.json() == {"error": "Note not found"}
    assert client.get("/api/notes", headers=ada).json()["notes"][0]["title"] == "Ada's"


def test_beacon_post_accepts_plain_text_body(client, login):
    headers = login("ada@example.com")
    note = client.post("/api/notes", json={}, headers=headers).json()["note"]

    response = client.post(
        f"/api/notes/{note['id']}",
        content='{"content": "<p>saved on unload</p>"}',
        headers={**headers, "Content-Type": "text/plain;charset=UTF-8"},
    )

    assert response.status_code == 200
    assert response.json()["note"]["content"] == "<p>saved on unload</p>"


def test_delete_removes_own_note(client, login):
    headers = login("ada@example.com")
    note = client.post("/api/notes", json={}, headers=headers).json()["note"]

    response = client.delete(f"/api/notes/{note['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get("/api/notes", headers=headers).json()["notes"] == []


def test_delete_of_other_owners_note_is_a_silent_no_op(client, login):
    ada = login("ada@example.com")
    bob = login("bob@example.com")
    note = client.post("/api/notes", json={"title": "keep me"}, headers=ada).json()["note"]

    response = client.delete(f"/api/notes/{note['id']}", headers=bob)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    notes = client.get("/api/notes", headers=ada).json()["notes"]
    assert [n["id"] for n in notes] == [note["id"]]


def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["message"] == "Jotter API"


def test_malformed_beacon_body_uses_error_envelope(client, login):
    headers = login("ada@example.com")
    note = client.post("/api/notes", json={}, headers=headers).json()["note"]

    response = client.post(f"/api/notes/{note['id']}", content="{not json", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
