import string

from jotter.crud import generate_public_id


def _create(client, headers, **body):
    return client.post("/api/notes", json=body, headers=headers).json()["note"]


def test_public_ids_are_long_base36_tokens():
    ids = {generate_public_id() for _ in range(200)}
    assert len(ids) == 200
    for public_id in ids:
        assert len(public_id) == 26
        assert set(public_id) <= set(string.digits + string.ascii_lowercase)


def test_share_exposes_note_publicly(client, login):
    headers = login("ada@example.com", name="Ada Lovelace")
    note = _create(client, headers, title="Engine", content="<p>notes</p>")

    response = client.post(f"/api/notes/{note['id']}/share", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["note"]["is_public"] is True
    assert data["note"]["public_id"] == data["publicId"]
    assert data["publicUrl"] == f"https://jotter.test/share/{data['publicId']}"

    public = client.get(f"/api/public/{data['publicId']}")
    assert public.status_code == 200
    shared = public.json()["note"]
    assert shared["title"] == "Engine"
    assert shared["content"] == "<p>notes</p>"
    assert shared["author_name"] == "Ada Lovelace"


def test_unshare_then_reshare_issues_a_new_identifier(client, login):
    headers = login("ada@example.com")
    note = _create(client, headers)

    first_id = client.post(f"/api/notes/{note['id']}/share", headers=headers).json()["publicId"]
    unshared = client.delete(f"/api/notes/{note['id']}/share", headers=headers)
    assert unshared.status_code == 200
    assert unshared.json()["note"]["is_public"] is False
    assert unshared.json()["note"]["public_id"] is None
    assert client.get(f"/api/public/{first_id}").status_code == 404

    second_id = client.post(f"/api/notes/{note['id']}/share", headers=headers).json()["publicId"]

    assert second_id != first_id
    assert client.get(f"/api/public/{second_id}").status_code == 200
    old = client.get(f"/api/public/{first_id}")
    assert old.status_code == 404
    assert old.json() == {"error": "Note not found or not public"}


def test_unknown_public_id_is_not_found(client):
    response = client.get("/api/public/doesnotexist")
    assert response.status_code == 404
    assert response.json() == {"error": "Note not found or not public"}


def test_only_the_owner_can_share(client, login):
    ada = login("ada@example.com")
    bob = login("bob@example.com")
    note = _create(client, ada)

    assert client.post(f"/api/notes/{note['id']}/share", headers=bob).status_code == 404
    assert client.delete(f"/api/notes/{note['id']}/share", headers=bob).status_code == 404
    assert client.post(f"/api/notes/{note['id']}/share").status_code == 401
