"""Integration tests for the /api/v1/families/{id}/members endpoints."""

import uuid

API = "/api/v1"


def _url(parent: dict, suffix: str = "") -> str:
    return f"{API}/families/{parent['family_id']}/members/{suffix}"


class TestListMembers:
    async def test_list_ordered_by_name(self, client, registered_parent, children):
        resp = await client.get(_url(registered_parent), headers=registered_parent["headers"])
        assert resp.status_code == 200
        names = [m["display_name"] for m in resp.json()]
        assert names == sorted(names)
        assert set(names) == {"Léo", "Mia", "Test Parent"}

    async def test_pin_hash_not_exposed(self, client, registered_parent, children):
        resp = await client.get(_url(registered_parent), headers=registered_parent["headers"])
        assert all("pin_hash" not in m for m in resp.json())


class TestCreateMember:
    async def test_create_child(self, client, registered_parent):
        resp = await client.post(_url(registered_parent), headers=registered_parent["headers"], json={
            "display_name": "Zoe", "avatar_key": "fox", "pin": "5555",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["role"] == "child"
        assert data["is_active"] is True
        assert data["family_id"] == registered_parent["family_id"]

    async def test_duplicate_pin_conflict(self, client, registered_parent, children):
        resp = await client.post(_url(registered_parent), headers=registered_parent["headers"], json={
            "display_name": "Copycat", "pin": children[0]["pin"],
        })
        assert resp.status_code == 409

    async def test_invalid_pin(self, client, registered_parent):
        resp = await client.post(_url(registered_parent), headers=registered_parent["headers"], json={
            "display_name": "Zoe", "pin": "12",
        })
        assert resp.status_code == 422

    async def test_requires_pin_session(self, client, registered_parent):
        resp = await client.post(_url(registered_parent), headers=registered_parent["auth_headers"], json={
            "display_name": "Zoe", "pin": "5555",
        })
        assert resp.status_code == 403


class TestUpdateMember:
    async def test_deactivate_and_rename(self, client, registered_parent, children):
        leo = children[0]
        resp = await client.put(
            _url(registered_parent, leo["id"]),
            headers=registered_parent["headers"],
            json={"display_name": "Leo", "is_active": False},
        )
        assert resp.status_code == 200
        assert resp.json()["display_name"] == "Leo"
        assert resp.json()["is_active"] is False

    async def test_change_pin_allows_login_with_new_pin(self, client, registered_parent, children):
        leo = children[0]
        resp = await client.put(
            _url(registered_parent, leo["id"]),
            headers=registered_parent["headers"],
            json={"pin": "7777"},
        )
        assert resp.status_code == 200

        login = await client.post(f"{API}/auth/login-pin", json={"member_id": leo["id"], "pin": "7777"})
        assert login.status_code == 200

    async def test_update_unknown_member(self, client, registered_parent):
        resp = await client.put(
            _url(registered_parent, str(uuid.uuid4())),
            headers=registered_parent["headers"],
            json={"display_name": "Ghost"},
        )
        assert resp.status_code == 404


class TestDeleteMember:
    async def test_delete_without_history(self, client, registered_parent, children):
        mia = children[1]
        resp = await client.delete(_url(registered_parent, mia["id"]), headers=registered_parent["headers"])
        assert resp.status_code == 204

        resp = await client.get(_url(registered_parent, mia["id"]), headers=registered_parent["headers"])
        assert resp.status_code == 404

    async def test_delete_with_history_conflicts(self, client, registered_parent, children):
        leo = children[0]
        add = await client.post(
            f"{API}/families/{registered_parent['family_id']}/points/",
            headers=registered_parent["headers"],
            json={"child_ids": [leo["id"]], "type": "good_point", "points": 2, "reason": "Helped"},
        )
        assert add.status_code == 201

        resp = await client.delete(_url(registered_parent, leo["id"]), headers=registered_parent["headers"])
        assert resp.status_code == 409

    async def test_cannot_delete_self(self, client, registered_parent):
        resp = await client.delete(
            _url(registered_parent, registered_parent["member_id"]),
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 409
