"""Integration tests for the parent dashboard endpoint."""

API = "/api/v1"


async def _add(client, parent, child_id, entry_type, points, reason="Test"):
    resp = await client.post(
        f"{API}/families/{parent['family_id']}/points/",
        headers=parent["headers"],
        json={"child_ids": [child_id], "type": entry_type, "points": points, "reason": reason},
    )
    assert resp.status_code == 201, resp.text


class TestParentDashboard:
    async def test_dashboard(self, client, registered_parent, children):
        p = registered_parent
        leo, mia = children
        await _add(client, p, leo["id"], "good_point", 5)
        await _add(client, p, mia["id"], "reward", 2)

        resp = await client.get(f"{API}/families/{p['family_id']}/dashboard/", headers=p["headers"])
        assert resp.status_code == 200
        data = resp.json()

        assert data["family_id"] == p["family_id"]
        assert [(c["display_name"], c["net"]) for c in data["children"]] == [("Léo", 5), ("Mia", -2)]
        assert data["stats"] == {"plus": 5, "minus": 2, "net": 3, "weekly_net": 3}

        history = data["history"]
        assert history["total_count"] == 2
        assert history["page_size"] == 10
        assert history["entries"][0]["child_display_name"] == "Mia"
        assert history["entries"][0]["created_by_display_name"] == "Test Parent"

    async def test_child_filter_and_page_clamp(self, client, registered_parent, children):
        p = registered_parent
        leo, mia = children
        await _add(client, p, leo["id"], "good_point", 5)
        await _add(client, p, mia["id"], "good_point", 1)

        resp = await client.get(
            f"{API}/families/{p['family_id']}/dashboard/",
            headers=p["headers"],
            params={"child_id": leo["id"], "page": 7},
        )
        history = resp.json()["history"]
        assert history["selected_child_id"] == leo["id"]
        assert history["current_page"] == 1
        assert [e["child_id"] for e in history["entries"]] == [leo["id"]]

    async def test_requires_pin_session(self, client, registered_parent):
        p = registered_parent
        resp = await client.get(
            f"{API}/families/{p['family_id']}/dashboard/", headers=p["auth_headers"],
        )
        assert resp.status_code == 403
