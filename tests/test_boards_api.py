def test_health_reports_scheduler(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] is True
    assert body["scheduler"]["enabled"] is False
    assert client.get("/api/v1/health/scheduler").json()["running"] is False


def test_board_crud_with_default_columns(client):
    response = client.post("/api/v1/boards", json={"title": "  Marketing  "})
    assert response.status_code == 201
    board = response.json()
    assert board["title"] == "Marketing"
    assert [c["title"] for c in board["columns"]] == ["To Do", "In Progress", "Done"]

    response = client.put(f"/api/v1/boards/{board['id']}", json={"background_color": "#ff0000"})
    assert response.json()["background_color"] == "#ff0000"
    assert response.json()["title"] == "Marketing"

    ids = [b["id"] for b in client.get("/api/v1/boards").json()]
    assert board["id"] in ids

    assert client.delete(f"/api/v1/boards/{board['id']}").json() == {"status": "deleted", "id": board["id"]}
    assert client.get(f"/api/v1/boards/{board['id']}").status_code == 404


def test_column_config_sets_and_clears_wip_limit(client, board):
    column_id = board["columns"][0]["id"]

    response = client.put(f"/api/v1/columns/{column_id}/config", json={"wip_limit": 3})
    assert response.status_code == 200
    assert response.json()["wip_limit"] == 3

    response = client.put(f"/api/v1/columns/{column_id}/config", json={"wip_limit": 0, "is_collapsed": True})
    assert response.json()["wip_limit"] is None
    assert response.json()["is_collapsed"] is True

    assert client.put(f"/api/v1/columns/{column_id}/config", json={"wip_limit": -1}).status_code == 422


def test_add_column_appends_after_existing(client, board):
    response = client.post(f"/api/v1/boards/{board['id']}/columns", json={"title": "Blocked"})
    assert response.status_code == 201
    assert response.json()["order_index"] == 3


def test_cards_are_ordered_and_moved(client, board):
    todo, doing, done = (c["id"] for c in board["columns"])
    first = client.post("/api/v1/cards", json={"column_id": todo, "title": "First"}).json()
    second = client.post("/api/v1/cards", json={"column_id": todo, "title": "Second"}).json()
    assert (first["order_index"], second["order_index"]) == (1, 2)

    response = client.put(f"/api/v1/cards/{second['id']}/move", json={"column_id": doing, "order_index": 0})
    assert response.status_code == 200
    assert response.json()["column_id"] == doing

    cards = client.get(f"/api/v1/boards/{board['id']}/cards").json()
    assert [(c["title"], c["column_id"]) for c in cards] == [("First", todo), ("Second", doing)]

    assert client.put(f"/api/v1/cards/{first['id']}/move", json={"column_id": 987654}).status_code == 404


def test_card_update_rejects_bad_priority(client, board):
    column_id = board["columns"][0]["id"]
    card = client.post("/api/v1/cards", json={"column_id": column_id, "title": "Card"}).json()
    response = client.put(f"/api/v1/cards/{card['id']}", json={"priority": "whenever"})
    assert response.status_code == 400
    assert client.get(f"/api/v1/cards/{card['id']}").json()["priority"] == "medium"


def test_activity_trail_records_card_changes(client, board):
    column_id = board["columns"][0]["id"]
    card = client.post("/api/v1/cards", json={"column_id": column_id, "title": "Audit me"}).json()
    client.put(f"/api/v1/cards/{card['id']}", json={"priority": "high"})

    entries = client.get(f"/api/v1/boards/{board['id']}/activity").json()
    card_entries = [e for e in entries if e["entity_type"] == "card"]
    assert [e["action_type"] for e in card_entries] == ["update", "create"]
    assert card_entries[0]["old_values"] == {"priority": "medium"}
    assert card_entries[0]["new_values"] == {"priority": "high"}


def test_templates_and_card_from_template(client, board):
    response = client.post("/api/v1/templates", json={"board_id": board["id"], "name": "Bug"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Board ID, name, and title are required"

    response = client.post(
        "/api/v1/templates",
        json={"board_id": board["id"], "name": "Bug", "title": "Bug report", "priority": "nope"},
    )
    assert response.status_code == 400

    template = client.post(
        "/api/v1/templates",
        json={
            "board_id": board["id"],
            "name": "Bug",
            "title": "Bug report",
            "description": "Steps to reproduce",
            "priority": "high",
            "labels": ["bug"],
        },
    ).json()
    assert [t["id"] for t in client.get(f"/api/v1/boards/{board['id']}/templates").json()] == [template["id"]]

    card = client.post(
        "/api/v1/cards",
        json={"column_id": board["columns"][0]["id"], "title": "Crash on save", "template_id": template["id"]},
    ).json()
    assert card["description"] == "Steps to reproduce"
    assert card["priority"] == "high"

    assert client.delete(f"/api/v1/templates/{template['id']}").status_code == 200
    assert client.delete(f"/api/v1/templates/{template['id']}").status_code == 404


def test_push_subscription_lifecycle(client):
    headers = {"X-User-Name": "push-tester"}
    body = {"endpoint": "https://push.example/abc", "keys": {"p256dh": "key", "auth": "secret"}}

    assert client.post("/api/v1/push/subscribe", json=body).status_code == 400

    response = client.post("/api/v1/push/subscribe", json=body, headers=headers)
    assert response.status_code == 200
    assert response.json()["user_id"] == "push-tester"
    assert response.json()["active"] is True

    # subscribing again updates the same row
    again = client.post("/api/v1/push/subscribe", json=body, headers=headers).json()
    assert again["id"] == response.json()["id"]

    result = client.post("/api/v1/push/test", headers=headers).json()
    assert result == {"success": True, "sent": 1, "total": 1}

    assert client.post("/api/v1/push/unsubscribe", json={"endpoint": body["endpoint"]}, headers=headers).json() == {
        "status": "unsubscribed"
    }
    subs = client.get("/api/v1/push/subscriptions", headers=headers).json()
    assert [s["active"] for s in subs] == [False]

    response = client.post("/api/v1/push/unsubscribe", json={"endpoint": "https://push.example/none"}, headers=headers)
    assert response.status_code == 404
