# tests/test_tickets.py
from ticketdesk.ticket import services as ticket_service


def _insert(client, **value):
    r = client.post("/api/tickets/insert", json={"value": value})
    assert r.status_code == 200
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_ping_returns_server_time(client):
    r = client.get("/api/tickets/ping")
    assert r.status_code == 200
    data = r.json()
    assert data["ok"] is True
    assert "T" in data["time"]


def test_insert_assigns_ids_and_uses_wire_names(client):
    data = _insert(client, Title="T1", Status="Open", DueDate="2024-06-01T00:00:00Z")
    assert data["TicketId"] > 0
    assert data["PublicTicketId"] == "NET-1001"
    assert data["Title"] == "T1"
    assert data["CreatedAt"] is not None
    assert data["UpdatedAt"] is not None
    assert data["DueDate"].startswith("2024-06-01T00:00:00")

    second = _insert(client, Title="T2")
    assert second["TicketId"] != data["TicketId"]
    assert second["PublicTicketId"] == "NET-1002"


def test_list_returns_bare_array(client):
    _insert(client, Title="A")
    r = client.post("/api/tickets", json={})
    assert r.status_code == 200
    assert isinstance(r.json(), list)
    assert r.json()[0]["Title"] == "A"


def test_list_with_counts_and_paging(client):
    for title in ("A", "B", "C", "D", "E"):
        _insert(client, Title=title, Status="Open")

    r = client.post("/api/tickets", json={"skip": 2, "take": 2, "requiresCounts": True})
    assert r.status_code == 200
    data = r.json()
    assert data["count"] == 5
    assert [t["Title"] for t in data["result"]] == ["C", "D"]


def test_list_grouped(client):
    for status in ("Open", "Closed", "Open", "Open", "Closed"):
        _insert(client, Title=status, Status=status)

    r = client.post("/api/tickets", json={"group": ["Status"], "skip": 0, "take": 1})
    data = r.json()
    assert data["count"] == 5
    assert [(g["key"], g["count"]) for g in data["result"]] == [("Open", 3), ("Closed", 2)]
    assert data["result"][0]["items"][0]["Status"] == "Open"


def test_list_filter_unknown_field_is_400(client):
    r = client.post("/api/tickets", json={"where": [{"field": "Nope", "operator": "equal", "value": 1}]})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "INVALID_QUERY"


def test_list_filter_first_operator_setting(client, settings_override):
    _insert(client, Title="A", Status="Open", Priority="High")
    _insert(client, Title="B", Status="Open", Priority="Low")
    where = [
        {"field": "Status", "operator": "equal", "value": "Open"},
        {"field": "Priority", "operator": "notequal", "value": "High"},
    ]

    r = client.post("/api/tickets", json={"where": where})
    assert [t["Title"] for t in r.json()] == ["B"]

    settings_override(FILTER_FIRST_OPERATOR_GOVERNS=True)
    r = client.post("/api/tickets", json={"where": where})
    assert [t["Title"] for t in r.json()] == ["A"]


def test_update_ticket(client):
    created = _insert(client, Title="To Update", Status="Open")

    r = client.post("/api/tickets/update", json={"value": {**created, "Title": "Updated", "Status": "Closed", "UpdatedAt": None}})
    assert r.status_code == 200
    data = r.json()
    assert data["TicketId"] == created["TicketId"]
    assert data["Title"] == "Updated"

    listed = client.post("/api/tickets", json={}).json()
    assert listed[0]["Status"] == "Closed"
    assert listed[0]["PublicTicketId"] == created["PublicTicketId"]


def test_update_requires_value_and_id(client):
    r = client.post("/api/tickets/update", json={})
    assert r.status_code == 400
    assert r.json()["errors"][0]["msg"] == "Invalid payload."

    r = client.post("/api/tickets/update", json={"value": {"Title": "no id"}})
    assert r.status_code == 400
    assert r.json()["errors"][0]["msg"] == "TicketId is required for update."


def test_update_missing_ticket_still_succeeds(client):
    r = client.post("/api/tickets/update", json={"value": {"TicketId": 9999999, "Title": "ghost"}})
    assert r.status_code == 200
    assert client.post("/api/tickets", json={}).json() == []


def test_insert_requires_value(client):
    r = client.post("/api/tickets/insert", json={"action": "insert"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["code"] == "INVALID_PAYLOAD"


def test_remove_ticket(client):
    created = _insert(client, Title="To Delete")

    r = client.post("/api/tickets/remove", json={"key": str(created["TicketId"]), "keyColumn": "TicketId", "action": "remove"})
    assert r.status_code == 200
    assert r.json() == {"TicketId": created["TicketId"]}
    assert client.post("/api/tickets", json={}).json() == []

    # removing again is not an error
    r = client.post("/api/tickets/remove", json={"key": created["TicketId"]})
    assert r.status_code == 200


def test_remove_key_validation(client):
    r = client.post("/api/tickets/remove", json={"keyColumn": "TicketId"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["msg"] == "Key is required."

    r = client.post("/api/tickets/remove", json={"key": "abc"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["msg"] == "Invalid key format."


def test_batch_changed_added_deleted(client):
    keep = _insert(client, Title="keep")
    drop = _insert(client, Title="drop")

    r = client.post("/api/tickets/batch", json={
        "changed": [{**keep, "Title": "kept"}],
        "added": [{"Title": "fresh"}],
        "deleted": [{"TicketId": drop["TicketId"]}],
        "action": "batch",
    })
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["added"][0]["TicketId"] > 0
    assert data["added"][0]["Title"] == "fresh"
    assert data["deleted"] == [drop["TicketId"]]

    titles = [t["Title"] for t in client.post("/api/tickets", json={}).json()]
    assert titles == ["kept", "fresh"]


def test_insert_validation_error_is_422(client):
    r = client.post("/api/tickets/insert", json={"value": {"DueDate": "not a date"}})
    assert r.status_code == 422


def test_list_bad_query_rejected_before_store_read(client, monkeypatch):
    def fail_list(db):
        raise AssertionError("store read for a malformed query")

    monkeypatch.setattr(ticket_service, "list_tickets", fail_list)

    r = client.post("/api/tickets", json={"sorted": [{"name": "Nope"}]})
    assert r.status_code == 400
    assert r.json()["errors"][0]["code"] == "INVALID_QUERY"

    r = client.post("/api/tickets", json={"group": ["Status", "Nope"]})
    assert r.status_code == 400


def test_list_non_text_sort_direction_is_422(client):
    r = client.post("/api/tickets", json={"sorted": [{"name": "Title", "direction": 1}]})
    assert r.status_code == 422
