def test_health_reports_database(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert body["timestamp"]


def test_root_banner_lists_endpoints(client):
    body = client.get("/").json()
    assert body["success"] is True
    assert body["endpoints"]["properties"] == "/properties"


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/nowhere")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Not Found"}
