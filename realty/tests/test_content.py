def _page(client, headers, **overrides):
    payload = {"slug": "about", "title": "About us", "content": "<p>Hello</p>"}
    payload.update(overrides)
    res = client.post("/pages", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def _section(client, headers, **overrides):
    payload = {"title": "Hero", "content": "Welcome", "section_type": "hero"}
    payload.update(overrides)
    res = client.post("/sections", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def _service(client, headers, **overrides):
    payload = {
        "title": "Valuation",
        "description": "Free market valuation",
        "icon": "fa-chart",
        "color": "#003366",
    }
    payload.update(overrides)
    res = client.post("/services", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


# Pages


def test_page_crud(client, admin_headers):
    page = _page(client, admin_headers)
    assert client.get(f"/pages/{page['id']}").json()["data"]["slug"] == "about"
    assert client.get("/pages/slug/about").json()["data"]["id"] == page["id"]

    res = client.put(f"/pages/{page['id']}", json={"title": "About the agency"}, headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["data"]["title"] == "About the agency"
    assert res.json()["data"]["content"] == "<p>Hello</p>"

    assert client.delete(f"/pages/{page['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/pages/{page['id']}").status_code == 404


def test_page_list_hides_inactive_unless_all(client, admin_headers):
    _page(client, admin_headers, slug="b-page", title="B page")
    _page(client, admin_headers, slug="a-page", title="A page")
    _page(client, admin_headers, slug="hidden", title="Hidden", active=False)
    titles = [p["title"] for p in client.get("/pages").json()["data"]]
    assert titles == ["A page", "B page"]
    assert len(client.get("/pages", params={"all": "true"}).json()["data"]) == 3


def test_inactive_page_not_served_by_slug(client, admin_headers):
    _page(client, admin_headers, slug="draft", active=False)
    assert client.get("/pages/slug/draft").status_code == 404


def test_page_requires_slug_title_content(client, admin_headers):
    res = client.post("/pages", json={"slug": "x", "title": " ", "content": "c"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Field 'title' is required"


def test_duplicate_slug_is_rejected(client, admin_headers):
    _page(client, admin_headers)
    res = client.post(
        "/pages", json={"slug": "about", "title": "Again", "content": "c"}, headers=admin_headers
    )
    assert res.status_code == 400
    other = _page(client, admin_headers, slug="contact", title="Contact")
    res = client.put(f"/pages/{other['id']}", json={"slug": "about"}, headers=admin_headers)
    assert res.status_code == 400


def test_pages_require_auth(client):
    res = client.post("/pages", json={"slug": "x", "title": "t", "content": "c"})
    assert res.status_code == 401


def test_editor_can_manage_content(client, editor_headers):
    page = _page(client, editor_headers, slug="editor-page")
    assert page["slug"] == "editor-page"


# Sections


def test_section_crud_with_page_title(client, admin_headers):
    page = _page(client, admin_headers)
    section = _section(client, admin_headers, page_id=page["id"], meta_data={"cta": "Call us"})
    assert section["page_title"] == "About us"
    assert section["meta_data"] == {"cta": "Call us"}

    res = client.put(f"/sections/{section['id']}", json={"content": "Updated"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["content"] == "Updated"
    assert res.json()["data"]["title"] == "Hero"

    assert client.delete(f"/sections/{section['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/sections/{section['id']}").status_code == 404


def test_section_with_unknown_page(client, admin_headers):
    res = client.post(
        "/sections",
        json={"title": "T", "content": "C", "section_type": "hero", "page_id": "missing"},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_section_list_filters_and_order(client, admin_headers):
    second = _section(client, admin_headers, title="Second", sort_order=2)
    first = _section(client, admin_headers, title="First", sort_order=1)
    _section(client, admin_headers, title="Footer", section_type="footer", sort_order=0)
    _section(client, admin_headers, title="Off", sort_order=3, active=False)

    heroes = client.get("/sections", params={"type": "hero"}).json()["data"]
    assert [s["id"] for s in heroes] == [first["id"], second["id"]]
    assert len(client.get("/sections").json()["data"]) == 3
    assert len(client.get("/sections", params={"all": "true"}).json()["data"]) == 4


def test_section_sort_order_is_all_or_nothing(client, admin_headers):
    a = _section(client, admin_headers, title="A", sort_order=1)
    b = _section(client, admin_headers, title="B", sort_order=2)

    res = client.post(
        "/sections/sort-order",
        json={"sections": [{"id": a["id"], "sort_order": 9}, {"id": "ghost", "sort_order": 1}]},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert client.get(f"/sections/{a['id']}").json()["data"]["sort_order"] == 1

    res = client.post(
        "/sections/sort-order",
        json={"sections": [{"id": a["id"], "sort_order": 9}, {"id": b["id"], "sort_order": 1}]},
        headers=admin_headers,
    )
    assert res.status_code == 200
    listed = client.get("/sections").json()["data"]
    assert [s["id"] for s in listed] == [b["id"], a["id"]]


# Services


def test_service_crud(client, admin_headers):
    service = _service(client, admin_headers)
    assert client.get(f"/services/{service['id']}").json()["data"]["icon"] == "fa-chart"

    res = client.put(f"/services/{service['id']}", json={"color": "#ff0000"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["color"] == "#ff0000"
    assert res.json()["data"]["title"] == "Valuation"

    assert client.delete(f"/services/{service['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/services/{service['id']}", headers=admin_headers).status_code == 404


def test_service_list_order_and_visibility(client, admin_headers):
    late = _service(client, admin_headers, title="Rentals", sort_order=5)
    early = _service(client, admin_headers, title="Sales", sort_order=1)
    _service(client, admin_headers, title="Legacy", active=False)
    listed = client.get("/services").json()["data"]
    assert [s["id"] for s in listed] == [early["id"], late["id"]]
    assert len(client.get("/services", params={"all": "1"}).json()["data"]) == 3


def test_service_requires_icon(client, admin_headers):
    res = client.post(
        "/services",
        json={"title": "T", "description": "D", "color": "#000"},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Field 'icon' is required"
