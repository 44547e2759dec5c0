from realty.models.property import Property
from realty.schemas.property import (
    ActiveFilter,
    PropertyFilters,
    clamp_pagination,
    pagination_meta,
    parse_bound,
    parse_tristate,
)


def _ids(res):
    assert res.status_code == 200, res.text
    return {p["id"] for p in res.json()["data"]}


def test_list_envelope_and_meta(client, create_property):
    for i in range(3):
        create_property(title=f"Listing number {i}")
    res = client.get("/properties", params={"limit": 2})
    body = res.json()
    assert body["success"] is True
    assert len(body["data"]) == 2
    assert body["meta"] == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "pages": 2,
        "hasPrev": False,
        "hasNext": True,
    }


def test_pages_add_up_to_total(client, create_property):
    for i in range(7):
        create_property(title=f"Listing number {i}")
    first = client.get("/properties", params={"limit": 3}).json()
    seen = []
    for page in range(1, first["meta"]["pages"] + 1):
        seen += client.get("/properties", params={"limit": 3, "page": page}).json()["data"]
    assert len(seen) == first["meta"]["total"] == 7
    assert len({p["id"] for p in seen}) == 7


def test_garbage_pagination_is_clamped(client, create_property):
    create_property()
    res = client.get("/properties", params={"page": "-4", "limit": "abc"})
    meta = res.json()["meta"]
    assert meta["page"] == 1
    assert meta["limit"] == 16


def test_limit_is_capped(client):
    meta = client.get("/properties", params={"limit": 5000}).json()["meta"]
    assert meta["limit"] == 100


def test_empty_keyword_is_no_filter(client, create_property):
    create_property(title="Flat in the centre")
    create_property(title="House by the sea", property_type="КЪЩА")
    everything = _ids(client.get("/properties"))
    assert _ids(client.get("/properties", params={"keyword": ""})) == everything
    assert _ids(client.get("/properties", params={"keyword": "   "})) == everything


def test_keyword_matches_cyrillic_case_insensitively(client, create_property):
    match = create_property(title="Просторен апартамент", city_region="Варна")
    create_property(title="Office space", property_type="ОФИС", city_region="Пловдив")
    assert _ids(client.get("/properties", params={"keyword": "ПРОСТОРЕН"})) == {match["id"]}
    assert _ids(client.get("/properties", params={"q": "варна"})) == {match["id"]}


def test_keyword_matches_property_code(client, create_property):
    first = create_property()
    create_property()
    assert _ids(client.get("/properties", params={"keyword": "prop-001"})) == {first["id"]}


def test_keyword_wildcards_are_literal(client, create_property):
    create_property(title="Plain listing")
    assert _ids(client.get("/properties", params={"keyword": "%"})) == set()


def test_city_region_and_district_are_substring_matches(client, create_property):
    sofia = create_property(city_region="гр. София", district="Младост 1")
    create_property(city_region="Бургас", district="Център")
    assert _ids(client.get("/properties", params={"city_region": "софия"})) == {sofia["id"]}
    assert _ids(client.get("/properties", params={"city": "София"})) == {sofia["id"]}
    assert _ids(client.get("/properties", params={"district": "младост"})) == {sofia["id"]}


def test_transaction_and_property_type_are_exact(client, create_property):
    rent = create_property(transaction_type="rent")
    house = create_property(property_type="КЪЩА")
    assert _ids(client.get("/properties", params={"transaction_type": "rent"})) == {rent["id"]}
    assert _ids(client.get("/properties", params={"property_type": "КЪЩА"})) == {house["id"]}


def test_price_and_area_bounds(client, create_property):
    cheap = create_property(price=50000, area=40)
    mid = create_property(price=100000, area=80)
    dear = create_property(price=300000, area=200)
    assert _ids(client.get("/properties", params={"price_min": 60000})) == {mid["id"], dear["id"]}
    assert _ids(client.get("/properties", params={"price_max": 100000})) == {cheap["id"], mid["id"]}
    assert _ids(
        client.get("/properties", params={"area_min": 50, "area_max": 100})
    ) == {mid["id"]}


def test_invalid_bounds_are_ignored(client, create_property):
    create_property()
    create_property()
    res = client.get("/properties", params={"price_min": "abc", "area_max": "0"})
    assert len(_ids(res)) == 2


def test_featured_is_tristate(client, create_property):
    featured = create_property(featured=True)
    plain = create_property()
    assert _ids(client.get("/properties")) == {featured["id"], plain["id"]}
    assert _ids(client.get("/properties", params={"featured": "true"})) == {featured["id"]}
    assert _ids(client.get("/properties", params={"featured": "false"})) == {plain["id"]}


def test_inactive_hidden_unless_all(client, create_property):
    live = create_property()
    hidden = create_property(active=False)
    assert _ids(client.get("/properties")) == {live["id"]}
    assert _ids(client.get("/properties", params={"active": "true"})) == {live["id"]}
    assert _ids(client.get("/properties", params={"active": "all"})) == {live["id"], hidden["id"]}


def test_null_sort_order_goes_last(client, db_session, create_property):
    ordered = create_property(title="Has position")
    unordered = create_property(title="No position")
    db_session.query(Property).filter(Property.id == unordered["id"]).update(
        {"sort_order": None}
    )
    db_session.query(Property).filter(Property.id == ordered["id"]).update({"sort_order": 99})
    db_session.commit()
    listed = client.get("/properties").json()["data"]
    assert [p["id"] for p in listed] == [ordered["id"], unordered["id"]]


def test_filters_from_query_parsing():
    filters = PropertyFilters.from_query(
        keyword="  ",
        city_region=" Sofia ",
        price_min="10",
        price_max="-1",
        featured="yes",
        active="all",
    )
    assert filters.keyword is None
    assert filters.city_region == "Sofia"
    assert filters.price_min == 10
    assert filters.price_max is None
    assert filters.featured is True
    assert filters.active == ActiveFilter.ALL


def test_parse_helpers():
    assert parse_tristate(None) is None
    assert parse_tristate("maybe") is None
    assert parse_tristate("0") is False
    assert parse_bound("nan") is None
    assert parse_bound("12.5") == 12.5
    assert ActiveFilter.from_param("false") == ActiveFilter.ACTIVE_ONLY


def test_pagination_helpers():
    assert clamp_pagination(3, 10) == (3, 10, 20)
    assert clamp_pagination(0, 0) == (1, 1, 0)
    meta = pagination_meta(2, 10, 0)
    assert meta["pages"] == 0
    assert meta["hasPrev"] is True
    assert meta["hasNext"] is False
