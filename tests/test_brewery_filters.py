import pytest
from conftest import make_brewery

from app.db.crud import filter_breweries, paginate, search_breweries
from app.models.enums import ReviewableType
from app.models.reviews import Review
from app.services.breweries import list_breweries


def _names(db, stmt):
    return [b.name for b in db.scalars(stmt).all()]


def _seed(db, user):
    make_brewery(db, name="Oak House", city="Austin", description="Barrel aged stouts.", founded_year=1890,
                 visitable=True, user_id=user.id)
    make_brewery(db, name="Pine Hall", city="Denver", location="Front Range", description="Mountain lagers.",
                 founded_year=1995, visitable=False)
    make_brewery(db, name="Cedar Works", city="Austin", description="Sours and oak-aged saisons.",
                 founded_year=2015, visitable=True)


def test_search_matches_name_only_where_expected(db, user):
    make_brewery(db, name="Oak House", city="Austin", description="Stouts.")
    make_brewery(db, name="Pine Hall", city="Denver", description="Lagers.")

    assert _names(db, search_breweries(search="Oak")) == ["Oak House"]
    assert _names(db, search_breweries(location="Denver")) == ["Pine Hall"]


def test_search_is_case_insensitive_over_name_city_description(db, user):
    _seed(db, user)

    # Newest first
    assert _names(db, search_breweries(search="OAK")) == ["Cedar Works", "Oak House"]
    assert _names(db, search_breweries(search="denver")) == ["Pine Hall"]
    assert _names(db, search_breweries()) == ["Cedar Works", "Pine Hall", "Oak House"]


def test_location_matches_city_or_location_field(db, user):
    _seed(db, user)

    assert _names(db, search_breweries(location="front range")) == ["Pine Hall"]
    assert _names(db, search_breweries(location="aus")) == ["Cedar Works", "Oak House"]
    # Both groups must hold
    assert _names(db, search_breweries(location="Austin", search="stouts")) == ["Oak House"]
    assert _names(db, search_breweries(location="Denver", search="stouts")) == []


def test_list_breweries_pages_by_twelve(db, user):
    for i in range(14):
        make_brewery(db, name=f"Brewery {i:02d}")

    first = list_breweries(db, page=1)
    assert first.total == 14
    assert len(first.items) == 12
    assert first.items[0].name == "Brewery 13"
    assert first.last_page == 2
    assert [b.name for b in list_breweries(db, page=2).items] == ["Brewery 01", "Brewery 00"]


def test_filter_substring_and_exact(db, user):
    _seed(db, user)

    assert _names(db, filter_breweries({"name": "hall"})) == ["Pine Hall"]
    assert _names(db, filter_breweries({"city": "AUST"})) == ["Cedar Works", "Oak House"]
    assert _names(db, filter_breweries({"visitable": False})) == ["Pine Hall"]
    assert _names(db, filter_breweries({"visitable": True, "city": "austin"})) == ["Cedar Works", "Oak House"]
    assert _names(db, filter_breweries({"user_id": user.id})) == ["Oak House"]
    assert _names(db, filter_breweries({"name": "", "city": None})) == ["Cedar Works", "Oak House", "Pine Hall"]


def test_filter_founded_year_bounds(db, user):
    _seed(db, user)

    assert _names(db, filter_breweries({"year_min": 1890, "year_max": 1995})) == ["Oak House", "Pine Hall"]
    assert _names(db, filter_breweries({"year_min": 1995})) == ["Cedar Works", "Pine Hall"]
    assert _names(db, filter_breweries({"year_max": 1995})) == ["Oak House", "Pine Hall"]


def test_filter_ordering(db, user):
    _seed(db, user)

    assert _names(db, filter_breweries({"order_by": "founded_year", "order_direction": "desc"})) == [
        "Cedar Works",
        "Pine Hall",
        "Oak House",
    ]
    assert _names(db, filter_breweries({"order_by": "city", "order_direction": "desc"}))[0] == "Pine Hall"
    # Unknown columns fall back to name ascending, whatever the direction
    assert _names(db, filter_breweries({"order_by": "password", "order_direction": "desc"})) == [
        "Cedar Works",
        "Oak House",
        "Pine Hall",
    ]


def test_filter_rejects_unknown_direction(db):
    with pytest.raises(ValueError):
        filter_breweries({"order_by": "name", "order_direction": "sideways"})


def test_filter_order_by_rating(db, user):
    oak = make_brewery(db, name="Oak House")
    pine = make_brewery(db, name="Pine Hall")
    cedar = make_brewery(db, name="Cedar Works")
    db.add_all(
        [
            Review(reviewable_type=ReviewableType.brewery.value, reviewable_id=oak.id, rating=5),
            Review(reviewable_type=ReviewableType.brewery.value, reviewable_id=oak.id, rating=4),
            Review(reviewable_type=ReviewableType.brewery.value, reviewable_id=cedar.id, rating=3),
            # Same id, other target type: must not count
            Review(reviewable_type=ReviewableType.beer.value, reviewable_id=pine.id, rating=5),
        ]
    )
    db.commit()

    desc = filter_breweries({"order_by": "rating", "order_direction": "desc"})
    assert _names(db, desc) == ["Oak House", "Cedar Works", "Pine Hall"]

    asc = filter_breweries({"order_by": "rating", "order_direction": "asc"})
    assert _names(db, asc) == ["Pine Hall", "Cedar Works", "Oak House"]

    page = paginate(db, desc, page=1, per_page=2)
    assert page.total == 3
    assert [b.name for b in page.items] == ["Oak House", "Cedar Works"]


def test_filter_endpoint(client, db, user):
    _seed(db, user)

    r = client.get("/breweries/filter", params={"city": "austin", "order_by": "founded_year", "order_direction": "desc"})
    assert r.status_code == 200, r.text
    assert [b["name"] for b in r.json()["items"]] == ["Cedar Works", "Oak House"]

    r = client.get("/breweries/filter", params={"order_direction": "sideways"})
    assert r.status_code == 422


def test_list_endpoint_filters(client, db, user):
    make_brewery(db, name="Oak House", city="Austin", description="Stouts.")
    make_brewery(db, name="Pine Hall", city="Denver", description="Lagers.")

    r = client.get("/breweries", params={"search": "Oak"})
    assert r.status_code == 200, r.text
    assert [b["name"] for b in r.json()["items"]] == ["Oak House"]
    assert r.json()["per_page"] == 12

    r = client.get("/breweries", params={"location": "Denver"})
    assert [b["name"] for b in r.json()["items"]] == ["Pine Hall"]
