from datetime import datetime, timedelta, timezone

from services.resource_query import filter_resources, matches_term
from services.resource_schema import ResourceRecord
from vault_fakes import VAULT_USER_ID

BASE_TIME = datetime(2026, 10, 1, tzinfo=timezone.utc)


def _resource(resource_id, resource_type="article", title="Untitled", tags=None, notes="", minutes=0):
    created_at = BASE_TIME - timedelta(minutes=minutes)
    return ResourceRecord(
        id=resource_id,
        user_id=VAULT_USER_ID,
        title=title,
        type=resource_type,
        tags=tags or [],
        notes=notes,
        created_at=created_at,
        updated_at=created_at,
    )


def _library():
    return [
        _resource("r1", "article", title="React docs", tags=["frontend"], minutes=0),
        _resource("r2", "video", title="Conference talk", notes="Great intro to REACT", minutes=1),
        _resource("r3", "note", title="Groceries", tags=["home"], minutes=2),
        _resource("r4", "video", title="Cooking pasta", tags=["Recipes"], minutes=3),
        _resource("r5", "photo", title="Holiday", minutes=4),
    ]


def test_type_filter_returns_subset_in_input_order():
    items = [_resource("a1", "article"), _resource("v1", "video"), _resource("a2", "article"), _resource("v2", "video")]

    result = filter_resources(items, resource_type="video", term="")

    assert [item.id for item in result] == ["v1", "v2"]


def test_term_matches_title_tags_and_notes_case_insensitively():
    result = filter_resources(_library(), term="react")

    assert [item.id for item in result] == ["r1", "r2"]
    assert [item.id for item in filter_resources(_library(), term="recipes")] == ["r4"]
    assert [item.id for item in filter_resources(_library(), term="  HOME ")] == ["r3"]


def test_type_and_term_compose():
    result = filter_resources(_library(), resource_type="video", term="react")

    assert [item.id for item in result] == ["r2"]


def test_empty_filters_return_everything_unchanged():
    library = _library()

    assert [item.id for item in filter_resources(library)] == [item.id for item in library]
    assert [item.id for item in filter_resources(library, resource_type="", term="   ")] == [item.id for item in library]


def test_filtering_never_reorders():
    library = list(reversed(_library()))

    result = filter_resources(library, term="o")

    positions = [library.index(item) for item in result]
    assert positions == sorted(positions)


def test_no_match_returns_empty_list():
    assert filter_resources(_library(), term="quantum") == []
    assert filter_resources(_library(), resource_type="note", term="react") == []


def test_matches_term_handles_blank_term():
    assert matches_term(_resource("x"), None)
    assert matches_term(_resource("x"), "")
