import pytest

from src.pipeline.merge import merge_mappings, merge_records, parse_mapping, to_named_list
from src.schemas import ShopContact


def _c(link="https://a.example/shop", **fields):
    return ShopContact(original_shop_link=link, **fields)


def test_empty_fields_are_filled_from_other_record():
    a = _c(instagram="https://instagram.com/jane")
    b = _c(link="https://b.example/shop", email="jane@example.com")
    m = merge_records(a, b)
    assert m.instagram == "https://instagram.com/jane"
    assert m.email == "jane@example.com"
    assert m.original_shop_link == "https://a.example/shop"


def test_first_seen_value_wins_by_default():
    a = _c(website="https://old.example")
    b = _c(website="https://new.example")
    assert merge_records(a, b).website == "https://old.example"


def test_prefer_incoming_lets_later_value_win():
    a = _c(website="https://old.example")
    b = _c(link="https://b.example/shop", website="https://new.example")
    m = merge_records(a, b, prefer="incoming")
    assert m.website == "https://new.example"
    # origin link is never replaced
    assert m.original_shop_link == "https://a.example/shop"


def test_blank_strings_count_as_empty():
    a = _c(email="  ")
    b = _c(email="jane@example.com")
    assert merge_records(a, b).email == "jane@example.com"
    assert merge_records(b, a, prefer="incoming").email == "jane@example.com"
    assert merge_records(a, _c()).email is None


def test_unknown_prefer_raises():
    with pytest.raises(ValueError):
        merge_records(_c(), _c(), prefer="newest")


def test_merge_mappings_keeps_first_appearance_order():
    runs = [
        {"B Shop": _c(instagram="https://instagram.com/b"), "A Shop": _c()},
        {"C Shop": _c(), "A Shop": _c(email="a@example.com")},
    ]
    merged = merge_mappings(runs)
    assert list(merged) == ["B Shop", "A Shop", "C Shop"]
    assert merged["A Shop"].email == "a@example.com"


def test_to_named_list_puts_name_first():
    named = to_named_list({"Jane's Shop": _c(email="jane@example.com")})
    record = named[0].to_record()
    assert list(record)[0] == "name"
    assert record["name"] == "Jane's Shop"
    assert record["email"] == "jane@example.com"


def test_parse_mapping_tolerates_missing_and_extra_keys():
    data = {
        "Jane": {"instagram": "https://instagram.com/jane", "name": "ignored"},
        "Bob": {"original_shop_link": "https://b.example/bob", "email": None},
    }
    parsed = parse_mapping(data)
    assert parsed["Jane"].original_shop_link == ""
    assert parsed["Jane"].instagram == "https://instagram.com/jane"
    assert parsed["Bob"].original_shop_link == "https://b.example/bob"


@pytest.mark.parametrize("data", [[], "text", {"Jane": "not an object"}])
def test_parse_mapping_rejects_wrong_shapes(data):
    with pytest.raises(ValueError):
        parse_mapping(data, source="bad.json")


def test_origin_link_taken_from_later_record_when_first_is_empty():
    runs = [
        parse_mapping({"Jane": {"email": "jane@example.com"}}),
        parse_mapping({"Jane": {"original_shop_link": "https://designbundles.net/jane"}}),
        parse_mapping({"Jane": {"original_shop_link": "https://designbundles.net/jane?ref=3"}}),
    ]
    merged = merge_mappings(runs)
    assert merged["Jane"].original_shop_link == "https://designbundles.net/jane"
    assert merged["Jane"].email == "jane@example.com"


def test_blank_fields_cleared_for_shops_seen_once():
    merged = merge_mappings([{"Solo": _c(email="  ", website="https://solo.example")}])
    assert merged["Solo"].email is None
    assert merged["Solo"].website == "https://solo.example"
