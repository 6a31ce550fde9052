"""Tests for attribute override parsing and application."""

import pytest

from harvestd.app.adapters import DEFAULT_ATTRIBUTES, apply_attribute_overrides
from harvestd.errors import ConfigurationError
from harvestd.harvest import parse_attribute_overrides

REGISTRY = {descriptor.name: descriptor for descriptor in DEFAULT_ATTRIBUTES}


def test_parse_overrides_accumulates_repeated_keys() -> None:
    parsed = parse_attribute_overrides(["title=Report", "keywords=a", "keywords=b"])

    assert parsed == {"title": ["Report"], "keywords": ["a", "b"]}


@pytest.mark.parametrize("pair", ["novalue", "a=b=c", "=orphan", "title="])
def test_parse_overrides_rejects_malformed_pairs(pair: str) -> None:
    with pytest.raises(ConfigurationError, match="Invalid attribute override"):
        parse_attribute_overrides([pair])


def test_unknown_attributes_are_ignored() -> None:
    attributes = {"title": "orig"}

    apply_attribute_overrides(attributes, {"no_such_attribute": ["x"]}, REGISTRY)

    assert attributes == {"title": "orig"}


def test_multiple_values_for_single_valued_attribute_are_ignored() -> None:
    attributes = {"title": "orig"}

    apply_attribute_overrides(attributes, {"title": ["a", "b"]}, REGISTRY)

    assert attributes["title"] == "orig"


def test_multi_valued_attribute_takes_all_values() -> None:
    attributes: dict = {}

    apply_attribute_overrides(attributes, {"keywords": ["alpha", "beta"]}, REGISTRY)

    assert attributes["keywords"] == ["alpha", "beta"]


def test_values_are_coerced_to_attribute_format() -> None:
    attributes: dict = {}

    apply_attribute_overrides(
        attributes,
        {
            "resource_size": ["42"],
            "rating": ["4.5"],
            "published": ["TRUE"],
            "effective": ["2024-03-01T12:00:00Z"],
        },
        REGISTRY,
    )

    assert attributes["resource_size"] == 42
    assert attributes["rating"] == 4.5
    assert attributes["published"] is True
    assert attributes["effective"] == "2024-03-01T12:00:00+00:00"


def test_uncoercible_value_drops_the_override() -> None:
    attributes = {"resource_size": 10}

    apply_attribute_overrides(attributes, {"resource_size": ["ten"]}, REGISTRY)

    assert attributes["resource_size"] == 10


def test_empty_value_list_is_rejected() -> None:
    with pytest.raises(ValueError):
        apply_attribute_overrides({}, {"title": []}, REGISTRY)
