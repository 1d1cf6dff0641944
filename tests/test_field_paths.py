from __future__ import annotations

import allure
import pytest

from artifact_flow.workflow.field_paths import (
    FieldPathError,
    extract_nested_data,
    filter_nested_data,
    first_value_at_path,
    values_at_path,
)

pytestmark = [
    allure.epic("Artifact Grouping"),
    allure.feature("Field Paths"),
]


def test_values_at_path_expands_terminal_list(people: list[dict]) -> None:
    dan = people[0]

    assert values_at_path(dan, "name") == ["Dan Newman"]
    assert values_at_path(dan, "aliases") == ["The Hammer", "Daniel"]
    assert values_at_path(dan, "address.city") == ["Cordoba"]


def test_values_at_path_wildcard_and_implicit_traversal_agree(people: list[dict]) -> None:
    dan = people[0]

    assert values_at_path(dan, "services.*.name") == ["Write Code", "Test Code"]
    assert values_at_path(dan, "services.name") == ["Write Code", "Test Code"]
    assert values_at_path(dan, "services.*.options.*.name") == ["PHP", "Node", "Chrome", "IE"]


def test_values_at_path_skips_missing_and_null_values() -> None:
    data = {"a": None, "b": [1, None, 2], "c": {"d": 1}}

    assert values_at_path(data, "a") == []
    assert values_at_path(data, "b") == [1, 2]
    assert values_at_path(data, "c.missing") == []
    assert values_at_path(data, "c.*") == []


@pytest.mark.parametrize("path", ["", "  ", "a..b", ".a"])
def test_malformed_paths_are_rejected(path: str) -> None:
    with pytest.raises(FieldPathError):
        values_at_path({"a": 1}, path)


def test_first_value_at_path_uses_first_scalar_of_list() -> None:
    assert first_value_at_path({"pages": [3, 1]}, "pages") == 3
    assert first_value_at_path({"meta": {"rank": 7}}, "meta.rank") == 7
    assert first_value_at_path({"meta": {}}, "meta.rank") is None


def test_filter_nested_data_keeps_matching_scalar_list_elements(people: list[dict]) -> None:
    filtered = filter_nested_data(people[0], "aliases", "Daniel")

    assert filtered["aliases"] == ["Daniel"]
    assert filtered["name"] == "Dan Newman"


def test_filter_nested_data_keeps_only_matching_objects(people: list[dict]) -> None:
    dan = people[0]

    filtered = filter_nested_data(dan, "services.*.name", "Write Code")

    assert filtered == {**dan, "services": [dan["services"][0]]}


def test_filter_nested_data_prunes_nested_lists(people: list[dict]) -> None:
    dan = people[0]

    filtered = filter_nested_data(dan, "services.*.options.*.name", "PHP")

    assert filtered["services"] == [
        {**dan["services"][0], "options": [{"name": "PHP", "cost": 100}]},
    ]


def test_filter_nested_data_returns_none_without_match(people: list[dict]) -> None:
    assert filter_nested_data(people[0], "services.*.name", "Dance") is None
    assert filter_nested_data(people[0], "missing", "x") is None


def test_filter_nested_data_does_not_mutate_input(people: list[dict]) -> None:
    dan = people[0]
    filter_nested_data(dan, "services.*.name", "Write Code")

    assert len(dan["services"]) == 2


def test_extract_nested_data_projects_listed_fields(people: list[dict]) -> None:
    dan = people[0]

    assert extract_nested_data(dan, ["services.*.cost"]) == {
        "services": [{"cost": 500}, {"cost": 300}],
    }
    assert extract_nested_data(dan, ["name", "address.city"]) == {
        "name": "Dan Newman",
        "address": {"city": "Cordoba"},
    }


def test_extract_nested_data_omits_missing_fields(people: list[dict]) -> None:
    dan = people[0]

    assert extract_nested_data(dan, ["name", "non_existing"]) == {"name": "Dan Newman"}
    assert extract_nested_data(dan, ["non_existing"]) == {}


def test_extract_nested_data_edge_inputs() -> None:
    assert extract_nested_data(["not", "a", "mapping"], ["name"]) is None
    assert extract_nested_data({"a": 1}, []) == {"a": 1}


def test_filter_nested_data_keeps_matching_inner_list() -> None:
    filtered = filter_nested_data({"matrix": [[1, 2], [3, 4]], "label": "m"}, "matrix", [3, 4])

    assert filtered == {"matrix": [[3, 4]], "label": "m"}
