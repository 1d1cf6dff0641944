from __future__ import annotations

import re

import allure

from artifact_flow.workflow.group_keys import GroupKeyGenerator

pytestmark = [
    allure.epic("Artifact Grouping"),
    allure.feature("Group Keys"),
]


def test_scalar_item_set_gives_readable_key() -> None:
    keys = GroupKeyGenerator()

    assert keys.key({"dob": "1987-11-18"}) == "dob:1987-11-18"
    assert keys.key({"cost": 500}) == "cost:500"
    assert keys.key({"active": True}) == "active:true"


def test_multi_field_key_is_sorted_by_path() -> None:
    keys = GroupKeyGenerator()

    assert keys.key({"name": "Dan Newman", "color": "green"}) == "color:green,name:Dan Newman"
    assert keys.key({"color": "green", "name": "Dan Newman"}) == "color:green,name:Dan Newman"


def test_object_value_uses_label_and_hash_suffix() -> None:
    keys = GroupKeyGenerator()

    key = keys.key({"services": {"name": "Write Code", "cost": 500}})

    assert re.fullmatch(r"services:Write Code#[0-9a-f]{6}", key)


def test_object_without_label_uses_content_hash() -> None:
    key = GroupKeyGenerator().key({"address": {"city": "Orlando", "zip": "32830"}})

    assert re.fullmatch(r"address:[0-9a-f]{6}#[0-9a-f]{6}", key)


def test_equal_objects_with_different_key_order_share_a_key() -> None:
    keys = GroupKeyGenerator()

    first = keys.key({"address": {"city": "Orlando", "zip": "32830"}})
    second = keys.key({"address": {"zip": "32830", "city": "Orlando"}})

    assert first == second


def test_different_objects_with_same_label_get_different_keys() -> None:
    keys = GroupKeyGenerator()

    first = keys.key({"services": {"name": "Dance", "cost": 300}})
    second = keys.key({"services": {"name": "Dance", "cost": 400}})

    assert first.startswith("services:Dance#")
    assert first != second


def test_long_key_is_truncated_with_hash() -> None:
    key = GroupKeyGenerator().key({"title": "x" * 150})

    readable, digest = key.split("#")
    assert len(readable) == 100
    assert re.fullmatch(r"[0-9a-f]{6}", digest)


def test_always_hash_appends_digest_to_short_keys() -> None:
    key = GroupKeyGenerator(always_hash=True).key({"dob": "1987-11-18"})

    assert re.fullmatch(r"dob:1987-11-18#[0-9a-f]{6}", key)


def test_scalars_render_as_bare_text_so_number_and_string_share_a_key() -> None:
    keys = GroupKeyGenerator()

    assert keys.key({"code": 1}) == keys.key({"code": "1"}) == "code:1"
    assert keys.key({"code": "1,name:Dan"}) == "code:1,name:Dan"
