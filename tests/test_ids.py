from datetime import datetime, timezone

from identity_hub.utils.base import CUSTOM_ID_PATTERN, generate_unique_id, generate_username
from identity_hub.utils.base.ids import USER_ID_PATTERN


def test_unique_id_embeds_prefix_and_timestamp():
    now = datetime(2024, 3, 17, 23, 6, 8, tzinfo=timezone.utc)
    uid = generate_unique_id("user", now=now)
    assert uid.startswith("user-20240317230608-")
    assert USER_ID_PATTERN.match(uid)
    assert CUSTOM_ID_PATTERN.match(uid).group(1) == "user"


def test_unique_ids_differ():
    ids = {generate_unique_id("role") for _ in range(50)}
    assert len(ids) == 50


def test_username_is_derived_from_name():
    username = generate_username("Jane O'Doe")
    assert username.startswith("janeodoe")
    assert len(username) == len("janeodoe") + 4
    assert username[-4:].isdigit()


def test_username_falls_back_when_name_has_no_usable_chars():
    assert generate_username("!!!").startswith("user")


def test_username_base_is_truncated():
    assert len(generate_username("x" * 80)) == 28
