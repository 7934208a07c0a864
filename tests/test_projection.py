"""Tests for response projection of stored events."""

from faultline.kinds import ERRORS, LOGS
from faultline.models import Error, Log
from faultline.projection import (
    Parsed,
    Raw,
    decode_side_channel,
    encode_side_channel,
    project_side_channel,
    to_entity,
)


def _stored_error(**overrides):
    values = dict(
        id="a08929b5-d4f0-4ceb-9cfe-bb4fc05b030c",
        project_id="p1",
        fingerprint="f" * 64,
        message="Division by zero",
        stacktrace="at index.php:15",
        file="/var/www/index.php",
        line=15,
        time=1704067200000,
        created_at=1704067201000,
        updated_at=1704067201000,
    )
    values.update(overrides)
    return Error(**values)


class TestDecode:

    def test_valid_json_is_parsed(self):
        assert decode_side_channel('{"a": 1}') == Parsed({"a": 1})

    def test_plain_text_is_raw(self):
        assert decode_side_channel("not json") == Raw("not json")

    def test_absent_or_empty(self):
        assert decode_side_channel(None) is None
        assert decode_side_channel("") is None

    def test_raw_is_wrapped_under_field_name(self):
        assert project_side_channel("context", "not json") == {"context": "not json"}
        assert project_side_channel("headers", "X-Foo: bar") == {"headers": "X-Foo: bar"}


class TestEncode:

    def test_strings_are_kept_verbatim(self):
        assert encode_side_channel('{"a": 1}') == '{"a": 1}'
        assert encode_side_channel("not json") == "not json"

    def test_structures_are_serialized(self):
        assert encode_side_channel({"a": [1, 2]}) == '{"a": [1, 2]}'
        assert encode_side_channel(None) is None


class TestToEntity:

    def test_legacy_plain_text_context(self):
        entity = to_entity(ERRORS, _stored_error(context="not json"))
        assert entity.context == {"context": "not json"}

    def test_side_channel_fields_decoded(self):
        record = _stored_error(
            context='{"userId": 123}',
            headers='{"Content-Type": "application/json"}',
            cookies="theme=dark",
            env=None,
            ip="192.168.1.1",
        )
        entity = to_entity(ERRORS, record)
        assert entity.context == {"userId": 123}
        assert entity.headers == {"Content-Type": "application/json"}
        assert entity.cookies == {"cookies": "theme=dark"}
        assert entity.env is None
        assert entity.ip == "192.168.1.1"
        assert entity.line == 15
        assert entity.fingerprint == "f" * 64

    def test_log_context_any_json_value(self):
        record = Log(
            id="l1",
            project_id="p1",
            fingerprint="e" * 64,
            level="INFO",
            message="started",
            context="[1, 2, 3]",
            time=1,
            created_at=2,
            updated_at=2,
        )
        entity = to_entity(LOGS, record)
        assert entity.context == [1, 2, 3]
        assert entity.level == "INFO"
