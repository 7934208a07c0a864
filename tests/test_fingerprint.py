"""Tests for fingerprint generation."""

import hashlib

from faultline.fingerprint import fingerprint, normalize_message
from faultline.kinds import ERRORS, LOGS
from faultline.models import LogLevel


class TestNormalizeMessage:

    def test_digit_runs_collapse(self):
        assert normalize_message("user 42 not found") == "user * not found"
        assert normalize_message("user 7 not found") == "user * not found"

    def test_hex_literal_collapses_whole(self):
        assert normalize_message("segfault at 0x7ffd3a") == "segfault at *"
        assert normalize_message("segfault at 0X1F") == "segfault at *"

    def test_mixed(self):
        assert normalize_message("error 42 at 0x1F (retry 3)") == "error * at * (retry *)"

    def test_only_ascii_digits_collapse(self):
        assert normalize_message("user \u0664\u0662 not found") == "user \u0664\u0662 not found"
        assert normalize_message("user \u0664\u0662 not found") != normalize_message("user 42 not found")

    def test_empty(self):
        assert normalize_message("") == ""
        assert normalize_message(None) == ""


class TestFingerprint:

    def test_is_sha256_of_joined_fields(self):
        expected = hashlib.sha256(b"user * not found:p1:app.py:10").hexdigest()
        assert fingerprint("user 42 not found", "p1", ["app.py", 10]) == expected

    def test_deterministic(self):
        first = fingerprint("boom", "p1", ["a.py", 3])
        second = fingerprint("boom", "p1", ["a.py", 3])
        assert first == second
        assert len(first) == 64

    def test_numeric_and_hex_values_group_together(self):
        a = fingerprint("error 42 at 0x1F", "p1", ["main.c", 12])
        b = fingerprint("error 99 at 0xAB", "p1", ["main.c", 12])
        assert a == b

    def test_each_field_discriminates(self):
        base = fingerprint("boom", "p1", ["a.py", 3])
        assert fingerprint("bang", "p1", ["a.py", 3]) != base
        assert fingerprint("boom", "p2", ["a.py", 3]) != base
        assert fingerprint("boom", "p1", ["b.py", 3]) != base
        assert fingerprint("boom", "p1", ["a.py", 4]) != base

    def test_enum_values_hash_as_their_value(self):
        assert fingerprint("boom", "p1", [LogLevel.ERROR]) == fingerprint("boom", "p1", ["ERROR"])

    def test_empty_message_still_hashes(self):
        expected = hashlib.sha256(b":p1:INFO").hexdigest()
        assert fingerprint("", "p1", ["INFO"]) == expected


class TestKindFingerprint:

    def test_error_kind_uses_file_and_line(self):
        values = {"message": "user 1 missing", "project_id": "p1", "file": "a.py", "line": 3}
        assert ERRORS.fingerprint(values) == fingerprint("user 1 missing", "p1", ["a.py", 3])

    def test_log_kind_uses_level(self):
        info = {"message": "started", "project_id": "p1", "level": "INFO"}
        warn = {"message": "started", "project_id": "p1", "level": "WARN"}
        assert LOGS.fingerprint(info) == fingerprint("started", "p1", ["INFO"])
        assert LOGS.fingerprint(info) != LOGS.fingerprint(warn)

    def test_discriminator_fields(self):
        assert ERRORS.discriminator_fields == ("file", "line")
        assert LOGS.discriminator_fields == ("level",)
