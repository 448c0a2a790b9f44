"""Tests for the PII/security gate script."""

from pathlib import Path

from scripts.gate_security_pii import check_source, main

SRC_DIR = Path(__file__).resolve().parent.parent / "src" / "staybook"


def test_print_is_flagged():
    errors = check_source('print("debug")\n', "mod.py")
    assert errors == ["mod.py:1: print() not allowed in runtime code"]


def test_commented_print_is_ignored():
    assert check_source('# print("debug")\n') == []


def test_unredacted_guest_name_in_log_is_flagged():
    errors = check_source('logger.info("created", extra={"guest_name": guest_name})\n')
    assert len(errors) >= 1
    assert "guest_name" in errors[0]


def test_redacted_log_passes():
    source = 'logger.info("created", extra={"extra_fields": safe_log_context(guest_name=g)})\n'
    assert check_source(source) == []


def test_raw_payload_log_is_flagged():
    assert check_source("logger.warning(f'bad {payload}')\n")


def test_runtime_source_passes():
    assert main([str(SRC_DIR)]) == 0


def test_missing_dir_fails(tmp_path):
    assert main([str(tmp_path / "nope")]) == 1
