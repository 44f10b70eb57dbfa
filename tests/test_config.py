"""Tests for archive configuration and naming helpers."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sessionarchive.config import ArchiveConfig, ConfigError, load_config, save_config
from sessionarchive.naming import (
    archive_file_name,
    format_timestamp,
    parse_archive_file_name,
    parse_cutoff,
    parse_iso_timestamp,
)


def utc(*args) -> float:
    return datetime(*args, tzinfo=timezone.utc).timestamp()


def test_defaults():
    config = ArchiveConfig()
    assert config.enabled is True
    assert config.archive_path == "docs/archive/agent-sessions"
    assert config.interval_minutes == 5
    assert config.cutoff is None


def test_from_mapping_accepts_camel_case():
    config = ArchiveConfig.from_mapping(
        {"enabled": False, "archivePath": "x/y", "intervalMinutes": 2, "ignoreSessionsBefore": "20250101"}
    )
    assert config == ArchiveConfig(False, "x/y", 2, "20250101")
    assert config.cutoff == utc(2025, 1, 1)


def test_round_trip_mapping():
    config = ArchiveConfig(archive_path="a", ignore_sessions_before="20240229")
    assert ArchiveConfig.from_mapping(config.to_mapping()) == config
    assert "ignoreSessionsBefore" not in ArchiveConfig().to_mapping()


@pytest.mark.parametrize(
    "data",
    [
        {"intervalMinutes": 0},
        {"intervalMinutes": "5"},
        {"archivePath": ""},
        {"archivePath": "/abs/path"},
        {"ignoreSessionsBefore": "20250230"},
        {"ignoreSessionsBefore": "2025-01-01"},
        {"ignoreSessionsBefore": 20250101},
        {"enabled": "yes"},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ConfigError):
        ArchiveConfig.from_mapping(data)


def test_load_missing_file_gives_defaults(tmp_path: Path):
    assert load_config(tmp_path / ".sessionarchive.json") == ArchiveConfig()


def test_save_and_load(tmp_path: Path):
    path = tmp_path / ".sessionarchive.json"
    save_config(path, ArchiveConfig(enabled=False, interval_minutes=1))
    assert json.loads(path.read_text())["enabled"] is False
    assert load_config(path) == ArchiveConfig(enabled=False, interval_minutes=1)


def test_load_rejects_bad_json(tmp_path: Path):
    path = tmp_path / "c.json"
    path.write_text("{nope")
    with pytest.raises(ConfigError):
        load_config(path)
    path.write_text("[]")
    with pytest.raises(ConfigError):
        load_config(path)


def test_timestamp_is_utc():
    assert format_timestamp(utc(2025, 1, 2, 3, 4, 59)) == "202501020304"
    assert archive_file_name(utc(2025, 1, 2, 3, 4), "codex-abc", ".md") == "202501020304-codex-abc.md"


def test_parse_archive_file_name():
    parsed = parse_archive_file_name("202501020304-claude-code-abc.jsonl")
    assert parsed is not None
    assert (parsed.timestamp, parsed.archive_name, parsed.extension) == (
        "202501020304",
        "claude-code-abc",
        ".jsonl",
    )
    assert parsed.file_name == "202501020304-claude-code-abc.jsonl"
    for name in ["notes.md", "2025-claude.md", "202501020304-noext", "20250102030-x.md"]:
        assert parse_archive_file_name(name) is None


def test_cutoff_is_utc_midnight():
    assert parse_cutoff("20250101") == utc(2025, 1, 1)
    assert utc(2024, 12, 31, 23, 59) < parse_cutoff("20250101")
    with pytest.raises(ValueError):
        parse_cutoff("2025011")


def test_parse_iso_timestamp():
    assert parse_iso_timestamp("2025-01-02T03:04:05.123Z") == utc(2025, 1, 2, 3, 4, 5)
    assert parse_iso_timestamp("2025-01-02T03:04:05") == utc(2025, 1, 2, 3, 4, 5)
    assert parse_iso_timestamp("2025-01-02T05:04:05+02:00") == utc(2025, 1, 2, 3, 4, 5)
    for value in [None, "", "yesterday", 12]:
        assert parse_iso_timestamp(value) is None
