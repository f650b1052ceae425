"""Tests for the JSON file store."""

from __future__ import annotations

import json

from agegate_core.policy.store import IS_MINOR, JsonFileStore


def test_missing_file_reads_empty(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    assert store.get(IS_MINOR) is None
    assert store.snapshot() == {}


def test_update_merges_and_persists(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = JsonFileStore(path)
    store.update({"consentGiven": True})
    store.update({IS_MINOR: False})

    assert json.loads(path.read_text()) == {"consentGiven": True, IS_MINOR: False}
    assert JsonFileStore(path).get("consentGiven") is True
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    store = JsonFileStore(path)
    assert store.snapshot() == {}
    store.update({IS_MINOR: True})
    assert store.get(IS_MINOR) is True


def test_non_object_file_reads_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2]")
    assert JsonFileStore(path).snapshot() == {}
