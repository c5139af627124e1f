"""Tests for the table cache file format."""

import json
import os
import stat

import pytest

from tablecache import storage
from tablecache.errors import CacheFileNotFoundError, DeserializationError
from tablecache.storage import FORMAT_NAME, FORMAT_VERSION, read_cache_file, write_cache_file


def _write_json(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _mode(path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestRead:
    def test_returns_mapping(self, tmp_path):
        path = tmp_path / "cache.json"
        _write_json(path, {"format": "tablecache", "version": 1, "tables": {"x": True, "y": False}})

        assert read_cache_file(path) == {"x": True, "y": False}

    def test_empty_tables(self, tmp_path):
        path = tmp_path / "cache.json"
        _write_json(path, {"format": "tablecache", "version": 1, "tables": {}})

        assert read_cache_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(CacheFileNotFoundError, match="not found"):
            read_cache_file(tmp_path / "nope.json")

    @pytest.mark.parametrize(
        "payload",
        [
            {"format": "tablecache", "version": 2, "tables": {}},
            {"format": "marshal", "version": 1, "tables": {}},
            {"version": 1, "tables": {}},
            {"format": "tablecache", "version": 1},
            {"format": "tablecache", "version": 1, "tables": {"x": 1}},
            {"format": "tablecache", "version": 1, "tables": {"x": "true"}},
            {"format": "tablecache", "version": 1, "tables": {"x": None}},
            {"format": "tablecache", "version": 1, "tables": ["x"]},
            {"format": "tablecache", "version": 1, "tables": {}, "extra": True},
            [],
            None,
        ],
    )
    def test_rejects_invalid_structure(self, tmp_path, payload):
        path = tmp_path / "cache.json"
        _write_json(path, payload)

        with pytest.raises(DeserializationError):
            read_cache_file(path)

    @pytest.mark.parametrize("raw", [b"", b"{", b'{"format": "tablecache", "vers', b"\x04\x08{\x00", b"\xff\xfe\x00"])
    def test_rejects_corrupt_bytes(self, tmp_path, raw):
        path = tmp_path / "cache.json"
        path.write_bytes(raw)

        with pytest.raises(DeserializationError):
            read_cache_file(path)


class TestWrite:
    def test_has_format_header(self, tmp_path):
        path = tmp_path / "cache.json"
        write_cache_file(path, {'"main"."b"': False, '"main"."a"': True})

        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["format"] == FORMAT_NAME
        assert data["version"] == FORMAT_VERSION
        assert list(data["tables"]) == ['"main"."a"', '"main"."b"']

    def test_same_mapping_writes_same_bytes(self, tmp_path):
        first, second = tmp_path / "one.json", tmp_path / "two.json"
        write_cache_file(first, {"b": True, "a": False})
        write_cache_file(second, {"a": False, "b": True})

        assert first.read_bytes() == second.read_bytes()

    def test_replaces_existing_file(self, tmp_path):
        path = tmp_path / "cache.json"
        write_cache_file(path, {"old": True})
        assert write_cache_file(path, {"new": False}) is True

        assert read_cache_file(path) == {"new": False}

    def test_failure_keeps_previous_file_and_cleans_up(self, tmp_path, monkeypatch):
        path = tmp_path / "cache.json"
        write_cache_file(path, {"kept": True})
        original = path.read_bytes()

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(OSError, match="disk full"):
            write_cache_file(path, {"lost": False})

        assert path.read_bytes() == original
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cache.json"]

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(OSError):
            write_cache_file(tmp_path / "missing" / "cache.json", {"x": True})

        assert not (tmp_path / "missing").exists()

    def test_rejects_non_bool_values(self, tmp_path):
        path = tmp_path / "cache.json"

        with pytest.raises(ValueError):
            write_cache_file(path, {"x": "yes"})

        assert not path.exists()


class TestWriteNoOverwrite:
    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / "cache.json"

        assert write_cache_file(path, {"x": True}, overwrite=False) is True

        assert read_cache_file(path) == {"x": True}
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cache.json"]

    def test_leaves_existing_file_alone(self, tmp_path):
        path = tmp_path / "cache.json"
        write_cache_file(path, {"first": True})
        original = path.read_bytes()

        assert write_cache_file(path, {"second": False}, overwrite=False) is False

        assert path.read_bytes() == original
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cache.json"]


class TestFileMode:
    def test_new_file_follows_umask(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage, "_UMASK", 0o022)
        path = tmp_path / "cache.json"

        write_cache_file(path, {"x": True})

        assert _mode(path) == 0o644

    def test_new_file_without_overwrite_follows_umask(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage, "_UMASK", 0o002)
        path = tmp_path / "cache.json"

        write_cache_file(path, {"x": True}, overwrite=False)

        assert _mode(path) == 0o664

    def test_replacement_keeps_existing_mode(self, tmp_path):
        path = tmp_path / "cache.json"
        write_cache_file(path, {"x": True})
        path.chmod(0o640)

        write_cache_file(path, {"x": False})

        assert _mode(path) == 0o640
