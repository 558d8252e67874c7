"""Tests for data directory resolution."""

import tempfile
from pathlib import Path

import pytest

from whoip.application.exceptions import ConfigurationError
from whoip.infrastructure.data_directory import (
    default_candidates,
    resolve_data_directory,
)


class TestResolveDataDirectory:
    """Tests for resolve_data_directory."""

    def test_explicit_directory_is_created(self, tmp_path):
        target = tmp_path / "cache" / "whoip"

        assert resolve_data_directory(None, "", str(target)) == target.resolve()
        assert target.is_dir()

    def test_first_explicit_directory_wins(self, tmp_path):
        first, second = tmp_path / "first", tmp_path / "second"

        assert resolve_data_directory(str(first), str(second)) == first.resolve()
        assert not second.exists()

    def test_unusable_explicit_directory_is_fatal(self, tmp_path):
        occupied = tmp_path / "occupied"
        occupied.write_text("not a directory")

        with pytest.raises(ConfigurationError):
            resolve_data_directory(str(occupied))

    def test_xdg_data_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        assert resolve_data_directory() == (tmp_path / "xdg" / "whoip").resolve()

    def test_home_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        expected = tmp_path / "home" / ".local" / "share" / "whoip"
        assert resolve_data_directory() == expected.resolve()

    def test_unusable_xdg_falls_back_to_home(self, tmp_path, monkeypatch):
        blocker = tmp_path / "xdg"
        blocker.write_text("a file where a directory should be")
        monkeypatch.setenv("XDG_DATA_HOME", str(blocker))
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        expected = tmp_path / "home" / ".local" / "share" / "whoip"
        assert resolve_data_directory() == expected.resolve()

    def test_candidates_end_with_temp_directory(self, monkeypatch):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.delenv("HOME", raising=False)

        assert default_candidates() == [Path(tempfile.gettempdir()) / "whoip"]
