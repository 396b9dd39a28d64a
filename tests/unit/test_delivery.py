#!/usr/bin/env python3
"""
Tests for core/delivery.py.

Downloads use file:// URLs; process launch is patched.
"""

import zipfile
from unittest.mock import MagicMock, patch

import pytest

from bitlockerpin.core.delivery import (
    build_launch_command,
    download_bundle,
    extract_bundle,
    launch_in_user_session,
)
from bitlockerpin.core.errors import DeliveryError


def _make_zip(path, entries):
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


class TestDownloadBundle:
    """download_bundle() transfer and URL checks."""

    def test_file_url(self, tmp_path):
        source = tmp_path / "source.zip"
        source.write_bytes(b"PK-bundle-bytes")
        dest = tmp_path / "download" / "bundle.zip"

        result = download_bundle(source.as_uri(), dest)

        assert result == dest
        assert dest.read_bytes() == b"PK-bundle-bytes"
        assert not (tmp_path / "download" / "bundle.zip.part").exists()

    def test_missing_source(self, tmp_path):
        dest = tmp_path / "bundle.zip"
        with pytest.raises(DeliveryError):
            download_bundle((tmp_path / "absent.zip").as_uri(), dest)
        assert not dest.exists()
        assert not (tmp_path / "bundle.zip.part").exists()

    @pytest.mark.parametrize("url", ["http://example.invalid/b.zip", "ftp://example.invalid/b.zip", "bundle.zip"])
    def test_rejected_schemes(self, url, tmp_path):
        with pytest.raises(DeliveryError) as exc_info:
            download_bundle(url, tmp_path / "b.zip")
        assert "scheme" in str(exc_info.value)

    @pytest.mark.parametrize("url", ["", None])
    def test_no_url(self, url, tmp_path):
        with pytest.raises(DeliveryError):
            download_bundle(url, tmp_path / "b.zip")


class TestExtractBundle:
    """extract_bundle() unpacking rules."""

    def test_extracts_entries(self, tmp_path):
        archive = _make_zip(tmp_path / "b.zip", {"ServiceUI.exe": b"x", "app/setup.exe": b"y"})
        dest = tmp_path / "bundle"

        extract_bundle(archive, dest)

        assert (dest / "ServiceUI.exe").read_bytes() == b"x"
        assert (dest / "app" / "setup.exe").read_bytes() == b"y"

    def test_replaces_previous_bundle(self, tmp_path):
        dest = tmp_path / "bundle"
        dest.mkdir()
        (dest / "old.txt").write_text("old")
        archive = _make_zip(tmp_path / "b.zip", {"new.txt": b"new"})

        extract_bundle(archive, dest)

        assert not (dest / "old.txt").exists()
        assert (dest / "new.txt").exists()

    def test_rejects_path_traversal(self, tmp_path):
        archive = _make_zip(tmp_path / "b.zip", {"../escape.txt": b"x"})
        with pytest.raises(DeliveryError):
            extract_bundle(archive, tmp_path / "bundle")
        assert not (tmp_path / "escape.txt").exists()

    def test_not_a_zip(self, tmp_path):
        archive = tmp_path / "b.zip"
        archive.write_bytes(b"definitely not a zip")
        with pytest.raises(DeliveryError):
            extract_bundle(archive, tmp_path / "bundle")


class TestLaunch:
    """Launch command construction and process start."""

    def test_with_launcher(self):
        command = build_launch_command(["C:\\b\\setup.exe"], "C:\\b\\ServiceUI.exe", ["-process:explorer.exe"])
        assert command == ["C:\\b\\ServiceUI.exe", "-process:explorer.exe", "C:\\b\\setup.exe"]

    def test_without_launcher(self):
        assert build_launch_command(["setup.exe", "--mount-point", "C:"]) == ["setup.exe", "--mount-point", "C:"]

    def test_no_setup_command(self):
        with pytest.raises(DeliveryError):
            build_launch_command([], "ServiceUI.exe")

    def test_launch_returns_pid(self, tmp_path):
        process = MagicMock(pid=4242)
        with patch("bitlockerpin.core.delivery.subprocess.Popen", return_value=process) as popen:
            pid = launch_in_user_session(["setup.exe"], cwd=tmp_path)
        assert pid == 4242
        assert popen.call_args[0][0] == ["setup.exe"]
        assert popen.call_args[1]["cwd"] == str(tmp_path)

    def test_launch_failure(self):
        with patch("bitlockerpin.core.delivery.subprocess.Popen", side_effect=FileNotFoundError("setup.exe")):
            with pytest.raises(DeliveryError):
                launch_in_user_session(["setup.exe"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
