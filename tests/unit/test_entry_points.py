#!/usr/bin/env python3
"""
Tests for the Intune entry points: compliance check, detection, remediation.

BitLocker status and process launch are patched; the run guard and the
bundle download use real files under a temp data root.
"""

import json
import zipfile
from unittest.mock import patch

import pytest

from bitlockerpin.core.constants import ConfigKeys, ExitCodes
from bitlockerpin.core.config import default_settings
from bitlockerpin.core.errors import QueryFailure
from bitlockerpin.core.paths import Paths
from bitlockerpin.core.single_instance import SingleInstanceGuard
from bitlockerpin.scripts import check_compliance, detect, remediate


def _args(data_root, *extra):
    return ["--data-root", str(data_root), "--mount-point", "C:", *extra]


def _raise_query_failure(mount_point):
    raise QueryFailure(f"no volume {mount_point}")


# =============================================================================
# Compliance check
# =============================================================================


class TestCheckCompliance:
    """bitlockerpin-check prints exactly one JSON line and exits 0."""

    def _run(self, data_root, capsys, provider):
        with patch("bitlockerpin.scripts.check_compliance.get_volume_status", side_effect=provider):
            code = check_compliance.main(_args(data_root))
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert code == ExitCodes.SUCCESS
        assert len(lines) == 1
        return json.loads(lines[0])

    def test_compliant(self, data_root, capsys, compliant_status):
        assert self._run(data_root, capsys, lambda mp: compliant_status) == {"CheckBitLockerPIN": "TpmPin"}

    def test_tpm_only(self, data_root, capsys, tpm_only_status):
        assert self._run(data_root, capsys, lambda mp: tpm_only_status) == {"CheckBitLockerPIN": "NoPin"}

    def test_query_failure(self, data_root, capsys):
        assert self._run(data_root, capsys, _raise_query_failure) == {"CheckBitLockerPIN": "NoPin"}

    def test_unexpected_error(self, data_root, capsys):
        def broken(mount_point):
            raise RuntimeError("WMI exploded")

        assert self._run(data_root, capsys, broken) == {"CheckBitLockerPIN": "NoPin"}

    def test_writes_log_file(self, data_root, capsys, compliant_status):
        self._run(data_root, capsys, lambda mp: compliant_status)
        log_text = Paths.log_file("check.log", data_root).read_text(encoding="utf-8")
        assert "CheckBitLockerPIN=TpmPin" in log_text

    def test_run_check_helper(self, compliant_status):
        assert check_compliance.run_check("C:", lambda mp: compliant_status) == '{"CheckBitLockerPIN":"TpmPin"}'


# =============================================================================
# Detection
# =============================================================================


class TestDetect:
    """bitlockerpin-detect exit codes."""

    def _run(self, data_root, provider):
        with patch("bitlockerpin.scripts.detect.get_volume_status", side_effect=provider):
            return detect.main(_args(data_root))

    def test_compliant(self, data_root, capsys, compliant_status):
        assert self._run(data_root, lambda mp: compliant_status) == 0
        assert capsys.readouterr().out.splitlines()[-1].startswith("Compliant")

    def test_remediation_required(self, data_root, capsys, tpm_only_status):
        assert self._run(data_root, lambda mp: tpm_only_status) == 1
        assert capsys.readouterr().out.splitlines()[-1].startswith("Non-compliant")

    def test_query_failure_requires_remediation(self, data_root):
        assert self._run(data_root, _raise_query_failure) == 1

    def test_setup_already_running(self, data_root, tpm_only_status):
        with SingleInstanceGuard(Paths.run_guard_marker(data_root)):
            assert self._run(data_root, lambda mp: tpm_only_status) == 0

    def test_running_check_leaves_no_marker(self, data_root, tpm_only_status):
        self._run(data_root, lambda mp: tpm_only_status)
        assert not Paths.run_guard_marker(data_root).exists()


# =============================================================================
# Remediation
# =============================================================================


@pytest.fixture
def bundle_url(tmp_path):
    archive = tmp_path / "published" / "bundle.zip"
    archive.parent.mkdir()
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("ServiceUI.exe", b"launcher")
        zf.writestr("bitlockerpin-setup.exe", b"setup")
    return archive.as_uri()


class TestRemediate:
    """bitlockerpin-remediate delivery flow."""

    def test_downloads_extracts_and_launches(self, data_root, bundle_url):
        settings = default_settings()
        settings[ConfigKeys.BUNDLE_URL] = bundle_url

        with patch("bitlockerpin.scripts.remediate.launch_in_user_session", return_value=99) as launch:
            code = remediate.run_remediation(settings, data_root)

        assert code == ExitCodes.SUCCESS
        bundle_dir = Paths.bundle_dir(data_root)
        command = launch.call_args[0][0]
        assert command == [
            str(bundle_dir / "ServiceUI.exe"),
            "-process:explorer.exe",
            str(bundle_dir / "bitlockerpin-setup.exe"),
        ]
        assert launch.call_args[1]["cwd"] == bundle_dir

    def test_url_flag_overrides_settings(self, data_root, bundle_url):
        with patch("bitlockerpin.scripts.remediate.launch_in_user_session", return_value=99) as launch:
            code = remediate.main(_args(data_root, "--url", bundle_url))
        assert code == ExitCodes.SUCCESS
        assert launch.called

    def test_no_url_fails(self, data_root, capsys):
        with patch("bitlockerpin.scripts.remediate.launch_in_user_session") as launch:
            code = remediate.run_remediation(default_settings(), data_root)
        assert code == ExitCodes.FAILURE
        assert not launch.called
        assert "Remediation failed" in capsys.readouterr().out

    def test_skips_when_setup_running(self, data_root, bundle_url):
        settings = default_settings()
        settings[ConfigKeys.BUNDLE_URL] = bundle_url

        with SingleInstanceGuard(Paths.run_guard_marker(data_root)):
            with patch("bitlockerpin.scripts.remediate.download_bundle") as download:
                code = remediate.run_remediation(settings, data_root)

        assert code == ExitCodes.SUCCESS
        assert not download.called

    def test_unresolved_names_passed_through(self, tmp_path):
        settings = default_settings()
        settings[ConfigKeys.LAUNCHER] = None
        settings[ConfigKeys.SETUP_COMMAND] = ["other.exe", "--mount-point", "D:"]
        assert remediate.resolve_command(tmp_path, settings) == ["other.exe", "--mount-point", "D:"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
