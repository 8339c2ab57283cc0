"""
Unit tests for the main module: composition root and CLI commands.

Commands are driven through run() with explicit settings so the tests do
not depend on the environment and never reconfigure structlog's output.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog
from cryptography import x509

from pkitool.config import AppSettings
from pkitool.main import build_manager, configure_structlog, main, run
from pkitool.railway import ResultAssertions
from tests.conftest import TEST_KEY_SIZE


@pytest.fixture()
def settings(pki_dir: Path) -> AppSettings:
    return AppSettings(directory=pki_dir, key_size=TEST_KEY_SIZE, valid_years=2)


def _root(settings: AppSettings, *extra: str) -> int:
    return run(["create", "ca", "--alias", "root", "--subject-common-name", "Root", *extra], settings)


class TestConfigureStructlog:
    """Verify structlog configuration function."""

    def test_configure_structlog_sets_log_level(self) -> None:
        """
        GIVEN log_level="INFO"
        WHEN configure_structlog is called
        THEN structlog is configured (no exception raised).
        """
        configure_structlog("INFO")
        assert structlog.is_configured()

    def test_configure_structlog_invalid_level_falls_back(self) -> None:
        """
        GIVEN an invalid log_level string
        WHEN configure_structlog is called
        THEN it falls back to WARNING (no crash).
        """
        configure_structlog("NONEXISTENT")
        assert structlog.is_configured()


class TestBuildManager:
    def test_manager_operates_on_directory(self, pki_dir: Path) -> None:
        (pki_dir / "a.pem").write_bytes(b"x")
        manager = build_manager(pki_dir)
        assert ResultAssertions.assert_success(manager.list_aliases()) == frozenset({"a"})


class TestCreateCommands:
    def test_create_root_ca(self, pki_dir: Path, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        """
        GIVEN an empty directory
        WHEN `create ca` runs for a root
        THEN exit code is 0, nothing is printed and both files exist.
        """
        assert _root(settings) == 0
        assert capsys.readouterr().out == ""
        assert (pki_dir / "root.pem").is_file()
        assert (pki_dir / "root.key").is_file()

    def test_root_issuer_defaults_to_subject(self, pki_dir: Path, settings: AppSettings) -> None:
        _root(settings)
        cert = x509.load_pem_x509_certificate((pki_dir / "root.pem").read_bytes())
        assert cert.issuer == cert.subject

    def test_root_explicit_issuer(self, pki_dir: Path, settings: AppSettings) -> None:
        _root(settings, "--issuer-common-name", "Other")
        cert = x509.load_pem_x509_certificate((pki_dir / "root.pem").read_bytes())
        assert cert.issuer.rfc4514_string() == "CN=Other"

    def test_flags_override_settings(self, pki_dir: Path, settings: AppSettings) -> None:
        _root(settings, "--years", "4", "--serial", "99", "--subject-organization", "Acme", "--subject-country", "SK")
        cert = x509.load_pem_x509_certificate((pki_dir / "root.pem").read_bytes())
        assert cert.serial_number == 99
        assert cert.subject.rfc4514_string() == "CN=Root,O=Acme,C=SK"
        assert cert.not_valid_after_utc.year - cert.not_valid_before_utc.year == 4

    def test_intermediate_and_leaf(self, pki_dir: Path, settings: AppSettings) -> None:
        """
        GIVEN a root CA
        WHEN an intermediate and a leaf with SANs are created through the CLI
        THEN the leaf is issued by the intermediate and carries the SANs.
        """
        _root(settings)
        assert (
            run(
                ["create", "ca", "--intermediate", "--parent", "root", "--alias", "im", "--subject-common-name", "Im"],
                settings,
            )
            == 0
        )
        assert (
            run(
                [
                    "create", "leaf", "--parent", "im", "--alias", "srv", "--subject-common-name", "srv",
                    "--dns-san", "srv.example.com", "--ip-san", "10.0.0.1",
                ],
                settings,
            )
            == 0
        )

        cert = x509.load_pem_x509_certificate((pki_dir / "srv.pem").read_bytes())
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert cert.issuer.rfc4514_string() == "CN=Im"
        assert san.get_values_for_type(x509.DNSName) == ["srv.example.com"]
        assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["10.0.0.1"]

    def test_missing_alias_fails(
        self, pki_dir: Path, settings: AppSettings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run(["create", "ca", "--subject-common-name", "Root"], settings) == 1
        assert capsys.readouterr().err.strip() == "error: MISSING_FIELD: certificate alias is required"
        assert list(pki_dir.iterdir()) == []

    def test_existing_alias_is_not_overwritten(
        self, pki_dir: Path, settings: AppSettings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """
        GIVEN a root CA stored under "root"
        WHEN `create ca --alias root` runs again
        THEN exit code is 1 with ALREADY_EXISTS and the certificate is unchanged.
        """
        _root(settings)
        before = (pki_dir / "root.pem").read_bytes()

        assert _root(settings) == 1

        assert "ALREADY_EXISTS" in capsys.readouterr().err
        assert (pki_dir / "root.pem").read_bytes() == before

    def test_missing_parent_fails(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        code = run(["create", "leaf", "--parent", "ghost", "--alias", "srv", "--subject-common-name", "srv"], settings)
        assert code == 1
        assert "NOT_FOUND" in capsys.readouterr().err

    def test_invalid_ip_san_rejected_by_parser(self, settings: AppSettings) -> None:
        with pytest.raises(SystemExit) as exc:
            run(["create", "leaf", "--alias", "srv", "--ip-san", "not-an-ip"], settings)
        assert exc.value.code == 2


class TestQueryCommands:
    def test_show(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        _root(settings, "--serial", "5")
        capsys.readouterr()

        assert run(["show", "--alias", "root"], settings) == 0

        out = capsys.readouterr().out
        assert "| PROPERTY " in out
        assert "CN=Root" in out
        assert "KeyUsageCertSign,KeyUsageCRLSign" in out
        assert "| Serial " in out

    def test_show_requires_alias(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run(["show"], settings) == 1
        assert "MISSING_FIELD" in capsys.readouterr().err

    def test_show_missing_alias(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run(["show", "--alias", "ghost"], settings) == 1
        assert "NOT_FOUND" in capsys.readouterr().err

    def test_list(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        _root(settings)
        run(["create", "leaf", "--parent", "root", "--alias", "srv", "--subject-common-name", "srv"], settings)
        capsys.readouterr()

        assert run(["list"], settings) == 0

        lines = capsys.readouterr().out.splitlines()
        rows = [line for line in lines if line.startswith("| CN=")]
        assert lines[1].startswith("| SUBJECT ")
        assert len(rows) == 2
        assert rows[0].startswith("| CN=Root ")
        assert rows[1].startswith("| CN=srv ")

    def test_list_empty_directory(self, settings: AppSettings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run(["list"], settings) == 0
        out = capsys.readouterr().out
        assert "SUBJECT" in out
        assert "CN=" not in out

    def test_list_aborts_on_broken_pair(
        self, pki_dir: Path, settings: AppSettings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _root(settings)
        (pki_dir / "broken.pem").write_text("garbage")
        assert run(["list"], settings) == 1
        assert "FORMAT_ERROR" in capsys.readouterr().err

    def test_directory_flag_overrides_settings(
        self, tmp_path: Path, settings: AppSettings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run(["list", "--directory", str(tmp_path / "nowhere")], settings) == 1
        assert "NOT_FOUND" in capsys.readouterr().err


class TestRemoveCommand:
    def test_remove(self, pki_dir: Path, settings: AppSettings) -> None:
        _root(settings)
        assert run(["remove", "--alias", "root"], settings) == 0
        assert list(pki_dir.iterdir()) == []

    def test_remove_unknown_alias_succeeds(self, settings: AppSettings) -> None:
        assert run(["remove", "--alias", "ghost"], settings) == 0

    def test_remove_requires_alias(self, settings: AppSettings) -> None:
        assert run(["remove"], settings) == 1


class TestMain:
    def test_invalid_configuration_exits(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """
        GIVEN an invalid PKITOOL_LOG_LEVEL
        WHEN main runs
        THEN it exits with code 1 and a FATAL message.
        """
        monkeypatch.setenv("PKITOOL_LOG_LEVEL", "LOUD")
        with pytest.raises(SystemExit) as exc:
            main(["list"])
        assert exc.value.code == 1
        assert "FATAL: Configuration error" in capsys.readouterr().err
