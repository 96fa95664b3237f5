"""
End-to-end acceptance tests for the dfe-core command line.

Exercises the full stack: argparse → settings from environment →
real adapters (PKCS#12 loader, directory store) → stdout/exit code.
Certificates are minted per test; no network, token or GUI involved.

Each test follows Given/When/Then BDD structure in its docstring.
"""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from dfe_core.config import AppSettings
from dfe_core.main import main
from tests.conftest import COMPANY_CNPJ, PFX_PASSWORD, make_certificate, pem_bytes

pytestmark = pytest.mark.acceptance


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(AppSettings.model_config, "env_file", None)
    for name in (
        "CERTIFICATE__DATA",
        "CERTIFICATE__REFERENCE",
        "CERTIFICATE__PASSWORD",
        "CERTIFICATE__STORE_DIR",
        "CERTIFICATE__PKCS11_LIBRARY",
        "CERTIFICATE__TOKEN_LABEL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestAccessKeyLifecycle:
    def test_generate_then_parse_then_validate(self, capsys: pytest.CaptureFixture[str]) -> None:
        """
        GIVEN the fields of an NF-e issued in Rio Grande do Sul under SVC-RS contingency
        WHEN the key is generated, printed formatted, parsed back and validated
        THEN every step succeeds and the parsed fields match the inputs.
        """
        code = main([
            "generate",
            "--state", "43",
            "--issue-date", "2024-11-05",
            "--tax-id", COMPANY_CNPJ,
            "--model", "65",
            "--series", "12",
            "--number", "4021",
            "--emission-mode", "7",
            "--numeric-control", "55501",
            "--formatted",
        ])
        formatted = capsys.readouterr().out.rstrip("\n")
        assert code == 0
        assert len(formatted.split()) == 11

        assert main(["parse", formatted]) == 0
        fields = dict(line.split(": ", 1) for line in capsys.readouterr().out.splitlines())
        assert fields["state_code"] == "43"
        assert fields["year_month"] == "2411"
        assert fields["model"] == "65"
        assert fields["series"] == "012"
        assert fields["number"] == "000004021"
        assert fields["emission_mode"] == "7"
        assert fields["numeric_control"] == "00055501"

        digits = formatted.replace(" ", "")
        assert main(["validate", digits]) == 0
        tampered = digits[:-2] + str((int(digits[-2]) + 1) % 10) + digits[-1]
        capsys.readouterr()
        assert main(["validate", tampered]) == 1


class TestCertificateSources:
    def test_base64_container_from_environment(
        self, company_pfx: bytes, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """
        GIVEN a PKCS#12 container supplied as CERTIFICATE__DATA (base64)
        WHEN certificate info runs without arguments
        THEN the holder's CNPJ and serial are printed.
        """
        monkeypatch.setenv("CERTIFICATE__DATA", base64.b64encode(company_pfx).decode())
        monkeypatch.setenv("CERTIFICATE__PASSWORD", PFX_PASSWORD)

        assert main(["certificate", "info"]) == 0
        out = capsys.readouterr().out
        assert f"taxpayer_id: {COMPANY_CNPJ}" in out
        assert "serial: 0x1a2b3c" in out

    def test_installed_store_lookup_and_selection(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """
        GIVEN an installed store with an expiring certificate and its renewal
        WHEN the user selects one interactively and then asks for its info by serial
        THEN the chosen serial resolves to the renewed certificate's metadata.
        """
        store = tmp_path / "installed"
        store.mkdir()
        (store / "old.pem").write_bytes(pem_bytes(make_certificate(serial=0x10, days=20)))
        (store / "renewed.pem").write_bytes(pem_bytes(make_certificate(serial=0x11, days=730)))
        monkeypatch.setenv("CERTIFICATE__STORE_DIR", str(store))
        monkeypatch.setattr("builtins.input", lambda prompt: "2")

        assert main(["certificate", "select"]) == 0
        serial = capsys.readouterr().out.splitlines()[-1]
        assert serial == "0x11"

        assert main(["certificate", "info", "--reference", serial]) == 0
        assert "serial: 0x11" in capsys.readouterr().out

        assert main(["certificate", "info", "--reference", "EMPRESA TESTE"]) == 0
        assert "serial: 0x11" in capsys.readouterr().out

    def test_unknown_reference_fails(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("CERTIFICATE__STORE_DIR", str(tmp_path))
        assert main(["certificate", "info", "--reference", "0xdead"]) == 1
        assert "NOT_FOUND" in capsys.readouterr().err
