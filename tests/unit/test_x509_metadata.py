"""
Unit tests for X.509 metadata extraction and store reference matching.

Test categories:
  - Taxpayer ID: CN suffix, SAN otherName (CNPJ and person data), absent
  - Metadata: expiration, subject, serial, fingerprint
  - Matching: serial spellings, subject substrings, latest expiry wins
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from asn1crypto import core
from cryptography import x509

from dfe_core.adapters.x509_metadata import (
    OID_ICP_BRASIL_CNPJ,
    OID_ICP_BRASIL_PERSON,
    _decode_other_name,
    _normalize_serial,
    extract_metadata,
    extract_taxpayer_id,
    matches_reference,
    select_certificate,
    summarize,
)
from tests.conftest import COMPANY_CNPJ, make_certificate, other_name

# ─────────────────────── Taxpayer ID ───────────────────────


class TestTaxpayerId:
    def test_cnpj_from_common_name(self) -> None:
        """
        GIVEN an e-CNPJ certificate whose CN ends in ":<CNPJ>"
        WHEN the taxpayer ID is extracted
        THEN the 14 digits after the colon are returned.
        """
        assert extract_taxpayer_id(make_certificate()) == COMPANY_CNPJ

    def test_cpf_from_common_name(self) -> None:
        cert = make_certificate(common_name="FULANO DE TAL:12345678909")
        assert extract_taxpayer_id(cert) == "12345678909"

    def test_cnpj_from_alt_name(self) -> None:
        """
        GIVEN a CN without a tax ID and a SAN otherName 2.16.76.1.3.3
        WHEN the taxpayer ID is extracted
        THEN the otherName value is returned.
        """
        cert = make_certificate(
            common_name="EMPRESA TESTE LTDA",
            other_names=[other_name(OID_ICP_BRASIL_CNPJ.dotted_string, COMPANY_CNPJ)],
        )
        assert extract_taxpayer_id(cert) == COMPANY_CNPJ

    def test_cpf_from_person_data(self) -> None:
        """
        GIVEN a SAN otherName 2.16.76.1.3.1 (birth date DDMMYYYY, then CPF, then more)
        WHEN the taxpayer ID is extracted
        THEN characters 9-19 are returned.
        """
        person = "01011980" + "12345678909" + "00000000000" + "000000000000000"
        cert = make_certificate(
            common_name="FULANO DE TAL",
            other_names=[other_name(OID_ICP_BRASIL_PERSON.dotted_string, person)],
        )
        assert extract_taxpayer_id(cert) == "12345678909"

    def test_cnpj_alt_name_wins_over_person_data(self) -> None:
        cert = make_certificate(
            common_name="EMPRESA TESTE LTDA",
            other_names=[
                other_name(OID_ICP_BRASIL_PERSON.dotted_string, "01011980" + "12345678909"),
                other_name(OID_ICP_BRASIL_CNPJ.dotted_string, COMPANY_CNPJ),
            ],
        )
        assert extract_taxpayer_id(cert) == COMPANY_CNPJ

    def test_utf8_string_alt_name(self) -> None:
        value = core.UTF8String(COMPANY_CNPJ).dump()
        cert = make_certificate(
            common_name="EMPRESA TESTE LTDA",
            other_names=[x509.OtherName(OID_ICP_BRASIL_CNPJ, value)],
        )
        assert extract_taxpayer_id(cert) == COMPANY_CNPJ

    @pytest.mark.parametrize("common_name", ["EMPRESA TESTE LTDA", "EMPRESA:123", "EMPRESA:1234567800019X"])
    def test_absent_tax_id_is_none(self, common_name: str) -> None:
        assert extract_taxpayer_id(make_certificate(common_name=common_name)) is None

    def test_undecodable_other_name(self) -> None:
        assert _decode_other_name(b"\xff") is None


# ─────────────────────── Metadata ───────────────────────


class TestExtractMetadata:
    def test_reads_all_fields(self) -> None:
        start = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)
        cert = make_certificate(serial=0x1A2B3C, not_before=start, days=365)
        material = extract_metadata(cert)

        assert material.expiration_date == (start + timedelta(days=365)).date()
        assert material.not_valid_before == start
        assert material.not_valid_after == start + timedelta(days=365)
        assert material.serial_number == "0x1a2b3c"
        assert material.taxpayer_id == COMPANY_CNPJ
        assert "CN=EMPRESA TESTE LTDA:12345678000195" in material.subject_name
        assert len(material.fingerprint) == 64

    def test_summarize(self) -> None:
        cert = make_certificate(serial=255)
        summary = summarize(cert)
        assert summary.serial_number == "0xff"
        assert summary.expiration_date == cert.not_valid_after_utc.date()


# ─────────────────────── Matching ───────────────────────


class TestMatchesReference:
    @pytest.mark.parametrize("reference", ["0x1a2b3c", "1A2B3C", "1a:2b:3c", "00 1A 2B 3C", " 0X1A2B3C "])
    def test_serial_spellings(self, reference: str) -> None:
        assert matches_reference(make_certificate(serial=0x1A2B3C), reference)

    def test_subject_substring_case_insensitive(self) -> None:
        assert matches_reference(make_certificate(), "empresa teste")

    @pytest.mark.parametrize("reference", ["", "   ", "OUTRA EMPRESA", "0x1a2b3d"])
    def test_no_match(self, reference: str) -> None:
        assert not matches_reference(make_certificate(serial=0x1A2B3C), reference)

    def test_absent_serial_does_not_match_subject_digits(self) -> None:
        """
        GIVEN a certificate whose CN ends in CNPJ 12345678000195
        WHEN matched against serial "12345678", which it does not carry
        THEN it does not match, though the digits occur in its subject.
        """
        cert = make_certificate(common_name="EMPRESA A:12345678000195", serial=0xAAAA)
        assert not matches_reference(cert, "12345678")
        assert not matches_reference(cert, "0x12345678")

    @pytest.mark.parametrize("reference", ["subject:12345678000195", "SUBJECT: empresa a"])
    def test_subject_prefix_searches_subject(self, reference: str) -> None:
        cert = make_certificate(common_name="EMPRESA A:12345678000195", serial=0xAAAA)
        assert matches_reference(cert, reference)

    def test_empty_subject_prefix(self) -> None:
        assert not matches_reference(make_certificate(), "subject:")

    def test_normalize_serial(self) -> None:
        assert _normalize_serial("0x00") == "0"
        assert _normalize_serial("0A:0B") == "a0b"


class TestSelectCertificate:
    def test_latest_expiry_wins(self) -> None:
        """
        GIVEN an expiring certificate and its renewal with the same subject
        WHEN selected by subject
        THEN the renewal (later not_valid_after) is returned.
        """
        old = make_certificate(serial=1, days=30)
        renewed = make_certificate(serial=2, days=400)
        assert select_certificate([old, renewed], "EMPRESA TESTE") is renewed
        assert select_certificate([renewed, old], "EMPRESA TESTE") is renewed

    def test_serial_picks_exact_certificate(self) -> None:
        old = make_certificate(serial=1, days=30)
        renewed = make_certificate(serial=2, days=400)
        assert select_certificate([old, renewed], "0x1") is old

    def test_no_match_returns_none(self) -> None:
        assert select_certificate([make_certificate()], "OUTRA EMPRESA") is None
        assert select_certificate([], "EMPRESA") is None
