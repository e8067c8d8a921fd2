"""
Unit tests for case records.

Tests normalization of raw records into billing variants.
"""

from decimal import Decimal

import pytest

from chamber_billing.core.records import (
    CaseRecord,
    CertificateServiceType,
    ContractualConclusion,
    CustomCostConclusion,
    Domain,
    FlatFeeCertificate,
    ProductionType,
    QuickRegistration,
    RecordStatus,
    StandardCertificate,
    StandardConclusion,
    normalize_billing,
    record_from_dict,
    record_to_dict,
)


class TestDomain:
    """Test domain selector parsing."""

    def test_parse_known_domains(self):
        assert Domain.parse("conclusions") is Domain.CONCLUSIONS
        assert Domain.parse(" Certificates ") is Domain.CERTIFICATES
        assert Domain.parse(Domain.CERTIFICATES) is Domain.CERTIFICATES

    def test_unknown_domain_raises_error(self):
        with pytest.raises(ValueError, match="Unknown domain: 'invoices'"):
            Domain.parse("invoices")


class TestConclusionNormalization:
    """Test conclusion branch selection and field coercion."""

    def test_defaults_to_standard(self):
        assert normalize_billing({}, "conclusions") == StandardConclusion()

    def test_standard_fields(self):
        billing = normalize_billing({
            "conclusion_type": "standard",
            "models": 3,
            "positions": "10",
            "codes": 3,
            "complexity": True,
            "urgency": "true",
            "discount": "Зі знижкою",
        }, "conclusions")
        assert billing == StandardConclusion(
            models=3, positions=10, codes=3, complexity=True, urgency=True, discount=True
        )

    def test_full_price_selector(self):
        billing = normalize_billing({"discount": "Повна"}, "conclusions")
        assert billing.discount is False

    def test_unreadable_numbers_become_zero(self):
        billing = normalize_billing({"models": "abc", "positions": None, "codes": ""}, "conclusions")
        assert billing == StandardConclusion()

    def test_legacy_camel_case_keys(self):
        billing = normalize_billing({
            "conclusionType": "contractual",
            "pages": "5",
            "codes": 2,
            "discount": "Зі знижкою",
        }, "conclusions")
        assert billing == ContractualConclusion(pages=5, codes=2, discount=True)

    def test_custom_cost(self):
        billing = normalize_billing({"conclusion_type": "custom_cost", "customCost": "4500.50"}, "conclusions")
        assert billing == CustomCostConclusion(custom_cost=Decimal("4500.50"))

    def test_inactive_branch_fields_are_dropped(self):
        """Only the active branch's fields are kept."""
        billing = normalize_billing({
            "conclusion_type": "contractual",
            "models": 5,
            "complexity": True,
            "pages": 2,
        }, "conclusions")
        assert billing == ContractualConclusion(pages=2)

    def test_unknown_branch_falls_back_to_standard(self):
        billing = normalize_billing({"conclusion_type": "hourly", "models": 2}, "conclusions")
        assert billing == StandardConclusion(models=2)


class TestCertificateNormalization:
    """Test certificate branch selection and field coercion."""

    def test_standard_certificate(self):
        billing = normalize_billing({
            "certificateServiceType": "standard",
            "productionType": "fully_produced",
            "pages": 18,
            "units": 2,
            "positions": 5,
            "additionalPages": 2,
            "urgency": False,
        }, "certificates")
        assert billing == StandardCertificate(
            pages=18, units=2, positions=5, additional_pages=2,
            production_type=ProductionType.FULLY_PRODUCED
        )

    def test_missing_service_type_is_standard(self):
        billing = normalize_billing({"pages": 3}, "certificates")
        assert isinstance(billing, StandardCertificate)
        assert billing.production_type is ProductionType.SUFFICIENT_PROCESSING

    def test_flat_fee_service(self):
        billing = normalize_billing({
            "certificate_service_type": "duplicate",
            "units": 1,
            "pages": 40,
        }, "certificates")
        assert billing == FlatFeeCertificate(
            service_type=CertificateServiceType.DUPLICATE, units=1
        )

    def test_zero_units_are_kept(self):
        """Zero units are stored as given; pricing decides how to bill them."""
        assert normalize_billing({"units": 0}, "certificates").units == 0

    def test_fractional_quantities_are_kept(self):
        billing = normalize_billing({"pages": "20.5", "units": 0.5, "positions": "1.5"}, "certificates")
        assert billing.pages == Decimal("20.5")
        assert billing.units == Decimal("0.5")
        assert billing.positions == Decimal("1.5")


class TestOutOfRangeNumbers:
    """Huge exponents normalize to zero instead of building huge integers."""

    @pytest.mark.parametrize("field_name", ["models", "positions", "codes"])
    def test_conclusion_quantities(self, field_name):
        billing = normalize_billing({field_name: "1e200000000"}, "conclusions")
        assert billing == StandardConclusion()

    def test_certificate_quantities(self):
        billing = normalize_billing({
            "pages": "1e200000000",
            "units": "-1e200000000",
            "additionalPages": "9e999999",
        }, "certificates")
        assert billing == StandardCertificate()

    def test_custom_cost(self):
        billing = normalize_billing({"conclusion_type": "custom_cost", "custom_cost": "1e200000000"}, "conclusions")
        assert billing.custom_cost == Decimal("0")


class TestQuickRegistration:
    """Test quick registration detection."""

    @pytest.mark.parametrize("domain", ["conclusions", "certificates"])
    def test_flag_overrides_billing_fields(self, domain):
        billing = normalize_billing({"isQuickRegistration": True, "models": 5, "pages": 10}, domain)
        assert billing == QuickRegistration()


class TestCaseRecord:
    """Test record conversion."""

    raw = {
        "id": 864,
        "registrationNumber": "Д-864",
        "expert": "Гомба Ю.В.",
        "status": "Виконано",
        "startDate": "2025-10-31",
        "endDate": "2025-11-03",
        "companyName": "ТОВ \"Сандерс-Виноградів\"",
        "comment": "-",
        "actNumber": "А-864",
        "models": 3,
        "positions": 10,
        "codes": 3,
        "complexity": True,
        "urgency": True,
        "discount": "Зі знижкою",
        "conclusionType": "standard",
    }

    def test_record_from_legacy_dict(self):
        record = record_from_dict(self.raw, "conclusions")
        assert record.id == 864
        assert record.registration_number == "Д-864"
        assert record.status is RecordStatus.COMPLETED
        assert record.company_name == "ТОВ \"Сандерс-Виноградів\""
        assert record.billing.models == 3
        assert not record.is_quick_registration

    def test_month_comes_from_end_date(self):
        assert record_from_dict(self.raw, "conclusions").month == "2025-11"

    def test_unknown_status_is_not_completed(self):
        record = record_from_dict({"status": "draft"}, "certificates")
        assert record.status is RecordStatus.NOT_COMPLETED

    def test_dict_conversion_preserves_record(self):
        record = record_from_dict(self.raw, "conclusions")
        assert record_from_dict(record_to_dict(record), "conclusions") == record

    def test_fractional_quantities_survive_conversion(self):
        record = record_from_dict({"pages": "20.5", "units": 3}, "certificates")
        data = record_to_dict(record)
        assert data["pages"] == "20.5"
        assert data["units"] == 3
        assert record_from_dict(data, "certificates") == record

    @pytest.mark.parametrize("raw_id, expected", [
        (864, 864),
        ("864", 864),
        ("3.0", 3),
        (None, None),
        ("", None),
    ])
    def test_record_id(self, raw_id, expected):
        assert record_from_dict({"id": raw_id}, "conclusions").id == expected

    @pytest.mark.parametrize("raw_id", ["12a", "3.5", "1e200000000", "NaN"])
    def test_invalid_record_id_raises_error(self, raw_id):
        with pytest.raises(ValueError, match="Invalid record id"):
            record_from_dict({"id": raw_id}, "conclusions")

    def test_quick_record_serializes_flag_only(self):
        record = CaseRecord(
            registration_number="Д-1", expert="Дан Т.О.",
            start_date="2025-11-01", end_date="2025-11-01"
        )
        data = record_to_dict(record)
        assert data["is_quick_registration"] is True
        assert "models" not in data
