"""Test settings and tariff configuration."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from bill_analyzer.config import DEFAULT_CHARGE_SHARES, Settings, TariffConfig
from bill_analyzer.models.schema import ChargeType


class TestTariffConfig:
    def test_defaults(self):
        tariff = TariffConfig()
        assert sum(tariff.charge_shares.values()) == Decimal("1")
        assert tariff.share(ChargeType.GENERATION) == Decimal("0.55")
        assert tariff.balancing_charge == ChargeType.SUBSIDY
        assert tariff.high_usage_threshold == Decimal("10")
        assert tariff.consumption_floor == Decimal("50")

    def test_frozen(self):
        with pytest.raises(ValidationError):
            TariffConfig().high_usage_threshold = Decimal("20")

    def test_shares_must_sum_to_one(self):
        shares = dict(DEFAULT_CHARGE_SHARES)
        shares[ChargeType.OTHER] = Decimal("0.5")
        with pytest.raises(ValidationError, match="sum to 1"):
            TariffConfig(charge_shares=shares)

    def test_shares_must_cover_every_charge(self):
        shares = dict(DEFAULT_CHARGE_SHARES)
        del shares[ChargeType.OTHER]
        with pytest.raises(ValidationError, match="missing"):
            TariffConfig(charge_shares=shares)

    def test_kwh_bounds_ordered(self):
        with pytest.raises(ValidationError):
            TariffConfig(kwh_min=600, kwh_max=500)

    def test_floor_must_be_positive(self):
        with pytest.raises(ValidationError):
            TariffConfig(consumption_floor=Decimal("0"))


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BILL_RANDOM_SEED", raising=False)
        settings = Settings()
        assert settings.random_seed is None
        assert settings.max_upload_bytes == 10 * 1024 * 1024
        assert settings.ocr_language == "eng"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("BILL_RANDOM_SEED", "17")
        monkeypatch.setenv("BILL_MAX_UPLOAD_MB", "2")
        settings = Settings()
        assert settings.random_seed == 17
        assert settings.max_upload_bytes == 2 * 1024 * 1024

    def test_nested_tariff_env(self, monkeypatch):
        monkeypatch.setenv("BILL_TARIFF__HIGH_USAGE_THRESHOLD", "15")
        settings = Settings()
        assert settings.tariff.high_usage_threshold == Decimal("15")
        assert settings.tariff.consumption_floor == Decimal("50")
