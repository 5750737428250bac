"""Application configuration via environment variables with BILL_ prefix."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bill_analyzer.models.schema import ChargeType


DEFAULT_CHARGE_SHARES: dict[ChargeType, Decimal] = {
    ChargeType.GENERATION: Decimal("0.55"),
    ChargeType.TRANSMISSION: Decimal("0.08"),
    ChargeType.SYSTEM_LOSS: Decimal("0.06"),
    ChargeType.DISTRIBUTION: Decimal("0.16"),
    ChargeType.SUBSIDY: Decimal("0.01"),
    ChargeType.GOVERNMENT_TAXES: Decimal("0.10"),
    ChargeType.UNIVERSAL: Decimal("0.02"),
    ChargeType.FEED_IN_TARIFF: Decimal("0.007"),
    ChargeType.OTHER: Decimal("0.013"),
}

# Relative residential load per calendar month (hot dry season peaks Apr-May).
DEFAULT_SEASONAL_PROFILE: dict[int, Decimal] = {
    1: Decimal("0.88"),
    2: Decimal("0.90"),
    3: Decimal("0.97"),
    4: Decimal("1.08"),
    5: Decimal("1.12"),
    6: Decimal("1.05"),
    7: Decimal("1.00"),
    8: Decimal("0.98"),
    9: Decimal("0.97"),
    10: Decimal("0.95"),
    11: Decimal("0.93"),
    12: Decimal("0.95"),
}


class TariffConfig(BaseModel):
    """Domain constants used by the completion engine.

    Immutable and passed explicitly, so tests can substitute alternate tariffs
    without touching engine logic.
    """

    model_config = ConfigDict(frozen=True)

    # ── Charge allocation ───────────────────────────────────────────────
    charge_shares: dict[ChargeType, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_CHARGE_SHARES)
    )
    balancing_charge: ChargeType = ChargeType.SUBSIDY

    # ── Environmental impact ────────────────────────────────────────────
    emission_factor: Decimal = Decimal("0.000692")  # tCO2e per kWh
    trees_per_ton: Decimal = Decimal("40")

    # ── Usage analytics ─────────────────────────────────────────────────
    high_usage_threshold: Decimal = Decimal("10")
    consumption_floor: Decimal = Field(default=Decimal("50"), gt=0)
    series_length: int = Field(default=12, ge=2)
    seasonal_profile: dict[int, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_SEASONAL_PROFILE)
    )
    noise_ratio: float = Field(default=0.08, ge=0.0, lt=1.0)

    # ── Synthetic fallback bounds ───────────────────────────────────────
    kwh_min: int = 150
    kwh_max: int = 500
    rate_min: float = 9.50
    rate_max: float = 12.50
    reading_baseline_min: int = 1000
    reading_baseline_max: int = 50000

    # ── Calendar ────────────────────────────────────────────────────────
    due_days: int = Field(default=14, ge=0)

    @model_validator(mode="after")
    def _check_tables(self) -> TariffConfig:
        if set(self.charge_shares) != set(ChargeType):
            missing = sorted(set(ChargeType) - set(self.charge_shares))
            raise ValueError(f"charge_shares must cover every charge type, missing {missing}")
        if any(share < 0 for share in self.charge_shares.values()):
            raise ValueError("charge_shares must be non-negative")
        if sum(self.charge_shares.values()) != Decimal("1"):
            raise ValueError(f"charge_shares must sum to 1, got {sum(self.charge_shares.values())}")
        if set(self.seasonal_profile) != set(range(1, 13)):
            raise ValueError("seasonal_profile must have an entry for every month 1-12")
        if any(factor <= 0 for factor in self.seasonal_profile.values()):
            raise ValueError("seasonal_profile factors must be positive")
        if not self.consumption_floor <= self.kwh_min <= self.kwh_max:
            raise ValueError("kwh bounds must satisfy consumption_floor <= kwh_min <= kwh_max")
        if not 0 <= self.rate_min <= self.rate_max:
            raise ValueError("rate bounds must satisfy 0 <= rate_min <= rate_max")
        if not 0 <= self.reading_baseline_min <= self.reading_baseline_max:
            raise ValueError("reading baseline bounds are out of order")
        return self

    def share(self, charge: ChargeType) -> Decimal:
        return self.charge_shares[charge]


class Settings(BaseSettings):
    """Bill analyzer configuration.

    All settings are read from environment variables prefixed with ``BILL_``.
    Nested tariff values use ``__`` as a delimiter, e.g.
    ``BILL_TARIFF__HIGH_USAGE_THRESHOLD=15``.
    """

    model_config = SettingsConfigDict(env_prefix="BILL_", env_nested_delimiter="__")

    # ── Logging ────────────────────────────────────────────────────────────
    log_level: str = "INFO"

    # ── Completion ─────────────────────────────────────────────────────────
    # Leave unset for fresh synthetic values on every upload
    random_seed: int | None = None
    tariff: TariffConfig = Field(default_factory=TariffConfig)

    # ── Ingestion ──────────────────────────────────────────────────────────
    max_upload_mb: int = Field(default=10, gt=0)
    dpi: int = 300

    # ── OCR (Tesseract) ────────────────────────────────────────────────────
    tesseract_cmd: str = ""
    ocr_language: str = "eng"

    # ── API ─────────────────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:5173"])

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024
