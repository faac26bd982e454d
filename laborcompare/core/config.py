"""
Configuration module with strict validation.

Key principles:
- Loading settings never requires an API key
- Each required fetch stage asks for its key up front and fails with a clear error
- Batch sizes, delays and retry limits are configurable
- Safe defaults for all optional settings
"""
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from laborcompare.core.api_errors import MissingCredentialError


class Settings(BaseSettings):
    """Pipeline settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Credentials (OPTIONAL at load time, REQUIRED by the stages that use them)
    bls_api_key: Optional[str] = Field(
        default=None,
        description="BLS API key - required for LAUS/CES, optional sources skip without it"
    )

    bea_api_key: Optional[str] = Field(
        default=None,
        description="BEA API key (UserID) - required for regional income"
    )

    census_api_key: Optional[str] = Field(
        default=None,
        description="Census API key - required for ACS county data"
    )

    # Output
    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory for raw artifacts and published index files"
    )

    # Target period override
    target_year: Optional[int] = Field(
        default=None,
        ge=2000,
        le=2100,
        description="Override the reference year used by every fetcher"
    )

    oews_year: Optional[int] = Field(
        default=None,
        ge=2000,
        le=2100,
        description="Exact OEWS release year to download (default: last year, then the year before)"
    )

    oews_force: bool = Field(
        default=False,
        description="Re-download OEWS even when the published year is current"
    )

    acs_year: int = Field(
        default=2023,
        ge=2009,
        le=2100,
        description="ACS 5-year release to query"
    )

    # BLS batching
    bls_batch_delay: float = Field(
        default=1.5,
        ge=0.0,
        le=60.0,
        description="Seconds to sleep between BLS batches"
    )

    max_consecutive_failures: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Abort a series fetch after this many failed batches in a row"
    )

    # Retry Configuration
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts per request (first try included)"
    )

    retry_delay: float = Field(
        default=5.0,
        ge=0.0,
        le=120.0,
        description="Base retry delay; attempt N waits retry_delay * N seconds"
    )

    max_backoff: float = Field(
        default=60.0,
        ge=0.0,
        le=600.0,
        description="Upper bound on a single retry wait"
    )

    request_timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="HTTP timeout in seconds"
    )

    # OEWS wage cap (BLS publishes '#' for wages at or above these values)
    oews_annual_wage_cap: float = Field(
        default=239200.0,
        gt=0,
        description="Annual wage substituted for capped OEWS cells"
    )

    oews_hourly_wage_cap: float = Field(
        default=115.00,
        gt=0,
        description="Hourly wage substituted for capped OEWS cells"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Testing
    run_integration_tests: bool = Field(
        default=False,
        description="Enable integration tests (requires API keys and network)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw"

    def require_bls_api_key(self) -> str:
        """
        Get BLS API key, raising clear error if missing.

        Call this at the START of any required BLS stage (LAUS, CES).

        Raises:
            MissingCredentialError: If the key is not configured

        Returns:
            str: The API key
        """
        if not self.bls_api_key:
            raise MissingCredentialError(
                "BLS_API_KEY is required for LAUS and CES ingestion. "
                "Please set it in your .env file or environment variables. "
                "Get a free key at: https://data.bls.gov/registrationEngine/",
                source="bls",
                missing_config="bls_api_key",
            )
        return self.bls_api_key

    def require_bea_api_key(self) -> str:
        """
        Get BEA API key, raising clear error if missing.

        Raises:
            MissingCredentialError: If the key is not configured
        """
        if not self.bea_api_key:
            raise MissingCredentialError(
                "BEA_API_KEY is required for regional income ingestion. "
                "Get a free key at: https://apps.bea.gov/api/signup/",
                source="bea",
                missing_config="bea_api_key",
            )
        return self.bea_api_key

    def require_census_api_key(self) -> str:
        """
        Get Census API key, raising clear error if missing.

        Raises:
            MissingCredentialError: If the key is not configured
        """
        if not self.census_api_key:
            raise MissingCredentialError(
                "CENSUS_API_KEY is required for ACS county ingestion. "
                "Get a key at: https://api.census.gov/data/key_signup.html",
                source="census",
                missing_config="census_api_key",
            )
        return self.census_api_key

    def get_bls_api_key(self) -> Optional[str]:
        """
        Get BLS API key if configured.

        Optional BLS stages (CPI, JOLTS) check this and skip with a
        warning instead of failing.
        """
        return self.bls_api_key


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    This pattern allows:
    - Easy testing (can reset settings between tests)
    - Lazy loading (only loads when first accessed)
    - Singleton pattern (same instance used everywhere)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the global settings instance.

    Useful for testing to ensure clean state between tests.
    """
    global _settings
    _settings = None
