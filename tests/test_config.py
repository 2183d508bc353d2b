import pytest

from billsignal.config import (
    DatabaseConfig,
    GeminiConfig,
    LegiScanConfig,
    PipelineConfig,
    Settings,
    US_STATES,
)
from billsignal.exceptions import ConfigurationError


def test_list_settings_accept_comma_separated_env(monkeypatch) -> None:
    monkeypatch.setenv("PIPELINE_JURISDICTIONS", "ca, tx")
    monkeypatch.setenv("GEMINI_MODELS", '["gemini-2.5-pro", "gemini-2.0-flash"]')

    assert PipelineConfig().jurisdictions == ["CA", "TX"]
    assert GeminiConfig().models == ["gemini-2.5-pro", "gemini-2.0-flash"]


def test_pipeline_defaults() -> None:
    config = PipelineConfig()

    assert config.jurisdictions == US_STATES
    assert config.target_count == 100
    assert config.max_predictions_per_bill == 5
    assert config.max_analysis_attempts is None


def test_throttle_has_a_floor() -> None:
    with pytest.raises(ValueError):
        LegiScanConfig(throttle_ms=50)


def test_connection_string_upgrades_to_async_drivers() -> None:
    assert DatabaseConfig(
        database_url="postgres://u:p@db:5432/bills"
    ).connection_string == "postgresql+asyncpg://u:p@db:5432/bills"
    assert DatabaseConfig(
        database_url="sqlite:///./local.db"
    ).connection_string == "sqlite+aiosqlite:///./local.db"
    assert DatabaseConfig(
        database_url="sqlite:///./local.db"
    ).is_sqlite


def test_missing_credentials_raise(monkeypatch) -> None:
    monkeypatch.delenv("LEGISCAN_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    settings = Settings(
        legiscan=LegiScanConfig(api_key=None),
        gemini=GeminiConfig(api_key=None),
    )

    with pytest.raises(ConfigurationError, match="LEGISCAN_API_KEY"):
        settings.require_ingestion_credentials()
    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
        settings.require_analysis_credentials()


def test_present_credentials_pass() -> None:
    settings = Settings(
        legiscan=LegiScanConfig(api_key="a"),
        gemini=GeminiConfig(api_key="b"),
        pipeline=PipelineConfig(jurisdictions=["CA"]),
    )

    settings.require_ingestion_credentials()
    settings.require_analysis_credentials()
