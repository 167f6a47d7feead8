import pytest

from ingestor.core.config import IngestSettings
from ingestor.core.ingestion import IngestionOrchestrator
from ingestor.core.repository import MemoryFundRepository
from ingestor.utils.logger import setup_logging

setup_logging("DEBUG", file_logging=False)

SETTINGS_ENV_VARS = (
    "MORNINGSTAR_API_URL",
    "MORNINGSTAR_API_KEY",
    "MORNINGSTAR_HEALTH_URL",
    "SOURCE_TIMEOUT_SECONDS",
    "SOURCE_MAX_ATTEMPTS",
    "SOURCE_RETRY_BASE_DELAY",
    "MONGODB_URI",
    "MONGO_URI",
    "MONGODB_URL",
    "MONGODB_DB_NAME",
    "CRON_ENABLED",
    "CRON_SCHEDULE",
    "CRON_TIMEZONE",
    "LOG_LEVEL",
)


def make_raw_fund(index: int = 1, **overrides) -> dict:
    data = {
        "fund_id": f"MF{index:04d}",
        "fund_name": f"Alpha Bluechip Fund {index}",
        "fund_category": "Large Cap",
        "amc": "Alpha Asset Management",
        "scheme_code": f"1{index:05d}",
        "isin": f"INF000A{index:05d}",
        "risk_profile": "Moderately High",
        "five_year_cagr_equity": 14.2,
        "three_year_rolling_consistency": 78.0,
        "sharpe_ratio": 1.12,
        "sortino_ratio": 1.58,
        "alpha": 2.1,
        "beta": 0.94,
        "std_dev_equity": 13.4,
        "max_drawdown": -22.5,
        "recovery_period": 11,
        "downside_capture_ratio": 88.0,
        "expense_ratio_equity": 1.25,
        "aum_equity": 25400.0,
        "liquidity_risk": 2,
        "portfolio_turnover_ratio": 34.0,
        "fund_house_reputation": 4,
        "fund_manager_tenure": 6.5,
        "fund_manager_track_record": 4,
        "esg_governance": 3,
        "benchmark_consistency": 4,
        "peer_comparison": 4,
    }
    data.update(overrides)
    return data


@pytest.fixture
def repository():
    return MemoryFundRepository()


@pytest.fixture
def orchestrator(repository):
    return IngestionOrchestrator(repository)


@pytest.fixture
def settings(monkeypatch):
    """Settings built from settings.yaml plus a configured source API only."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MORNINGSTAR_API_URL", "https://api.example.com/v1/funds")
    monkeypatch.setenv("MORNINGSTAR_API_KEY", "test-key")
    return IngestSettings()
