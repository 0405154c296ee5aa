import pytest
from pydantic import ValidationError

from bitacora.core.config import Settings


def test_defaults_use_sql_backend_and_disable_lookups():
    config = Settings(_env_file=None, ALPHA_VANTAGE_API_KEY=None, PRICE_LOOKUP_ENABLED=False)
    assert config.STORAGE_BACKEND == "sql"
    assert not config.price_lookup_active()


def test_storage_backend_is_normalized():
    assert Settings(_env_file=None, STORAGE_BACKEND=" Memory ").STORAGE_BACKEND == "memory"


@pytest.mark.parametrize(
    "overrides",
    [
        {"STORAGE_BACKEND": "firebase"},
        {"PRICE_LOOKUP_TIMEOUT_SECONDS": 0},
        {"PRICE_LOOKUP_MAX_CONCURRENCY": 0},
        {"LOG_LEVEL": "verbose"},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_price_lookup_needs_flag_and_key():
    assert Settings(_env_file=None, PRICE_LOOKUP_ENABLED=True, ALPHA_VANTAGE_API_KEY="k").price_lookup_active()
    assert not Settings(_env_file=None, PRICE_LOOKUP_ENABLED=True, ALPHA_VANTAGE_API_KEY="").price_lookup_active()


def test_cors_origins_accept_json_or_comma_lists():
    assert Settings(_env_file=None, CORS_ORIGINS='["http://a", "http://b"]').get_cors_origins() == ["http://a", "http://b"]
    assert Settings(_env_file=None, CORS_ORIGINS="http://a, http://b").get_cors_origins() == ["http://a", "http://b"]
