import logging

import pytest

from recruiterops.core.config import Settings, validate_config


def test_cors_origins_split():
    cfg = Settings(_env_file=None, CORS_ORIGINS="https://app.example.com, http://localhost:3000,")
    assert cfg.cors_origins() == ["https://app.example.com", "http://localhost:3000"]


def test_missing_keys_warn_by_default(caplog):
    cfg = Settings(_env_file=None, DATABASE_URL=None, GUMROAD_SELLER_ID=None)
    with caplog.at_level(logging.WARNING, logger="recruiterops"):
        assert validate_config(settings_obj=cfg)
    assert "GUMROAD_SELLER_ID" in caplog.text
    assert "seller verification is disabled" in caplog.text


def test_missing_keys_raise_in_strict_mode():
    cfg = Settings(_env_file=None, DATABASE_URL=None, GUMROAD_SELLER_ID=None, CONFIG_STRICT=True)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        validate_config(settings_obj=cfg)


def test_complete_config_passes_strict():
    cfg = Settings(_env_file=None, DATABASE_URL="sqlite://", GUMROAD_SELLER_ID="seller-123")
    assert validate_config(strict=True, settings_obj=cfg)
