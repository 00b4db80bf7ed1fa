"""Tests for environment-driven settings."""

from unittest.mock import patch

import pytest

from zapinbox.config import Settings, load_settings


def test_defaults_with_empty_environment():
    with patch.dict("os.environ", {}, clear=True):
        settings = load_settings()
    assert settings == Settings()
    assert settings.backfill_page_size == 200
    assert settings.backfill_max_pages == 500
    assert settings.default_jid_suffix == "@c.us"
    assert not settings.zapi_configured


def test_reads_environment():
    env = {
        "ZAPI_BASE": " https://api.z-api.io/instances/X/ ",
        "ZAPI_TOKEN": "tok",
        "ZAPI_HTTP_TIMEOUT": "12",
        "BACKFILL_PAGE_SIZE": "50",
        "BACKFILL_MAX_PAGES": "7",
        "BACKFILL_WORKERS": "4",
        "DEFAULT_JID_SUFFIX": "@s.whatsapp.net",
    }
    with patch.dict("os.environ", env, clear=True):
        settings = load_settings()
    assert settings.zapi_base == "https://api.z-api.io/instances/X"
    assert settings.zapi_configured
    assert settings.http_timeout == 12
    assert settings.backfill_page_size == 50
    assert settings.backfill_max_pages == 7
    assert settings.backfill_workers == 4
    assert settings.default_jid_suffix == "@s.whatsapp.net"


@pytest.mark.parametrize("raw, expected", [("abc", 200), ("0", 1), ("-5", 1), ("", 200)])
def test_bad_integers_fall_back_or_clamp(raw, expected):
    with patch.dict("os.environ", {"BACKFILL_PAGE_SIZE": raw}, clear=True):
        assert load_settings().backfill_page_size == expected


def test_scan_budget_has_a_floor():
    with patch.dict("os.environ", {"NORMALIZE_MAX_NODES": "3"}, clear=True):
        assert load_settings().normalize_max_nodes == 100
