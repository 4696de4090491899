# tests/test_fragments.py
from unittest.mock import MagicMock

from utils.kpi_tracking import fragments
from utils.kpi_tracking.constants import CACHE_TTL_SECONDS
from utils.kpi_tracking.fragments import cache_ttl_seconds, load_system_data
from utils.kpi_tracking.models import SystemData


def test_failed_load_is_evicted_from_cache():
    loader = MagicMock(return_value=(SystemData.empty(), "Lỗi kết nối"))

    data, error = load_system_data(loader)

    assert error == "Lỗi kết nối"
    assert data.plans == ()
    loader.clear.assert_called_once_with()


def test_successful_load_stays_cached(system_data):
    loader = MagicMock(return_value=(system_data, None))

    data, error = load_system_data(loader)

    assert error is None
    assert data is system_data
    loader.clear.assert_not_called()


def test_cache_ttl_reads_app_setting(monkeypatch):
    monkeypatch.setattr(fragments.config, 'get_app_setting', lambda key, default=None: 45)
    assert cache_ttl_seconds() == 45


def test_cache_ttl_falls_back_on_bad_setting(monkeypatch):
    monkeypatch.setattr(fragments.config, 'get_app_setting', lambda key, default=None: 'abc')
    assert cache_ttl_seconds() == CACHE_TTL_SECONDS

    monkeypatch.setattr(fragments.config, 'get_app_setting', lambda key, default=None: 0)
    assert cache_ttl_seconds() == CACHE_TTL_SECONDS
