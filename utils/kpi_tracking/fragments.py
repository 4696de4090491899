# utils/kpi_tracking/fragments.py
"""
Shared Streamlit pieces for the KPI pages.

- load_system_data: cached users/plans snapshot; a failed load is evicted
  at once so the next rerun queries the store again
- render_load_error: error banner with a retry button, then stop the page

Usage:
    data, error = load_system_data()
    if error:
        render_load_error(error)
"""

import logging
from typing import Optional, Tuple

import streamlit as st

from ..config import config
from .constants import CACHE_TTL_SECONDS
from .data_service import KPIDataService
from .models import SystemData

logger = logging.getLogger(__name__)


def cache_ttl_seconds() -> int:
    """Snapshot cache lifetime; the CACHE_TTL_SECONDS setting overrides the default."""
    try:
        ttl = int(config.get_app_setting("CACHE_TTL_SECONDS", CACHE_TTL_SECONDS))
    except (TypeError, ValueError):
        logger.warning("⚠️ Invalid CACHE_TTL_SECONDS, using default")
        return CACHE_TTL_SECONDS
    return ttl if ttl > 0 else CACHE_TTL_SECONDS


@st.cache_data(ttl=cache_ttl_seconds(), show_spinner=False)
def _cached_system_data():
    return KPIDataService().load_system_data()


def load_system_data(loader=None) -> Tuple[SystemData, Optional[str]]:
    """
    Snapshot for the current page.

    The cached loader keeps whatever it returned, including an
    (empty snapshot, error) pair; that pair is cleared here so a short
    store outage is not replayed for the whole cache lifetime.
    """
    loader = loader or _cached_system_data
    data, error = loader()
    if error:
        logger.warning(f"⚠️ Snapshot load failed, cache cleared: {error}")
        loader.clear()
    return data, error


def render_load_error(error: str):
    st.error(f"❌ {error}")
    if st.button("🔄 Thử lại", key="retry_system_data"):
        st.rerun()
    st.stop()
