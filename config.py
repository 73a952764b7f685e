"""
Configuration settings for the options snapshot service.

Centralized config makes it easy to point at a different terminal or tune
caching without touching core logic.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os
from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


@dataclass
class UpstreamConfig:
    """Upstream quote provider configuration."""
    base_url: str = os.getenv("THETA_BASE_URL", "http://localhost:25503/v3")
    legacy_base_url: str = os.getenv("THETA_LEGACY_BASE_URL", "http://localhost:25510/v2")
    # Snapshots are short-lived, so the cache only needs to absorb bursts
    cache_ttl: float = float(os.getenv("THETA_CACHE_TTL_MS", "1500")) / 1000.0
    next_page_header: str = os.getenv("THETA_NEXT_PAGE_HEADER", "Next-Page")
    timeout: Optional[float] = _optional_float("THETA_REQUEST_TIMEOUT")  # None = wait forever
    error_excerpt_chars: int = int(os.getenv("ERROR_EXCERPT_CHARS", "300"))
    cache_dir: Optional[Path] = Path(os.environ["CACHE_DIR"]) if os.getenv("CACHE_DIR") else None


@dataclass
class ServiceConfig:
    """Chain assembly parameters."""
    timezone: str = os.getenv("TZ", "America/New_York")
    fetch_workers: int = int(os.getenv("FETCH_WORKERS", "4"))
    partial_failure_policy: str = os.getenv("PARTIAL_FAILURE_POLICY", "fail_fast")  # fail_fast, best_effort


@dataclass
class UIConfig:
    """User interface settings."""
    default_symbol: str = "SPY"
    max_display_rows: int = 200


# Global config instances
upstream_config = UpstreamConfig()
service_config = ServiceConfig()
ui_config = UIConfig()
