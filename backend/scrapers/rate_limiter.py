"""
Scraper Rate Limiter - Domain-keyed rate limiting for registry and page requests.

Single-process, in-memory sliding window. Limits come from a YAML file with
defaults, per-domain overrides and per-route overrides.

Key format: scrape:{domain}:{route_group}
"""
import time
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_LIMITS = {
    "requests_per_minute": 10,
    "requests_per_hour": 100,
    "burst_limit": 3,
}


class ScraperRateLimiter:
    """Rate limiter for outbound requests with domain/route granularity."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize rate limiter.

        Args:
            config_path: Path to YAML config file.
                        Defaults to scrapers/scraper_rate_limits.yaml
        """
        self.config_path = config_path or self._default_config_path()
        self._config = None
        self._memory_store: Dict[str, list] = defaultdict(list)

    def _default_config_path(self) -> str:
        """Get default config path."""
        from config import Config

        if Config.SCRAPER_RATE_LIMIT_CONFIG:
            return Config.SCRAPER_RATE_LIMIT_CONFIG
        return str(Path(__file__).parent / "scraper_rate_limits.yaml")

    @property
    def config(self) -> Dict[str, Any]:
        """Load config (cached)."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Dict[str, Any]:
        """Load rate limit configuration from YAML."""
        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f) or {}
                logger.info(f"Loaded rate limits from {self.config_path}")
                return config
        except FileNotFoundError:
            logger.warning(
                f"Rate limit config not found at {self.config_path}, using defaults"
            )
            return {"defaults": dict(DEFAULT_LIMITS), "domains": {}}

    def _get_limits(
        self, domain: str, route_group: str = "default"
    ) -> Dict[str, int]:
        """
        Get rate limits for a domain/route combination.

        Args:
            domain: Domain name
            route_group: Route group within domain

        Returns:
            Dict with requests_per_minute, requests_per_hour, burst_limit
        """
        defaults = self.config.get("defaults", {}) or {}
        domain_config = (self.config.get("domains", {}) or {}).get(domain, {}) or {}

        limits = {key: defaults.get(key, value) for key, value in DEFAULT_LIMITS.items()}

        for key in limits:
            if key in domain_config:
                limits[key] = domain_config[key]

        route_config = (domain_config.get("routes", {}) or {}).get(route_group, {}) or {}
        for key in limits:
            if key in route_config:
                limits[key] = route_config[key]

        return limits

    def _make_key(self, domain: str, route_group: str = "default") -> str:
        """Create rate limit key."""
        return f"scrape:{domain}:{route_group}"

    def wait(self, domain: str, route_group: str = "default"):
        """
        Wait if rate limited, then record the request.

        Sliding window:
        - Check requests in last minute
        - If over limit, sleep until allowed
        - Record this request

        Args:
            domain: Domain being requested
            route_group: Route group within domain
        """
        limits = self._get_limits(domain, route_group)
        key = self._make_key(domain, route_group)
        now = time.time()

        self._memory_store[key] = [
            t for t in self._memory_store[key] if now - t < 3600
        ]
        minute_count = len([t for t in self._memory_store[key] if now - t < 60])
        hour_count = len(self._memory_store[key])

        if (
            minute_count >= limits["requests_per_minute"]
            or hour_count >= limits["requests_per_hour"]
        ):
            wait_time = 60 / limits["requests_per_minute"]
            logger.debug(f"Rate limited for {domain}, waiting {wait_time:.1f}s")
            time.sleep(wait_time)

        self._memory_store[key].append(time.time())

    def is_allowed(self, domain: str, route_group: str = "default") -> bool:
        """
        Check if a request is allowed without waiting.

        Args:
            domain: Domain being requested
            route_group: Route group within domain

        Returns:
            True if request is allowed
        """
        limits = self._get_limits(domain, route_group)
        key = self._make_key(domain, route_group)
        now = time.time()
        recent = [t for t in self._memory_store[key] if now - t < 60]
        return len(recent) < limits["requests_per_minute"]

    def get_status(self, domain: str, route_group: str = "default") -> Dict:
        """
        Get current rate limit status for a domain.

        Returns:
            Dict with current counts and limits
        """
        limits = self._get_limits(domain, route_group)
        key = self._make_key(domain, route_group)
        now = time.time()

        minute_count = len([t for t in self._memory_store[key] if now - t < 60])
        hour_count = len([t for t in self._memory_store[key] if now - t < 3600])

        return {
            "domain": domain,
            "route_group": route_group,
            "minute": {
                "current": minute_count,
                "limit": limits["requests_per_minute"],
            },
            "hour": {
                "current": hour_count,
                "limit": limits["requests_per_hour"],
            },
            "is_allowed": minute_count < limits["requests_per_minute"],
        }


# Global instance (lazy init)
_rate_limiter = None


def get_scraper_rate_limiter() -> ScraperRateLimiter:
    """Get the global rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = ScraperRateLimiter()
    return _rate_limiter
