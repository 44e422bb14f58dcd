"""
Environment-driven settings.

  COMPASS_BASE_URL                     analysis API root (default: production API)
  COMPASS_DATABASE_URL                 SQLAlchemy URL for saved analyses
                                       (default: sqlite file under ~/.compass/)
  COMPASS_HTTP_TIMEOUT                 seconds per request (default: 15)
  COMPASS_LOG_LEVEL                    logging level name (default: INFO)
  COMPASS_MAX_CONTRIBUTIONS_DISPLAYED  top-N cap for ranked lists (default: 5)
"""
import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel

DEFAULT_BASE_URL = "https://compass-ai-internal-api.com"


def default_database_url() -> str:
    return f"sqlite:///{Path.home() / '.compass' / 'analyses.db'}"


class Settings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    database_url: str
    http_timeout: float = 15.0
    log_level: str = "INFO"
    max_contributions_displayed: int = 5


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once per process."""
    return Settings(
        base_url=os.environ.get("COMPASS_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        database_url=os.environ.get("COMPASS_DATABASE_URL") or default_database_url(),
        http_timeout=float(os.environ.get("COMPASS_HTTP_TIMEOUT", "15")),
        log_level=os.environ.get("COMPASS_LOG_LEVEL", "INFO").upper(),
        max_contributions_displayed=int(os.environ.get("COMPASS_MAX_CONTRIBUTIONS_DISPLAYED", "5")),
    )
