"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from quakeviz.domain.enums import MagnitudeFilter, Period


class Settings(BaseSettings):
    app_name: str = "quakeviz"
    log_level: str = "INFO"

    # Pipeline
    pipeline_deadline_seconds: float = 30.0
    max_clusters: int = 8
    include_depth: bool = False

    # Upstream feed
    feed_base_url: str = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"
    feed_timeout_seconds: float = 20.0
    feed_magnitude: MagnitudeFilter = MagnitudeFilter.ALL

    # HTTP surface
    default_period: Period = Period.PAST_7_DAYS

    model_config = {"env_prefix": "QUAKEVIZ_"}


settings = Settings()
