"""
Settings management for the Performance Signal Engine.

This module provides centralized configuration using pydantic-settings, which
loads values from environment variables and an optional .env file.

Every threshold used by the engine lives here so that the dashboard can be
tuned without code changes. Defaults match the behaviour the dashboard ships
with.

Environment Variables (all optional, prefix SIGNAL_ENGINE_):
- SIGNAL_ENGINE_DEFAULT_HORIZON_DAYS: Capacity forecast horizon (default: 30)
- SIGNAL_ENGINE_DUE_SOON_DAYS: Window for the "Due soon" flag (default: 7)
- SIGNAL_ENGINE_RISK_HORIZON_DAYS: Jobs-at-risk look-ahead (default: 30)
- SIGNAL_ENGINE_LOG_LEVEL: Logging level for configure_logging (default: INFO)

Usage:
    from signal_engine.core.config import get_settings

    settings = get_settings()
    horizon = settings.default_horizon_days
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Attributes:
        default_horizon_days: Forecast horizon used when callers pass none.
        due_soon_days: Days ahead (inclusive) that count as "due soon".
        check_in_min_pct: Lower bound of the effort/timeline check-in band.
        check_in_max_pct: Upper bound of the effort/timeline check-in band.
        risk_horizon_days: Look-ahead window for the jobs-at-risk rollup.
        max_driver_chips: Maximum unique reason chips shown per job.
        tight_pressure_pct: Pressure at or above which capacity is "Tight".
        overloaded_pressure_pct: Pressure above which capacity is "Overloaded".
        flow_drifting_min_severity: Severity sum at which flow is "Drifting".
        flow_watchlist_min_severity: Severity sum at which flow is "Watchlist".
        flow_capacity_override_pct: Pressure above which flow is forced to "Drifting".
        flow_unreviewed_overdue_min_score_pct: Score floor when unreviewed overdue work exists.
        flow_capacity_override_min_score_pct: Score floor when the capacity override fires.
        capacity_red_pct: Pressure above which the capacity signal is red.
        capacity_amber_pct: Pressure above which the capacity signal is amber.
        pace_at_risk_pct: Job effort/timeline % above which a job is warming up.
        on_time_green_pct: On-time % at or above which momentum is green.
        on_time_amber_pct: On-time % at or above which momentum is amber.
        deadlines_due_soon_amber_count: Due-soon count above which deadlines are amber.
        sales_coverage_green_pct: Coverage % at or above which sales clarity is green.
        sales_coverage_amber_pct: Coverage % at or above which sales clarity is amber.
        default_deal_probability: Weight for open deals without a probability.
        log_level: Level applied by configure_logging.
    """

    model_config = SettingsConfigDict(
        env_prefix='SIGNAL_ENGINE_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Deliverable Risk Classifier
    # =========================================================================

    due_soon_days: int = 7

    # Effort or timeline inside [min, max] with no confidence set prompts a check-in
    check_in_min_pct: int = 85
    check_in_max_pct: int = 100

    # =========================================================================
    # Capacity Forecast Builder
    # =========================================================================

    default_horizon_days: int = 30

    # Same thresholds drive the team-wide label and each member's utilization state
    tight_pressure_pct: int = 85
    overloaded_pressure_pct: int = 100

    # =========================================================================
    # Jobs-at-Risk Rollup
    # =========================================================================

    risk_horizon_days: int = 30
    max_driver_chips: int = 4

    # =========================================================================
    # Flow Score Aggregator
    # =========================================================================

    flow_drifting_min_severity: int = 5
    flow_watchlist_min_severity: int = 2
    flow_capacity_override_pct: int = 110
    flow_unreviewed_overdue_min_score_pct: int = 20
    flow_capacity_override_min_score_pct: int = 90

    # =========================================================================
    # Pulse Signal Tones
    # =========================================================================

    capacity_red_pct: int = 110
    capacity_amber_pct: int = 90

    pace_at_risk_pct: int = 85
    on_time_green_pct: int = 85
    on_time_amber_pct: int = 70

    deadlines_due_soon_amber_count: int = 2

    sales_coverage_green_pct: int = 90
    sales_coverage_amber_pct: int = 70
    default_deal_probability: float = 0.35

    # =========================================================================
    # Logging
    # =========================================================================

    log_level: str = 'INFO'


@lru_cache()
def get_settings() -> Settings:
    """
    Get the engine settings singleton.

    Returns:
        Settings: Cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
