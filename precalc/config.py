from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Precalculus Pacing'
    app_env: str = 'local'
    app_timezone: str = 'America/Denver'
    database_url: str = 'sqlite:///./precalc.db'
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 12
    support_email: str = 'precalc_math@example.edu'
    free_extension_days: int = 2
    accommodation_offer_window_days: int = 4
    free_offer_window_days: int = 2
    mastery_grace_minutes: int = 10
    points_on_time: int = 5
    points_late: int = 4
    default_cache_ttl: int = 300
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
