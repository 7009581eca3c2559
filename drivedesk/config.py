from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'DriveDesk'
    app_env: str = 'local'
    app_timezone: str = 'America/Argentina/Buenos_Aires'
    database_url: str = 'sqlite:///./drivedesk.db'
    school_name: str = 'Driving School'
    currency_symbol: str = '$'
    default_class_price: float = 15000
    promo_class_price: float = 9000
    promo_pack_size: int = 10
    calendar_hours_start: int = 7
    calendar_hours_end: int = 21
    calendar_slot_minutes: int = 30
    identity_api_base: str = 'https://identitytoolkit.googleapis.com/v1'
    identity_api_key: str = ''
    identity_timeout_seconds: float = 10.0
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 12
    default_cache_ttl: int = 300
    cache_max_entries: int = 256
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
