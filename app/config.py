from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./card_battles.db"
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Upper bound on waiting for a battle to become free before giving up
    store_timeout_seconds: float = 5.0
    max_deck_size: int = 3

    log_level: str = "INFO"


settings = Settings()
