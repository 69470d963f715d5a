# reaction_api/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "reaction_service"
    env: str = Field(default="local")
    host: str = "0.0.0.0"
    port: int = 8080

    mongo_dsn: str = Field(
        default="mongodb://mongo:27017/reactions?replicaSet=rs0",
        alias="MONGO_DSN"
    )
    mongo_db: str = "reactions"

    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")
    sentry_test_enabled: bool = Field(default=False,
                                      alias="SENTRY_TEST_ENABLED")

    # пусто = берём IP из заголовков запроса
    identity_lookup_url: str = Field(default="",
                                     alias="IDENTITY_LOOKUP_URL")
    identity_lookup_timeout_s: float = 3.0

    # задержка перед повторным чтением статуса/счётчиков после записи
    reconcile_delay_s: float = 0.1
    # False = старый протокол delete + insert
    atomic_reaction_upsert: bool = True

    # change streams требуют replica set
    change_stream_enabled: bool = False
    change_stream_retry_s: float = 1.0

    # Pydantic v2: модель конфигурации
    model_config = SettingsConfigDict(env_file="infra/.env", extra="ignore")


settings = Settings()
