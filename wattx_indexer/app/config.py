"""Config file."""
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("wattx-indexer", alias="PROJECT_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # DATABASE
    database_url: str = Field(
        "sqlite+aiosqlite:///./data/explorer.db",
        alias="DATABASE_URL",
    )
    sync_database_url: str | None = None

    # NODE
    rpc_url: str = Field("http://127.0.0.1:3889", alias="RPC_URL")
    rpc_user: str | None = Field(None, alias="RPC_USER")
    rpc_password: SecretStr | None = Field(None, alias="RPC_PASSWORD")
    rpc_timeout: float = Field(30.0, alias="RPC_TIMEOUT")

    # SYNC
    sync_batch_size: int = Field(10, alias="SYNC_BATCH_SIZE", gt=0)
    sync_poll_interval: float = Field(2.0, alias="SYNC_POLL_INTERVAL", gt=0)
    sync_retry_delay: float = Field(5.0, alias="SYNC_RETRY_DELAY", gt=0)
    sync_retry_max_delay: float = Field(60.0, alias="SYNC_RETRY_MAX_DELAY", gt=0)
    start_height: int = Field(0, alias="START_HEIGHT", ge=0)

    # TOKENS
    probe_created_contracts: bool = Field(True, alias="PROBE_CREATED_CONTRACTS")
    refresh_token_balances: bool = Field(True, alias="REFRESH_TOKEN_BALANCES")

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        # driver-less URL for offline alembic (SQL script) runs
        if not self.sync_database_url:
            self.sync_database_url = (
                self.database_url
                .replace("+aiosqlite", "")
                .replace("+asyncpg", "")
            )

        if self.sync_retry_max_delay < self.sync_retry_delay:
            self.sync_retry_max_delay = self.sync_retry_delay

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


settings: Settings = Settings()
