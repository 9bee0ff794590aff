"""Client settings loaded from arguments or environment variables."""

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings

from lookerapi.errors import InvalidConfigError


class Settings(BaseSettings):
    # Looker instance root, including /api/ but not the version segment
    # e.g. https://mycompany.cloud.looker.com/api/
    base_url: str = ""

    # API3 credentials. Aliases bypass env_prefix, so both env names are
    # spelled out; populate_by_name keeps Settings(client_id=...) working.
    client_id: str = Field(
        default="", validation_alias=AliasChoices("looker_client_id", "looker_api_client_id")
    )
    client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("looker_client_secret", "looker_api_client_secret"),
    )

    # Transport
    user_agent: str = ""  # Empty = lookerapi/<version>
    timeout: float = 60.0
    connect_timeout: float = 10.0

    # Session
    token_refresh_margin: float = 60.0  # Seconds before expiry to re-login
    create_dev_connection: bool = False  # Open a dev-workspace client on connect

    # Pagination
    page_size: int | None = None  # None = let the server decide

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # Empty = stdout only

    model_config = {
        "env_prefix": "LOOKER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def validate_for_connect(self) -> None:
        """Raise InvalidConfigError unless base_url and credentials are all set."""
        missing = [
            name
            for name, value in (
                ("base_url", self.base_url),
                ("client_id", self.client_id),
                ("client_secret", self.client_secret.get_secret_value()),
            )
            if not value
        ]
        if missing:
            raise InvalidConfigError(
                f"Missing required settings: {', '.join(missing)}",
                details={"missing": missing},
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()
