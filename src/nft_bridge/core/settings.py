"""Application settings and configuration.

This module defines all configuration options for the NFT bridge validator.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    Key material for the commit key ring is not configured here; it lives in
    the shared key-ring store (see ``nft_bridge.services.keyring``).
    """

    # Application metadata
    app_name: str = Field(default="NFT Bridge Validator", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Operator authentication (JWT bearer tokens for key rotation)
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    operator_token_expire_minutes: int = Field(
        default=15,
        alias="OPERATOR_TOKEN_EXPIRE_MINUTES",
    )

    # Key-ring store shared by every validator replica
    database_url: str = Field(default="sqlite:///./keyring.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Validator identity used to co-sign commitments
    validator_private_key: str | None = Field(default=None, alias="VALIDATOR_PRIVATE_KEY")

    # Bridge deployment quadruple bound into every signed message
    from_token: str | None = Field(default=None, alias="FROM_TOKEN")
    from_bridge: str | None = Field(default=None, alias="FROM_BRIDGE")
    to_token: str | None = Field(default=None, alias="TO_TOKEN")
    to_bridge: str | None = Field(default=None, alias="TO_BRIDGE")

    # Challenge lifetime applied by the SETUP command when none is given
    challenge_lifetime_seconds: int = Field(
        default=300,
        alias="CHALLENGE_LIFETIME_SECONDS",
    )

    # CORS configuration for wallet frontends
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def bridge_addresses(self) -> dict[str, str | None]:
        """Return the configured bridge quadruple as a dictionary."""
        return {
            "from_token": self.from_token,
            "from_bridge": self.from_bridge,
            "to_token": self.to_token,
            "to_bridge": self.to_bridge,
        }


settings = Settings()  # type: ignore[call-arg]
