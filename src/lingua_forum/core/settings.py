"""Application settings and configuration.

This module defines all configuration options for the Lingua Forum application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Lingua Forum", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Document store configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./lingua_forum.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Session token settings
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Password sign-in policy
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")
    login_max_failed_attempts: int = Field(default=5, alias="LOGIN_MAX_FAILED_ATTEMPTS")

    # Federated sign-in (issuer-signed ID tokens)
    federated_provider_secret: str | None = Field(
        default=None,
        alias="FEDERATED_PROVIDER_SECRET",
    )
    federated_provider_issuer: str = Field(
        default="https://accounts.google.com",
        alias="FEDERATED_PROVIDER_ISSUER",
    )
    federated_provider_audience: str = Field(
        default="lingua-forum",
        alias="FEDERATED_PROVIDER_AUDIENCE",
    )

    # Feed behaviour
    feed_fetch_limit: int = Field(default=50, ge=1, alias="FEED_FETCH_LIMIT")
    anonymous_author_name: str = Field(default="Anonymous", alias="ANONYMOUS_AUTHOR_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
