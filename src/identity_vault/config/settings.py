"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]
BcryptCost = Annotated[int, Field(ge=4, le=31)]
CodeLength = Annotated[int, Field(ge=4, le=12)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    session_secret: NonEmptyStr = Field(validation_alias="SESSION_SECRET")
    data_key_b64: str | None = Field(default=None, validation_alias="DATA_KEY_B64")
    index_key_b64: str | None = Field(default=None, validation_alias="INDEX_KEY_B64")
    bcrypt_cost: BcryptCost = Field(default=12, validation_alias="BCRYPT_COST")
    mfa_code_length: CodeLength = Field(default=6, validation_alias="MFA_CODE_LENGTH")
    mfa_code_ttl_seconds: PositiveInt = Field(
        default=300,
        validation_alias="MFA_CODE_TTL_SECONDS",
    )
    mfa_max_attempts: PositiveInt = Field(default=5, validation_alias="MFA_MAX_ATTEMPTS")
    mfa_sweep_interval_seconds: NonNegativeFloat = Field(
        default=60.0,
        validation_alias="MFA_SWEEP_INTERVAL_SECONDS",
    )
    mfa_email_product_name: NonEmptyStr = Field(
        default="Identity Vault",
        validation_alias="MFA_EMAIL_PRODUCT_NAME",
    )
    smtp_host: NonEmptyStr = Field(default="smtp.gmail.com", validation_alias="SMTP_HOST")
    smtp_port: PositiveInt = Field(default=587, validation_alias="SMTP_PORT")
    smtp_use_tls: bool = Field(default=True, validation_alias="SMTP_USE_TLS")
    smtp_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        validation_alias="SMTP_TIMEOUT_SECONDS",
    )
    from_email: NonEmptyStr | None = Field(default=None, validation_alias="FROM_EMAIL")
    email_app_pass: NonEmptyStr | None = Field(default=None, validation_alias="EMAIL_APP_PASS")
    bootstrap_admin_email: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_ADMIN_EMAIL",
    )
    bootstrap_admin_password: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_ADMIN_PASSWORD",
    )
    bootstrap_admin_password_file: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_ADMIN_PASSWORD_FILE",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _require_key_separation(self) -> "Settings":
        """Reject reuse of the field-encryption key as the lookup-index key."""

        data_key = (self.data_key_b64 or "").strip()
        index_key = (self.index_key_b64 or "").strip()
        if data_key and data_key == index_key:
            raise ValueError("DATA_KEY_B64 and INDEX_KEY_B64 must be different keys")
        return self


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
