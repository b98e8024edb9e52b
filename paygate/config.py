from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Payment processor
    stripe_secret_key: str | None = None
    default_currency: str = "eur"

    # Capability tokens
    token_sweep_interval_seconds: int = 60

    # Contact fee
    contact_fee_cents: int = 500
    contact_fee_currency: str = "eur"
    contact_require_payment: bool = False

    # Redirect URLs for server-started flows (falls back to the request base URL)
    public_base_url: str | None = None

    # SMTP (an Ethereal test account is used when host/user/pass are incomplete)
    smtp_host: str | None = None
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_timeout_seconds: float = 30.0
    ethereal_api_url: str = "https://api.nodemailer.com/user"

    # Mail
    mail_from: str = "Website Contact <contact@health4yu.de>"
    mail_to: str = "contact@health4yu.de"
    mail_delete_uploads: bool = True

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 20 * 1024 * 1024  # 20MB

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_checkouts: str = "10/minute"
    rate_limit_mail: str = "5/minute"
    rate_limit_polls: str = "60/minute"
    rate_limit_uploads: str = "10/minute"

    # Operator alerts
    operator_alerts_webhook_url: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # CORS
    cors_origins: list[str] | str = ["http://localhost:4000", "http://127.0.0.1:4000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("default_currency", "contact_fee_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def payments_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)


settings = Settings()
