"""Application settings, read from the environment and ``.env``."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """CourseMart configuration.

    Every field maps to an upper-case environment variable of the same
    name (``PAYMENT_WEBHOOK_SECRET``, ``CASSANDRA_HOSTS``...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="coursemart", description="Service name in logs")
    app_version: str = Field(default="0.1.0", description="Reported API version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web client (used in email links)",
    )

    # Authentication
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="HMAC key for signing access tokens",
    )
    auth_algorithm: str = Field(default="HS256", description="Access token algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=60, description="Access token lifetime (minutes)"
    )
    password_reset_token_expire_minutes: int = Field(
        default=5, description="Password reset token lifetime (minutes)"
    )

    # Payment processor
    payment_api_base_url: str = Field(
        default="https://api.razorpay.com/v1",
        description="Payment processor REST base URL",
    )
    payment_key_id: str | None = Field(
        default=None, description="Payment processor API key id"
    )
    payment_key_secret: str | None = Field(
        default=None, description="Payment processor API key secret (KEEP SECRET!)"
    )
    payment_webhook_secret: str | None = Field(
        default=None,
        description="Shared secret used to sign webhook deliveries (KEEP SECRET!)",
    )
    payment_signature_header: str = Field(
        default="X-Razorpay-Signature",
        description="Header carrying the webhook HMAC signature",
    )
    payment_currency: str = Field(default="INR", description="Order currency code")
    payment_timeout_seconds: float = Field(
        default=10.0, description="Timeout for payment processor calls"
    )
    webhook_dedupe_ttl_seconds: int = Field(
        default=86400,
        description="How long processed webhook payment ids are remembered in Redis",
    )

    # Redis (optional, webhook dedupe only)
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis URL for the dedupe cache"
    )
    redis_max_connections: int = Field(default=10, description="Pool size")
    redis_socket_timeout: float = Field(default=2.0, description="Command timeout")
    redis_socket_connect_timeout: float = Field(
        default=2.0, description="Connect timeout"
    )
    redis_retry_on_timeout: bool = Field(
        default=False, description="Retry a command once after a timeout"
    )
    redis_health_check_interval: int = Field(
        default=30, description="Seconds between idle connection health checks"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Contact points"
    )
    cassandra_port: int = Field(default=9042, description="Native protocol port")
    cassandra_keyspace: str = Field(
        default="coursemart", description="Keyspace holding every table"
    )
    cassandra_username: str | None = Field(
        default=None, description="Username for PlainTextAuthProvider"
    )
    cassandra_password: str | None = Field(
        default=None, description="Password for PlainTextAuthProvider"
    )
    cassandra_protocol_version: int = Field(
        default=4, description="Native protocol version"
    )
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Cluster connect timeout (seconds)"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Default query timeout (seconds)"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum level for console and file output"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Console renderer"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Add module, function and line to each event"
    )
    log_dir: str = Field(default="logs", description="Directory for JSON log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate log files at this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log request start and finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths never request-logged",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="Allowed origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow cookies")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")

    # Email (Gmail API)
    email_enabled: bool = Field(
        default=False, description="Send transactional email through the Gmail API"
    )
    email_credentials_path: str = Field(
        default="credentials/google-service-account.json",
        description="Service account JSON with domain-wide delegation",
    )
    email_sender_address: str = Field(
        default="no-reply@coursemart.example",
        description="Mailbox the service account impersonates",
    )
    email_sender_name: str = Field(
        default="CourseMart", description="From display name"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def payment_configured(self) -> bool:
        """Order creation needs both processor credentials."""
        return bool(self.payment_key_id and self.payment_key_secret)

    @property
    def webhook_configured(self) -> bool:
        """Webhooks are rejected with 503 until a signing secret is set."""
        return bool(self.payment_webhook_secret)

    @property
    def email_configured(self) -> bool:
        return bool(self.email_enabled and self.email_sender_address)


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
