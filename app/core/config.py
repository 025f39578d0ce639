"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated (e.g. http://localhost:3000,http://admin-ui:80). Empty = default list in code.
    cors_origins: str = ""
    # Header set by the upstream gateway with the authenticated user id. Absent = anonymous visitor.
    user_id_header: str = "X-User-Id"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # ===========================================
    # REDIS
    # ===========================================
    # Used for distributed circuit breaker state. Empty = in-process breaker state.
    redis_url: str = ""

    # ===========================================
    # STORAGE (blob store for course videos)
    # ===========================================
    storage_backend: str = "s3"  # s3, local
    s3_bucket: str = ""
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_addressing_style: str = "path"
    s3_connect_timeout: float = 3.0
    s3_read_timeout: float = 5.0
    # Local backend: files under this directory, links signed with local_storage_secret
    local_storage_path: str = "data/videos"
    local_storage_public_base: str = "http://localhost:8000/media"
    local_storage_secret: str = ""

    # ===========================================
    # ACCESS
    # ===========================================
    # Delegated URL lifetime. Keep it short: a leaked link is only useful this long.
    delegated_url_ttl_seconds: int = 300
    delegated_url_max_ttl_seconds: int = 900
    # Timeouts for the required path (ledger, version lookup) and per-unit URL issuance
    ledger_timeout_seconds: float = 3.0
    blob_store_timeout_seconds: float = 5.0
    # Product-level version policy: True = any entitlement opens every version of the course
    allow_free_upgrades: bool = False
    # Hint returned to clients while a purchase confirmation is still in flight
    pending_purchase_retry_after_seconds: int = 5
    # A checkout older than this is treated as abandoned and no longer reported as pending
    pending_purchase_window_seconds: int = 1800

    # ===========================================
    # CERTIFICATES
    # ===========================================
    certificate_platform_name: str = "QENDIEL Academy"
    # Optional: HMAC key for verification hashes. Empty = plain SHA-256.
    certificate_hash_secret: str = ""

    # ===========================================
    # ADMIN / INTERNAL API
    # ===========================================
    admin_api_key: str | None = None  # Required for internal routes (purchases, catalog, certificates)

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("s3", "local"):
            raise ValueError("storage_backend must be 's3' or 'local'")
        return v

    @field_validator("delegated_url_ttl_seconds")
    @classmethod
    def validate_url_ttl(cls, v: int) -> int:
        if v < 60:
            raise ValueError("delegated_url_ttl_seconds must be at least 60")
        return v

    @model_validator(mode="after")
    def validate_ttl_bounds(self) -> "Settings":
        if self.delegated_url_ttl_seconds > self.delegated_url_max_ttl_seconds:
            raise ValueError("delegated_url_ttl_seconds must not exceed delegated_url_max_ttl_seconds")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
