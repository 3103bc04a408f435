from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "identity-hub"
    environment: str = "local"
    debug: bool = True

    mongo_scheme: str = "mongodb+srv"
    mongo_port: int = 27017
    mongo_host: str = "localhost"
    mongo_db: str = "identity_hub"
    mongo_password: str | None = None
    mongo_params: str | None = None
    mongo_user: str | None = None

    jwt_algorithm: str = "HS256"
    jwt_secret_key: str = "very-secret-key"
    access_token_expires_minutes: int = 30
    refresh_token_expires_days: int = 30
    reset_password_token_expires_minutes: int = 10
    verify_email_token_expires_minutes: int = 10

    redis_enabled: bool = False
    redis_db: int = 0
    redis_port: int = 6379
    redis_host: str = "localhost"
    redis_password: str | None = None

    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    cache_ttl_seconds: int = 60
    token_purge_interval_seconds: int = 3600

    google_drive_scope: str = "https://www.googleapis.com/auth/drive"
    google_drive_client_email: str = ""
    google_drive_private_key: str = ""
    google_drive_folder_key: str = ""

    admin_email: str = "admin@identity-hub.io"
    admin_password: str = "Adm1n!Secret"

    maximum_login_attempts: int = 5
    maximum_reset_password_attempts: int = 5
    maximum_verify_email_attempts: int = 5
    maximum_change_email_attempts: int = 5
    maximum_change_password_attempts: int = 5
    account_lock_minutes: int = 60
    max_active_sessions: int = 3
    username_max_attempts: int = 10

    log_level: str = "INFO"
    log_format: str = "console"

    model_config = SettingsConfigDict(env_file=(".env",), case_sensitive=False, extra="ignore")

    @property
    def mongo_uri(self) -> str:
        auth = ""
        if self.mongo_user and self.mongo_password:
            auth = f"{self.mongo_user}:{self.mongo_password}@"
        host = self.mongo_host
        if self.mongo_scheme == "mongodb":
            host = f"{self.mongo_host}:{self.mongo_port}"
        params = self.mongo_params or "retryWrites=true&w=majority"
        return f"{self.mongo_scheme}://{auth}{host}/{self.mongo_db}?{params}"


settings = Settings()
