from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "dynforms"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str
    DB_DIALECT: str = "postgres"  # postgres | sqlserver
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT_SECONDS: int = 30
    QUERY_TIMEOUT_SECONDS: float = 30.0

    # id, created_ts, updated_ts, created_user
    RESERVED_COLUMN_COUNT: int = 4
    FORMS_TABLE: str = "forms"
    INSERTED_COOKIE_NAME: str = "inserted"

    ANONYMOUS_USERNAME: str = "anonymous"
    AUTH_JWT_SECRET: str = "change_me_session"
    AUTH_COOKIE_NAME: str = "dynforms_session"
    TRUSTED_USER_HEADER: str = ""

    LDAP_HOST: str = ""
    LDAP_USERNAME: str = ""
    LDAP_PASSWORD: str = ""
    LDAP_BASE_DN: str = "dc=tsa,dc=local"
    LDAP_TIMEOUT_SECONDS: int = 10

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return str(self.APP_ENV or "").strip().lower() in {"prod", "production"}

    @property
    def directory_configured(self) -> bool:
        return bool(self.LDAP_HOST.strip())

settings = Settings()
