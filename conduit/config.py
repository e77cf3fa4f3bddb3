from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str | None = None  # overrides the DB_* fields when set
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "admin"
    DB_NAME: str = "conduit"
    DB_SSLMODE: str = "disable"

    # Connection pool
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_TIMEOUT: int = 10

    # Auth
    JWT_SECRET_KEY: str = "this-is-a-32-char-long-secret-key-123"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY: timedelta = timedelta(hours=24)
    BCRYPT_ROUNDS: int = 12

    # Cache
    REDIS_URL: str = "redis://localhost:6380/0"
    CACHE_TTL_TAGS: int = 300

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8080
    REQUEST_TIMEOUT: float = 30.0
    SERVER_IDLE_TIMEOUT: int = 120
    SHUTDOWN_TIMEOUT: int = 5

    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def secret_key_length(cls, v: str) -> str:
        if len(v.encode("utf-8")) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 bytes long")
        return v

    @field_validator("JWT_EXPIRY")
    @classmethod
    def expiry_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("JWT_EXPIRY must be greater than 0")
        return v

    @field_validator("DB_POOL_SIZE", "DB_POOL_RECYCLE", "DB_POOL_TIMEOUT")
    @classmethod
    def pool_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("pool settings must be greater than 0")
        return v

    @field_validator("SERVER_PORT")
    @classmethod
    def port_range(cls, v: int) -> int:
        if not 0 <= v <= 65535:
            raise ValueError("SERVER_PORT must be between 0 and 65535")
        return v

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return URL.create(
            "postgresql+asyncpg",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        ).render_as_string(hide_password=False)


settings = Settings()
