from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str  # postgresql+psycopg2://... in production, sqlite:///./dine.db locally
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    JWT_ISS: str = "dine"
    JWT_EXP_MIN: int = 12*60
    LOG_LEVEL: str = "INFO"
    LOG_SQL: bool = False
    CORS_ORIGINS: str = "*"  # comma separated
    TZ: str = "UTC"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
