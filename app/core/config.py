from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://ops:ops@db:5432/ops_dashboard"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://painel.example.com,https://api.example.com"
    CORS_ORIGINS: str = "*"

    # Civil timezone used for every "today" / "yesterday" boundary.
    TIME_ZONE: str = "America/Sao_Paulo"

    # Pending-movement poll cadence. Anything below 60s is raised to 60s.
    DELAY_POLL_SECONDS: int = 60

    # Pause between resolving one pending item and showing the next.
    JUSTIFICATION_ADVANCE_DELAY_MS: int = 500

    CONTRACT_EXPIRATION_WARNING_DAYS: int = 30
    NO_CONTACT_DAYS: int = 7
    OKR_DEADLINE_WARNING_DAYS: int = 3

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    @field_validator("DELAY_POLL_SECONDS")
    @classmethod
    def clamp_poll_interval(cls, v: int) -> int:
        return max(60, v)

    @field_validator("JUSTIFICATION_ADVANCE_DELAY_MS")
    @classmethod
    def require_positive_delay(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("JUSTIFICATION_ADVANCE_DELAY_MS must be greater than zero")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
