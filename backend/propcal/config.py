from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from propcal.calendar.constants import MeetingProviderConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="../.env",
        case_sensitive=True,
        extra="ignore",
    )
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: str = ""
    API_BASE_URL: str = "http://localhost:8000"

    GOOGLE_CLIENT_ID: str = ""
    MICROSOFT_CLIENT_ID: str = ""
    MICROSOFT_AUTHORITY: str = "https://login.microsoftonline.com/common"

    DEFAULT_TIMEZONE: str = "UTC"

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    RATE_LIMIT_API: str = "120/minute"

    @field_validator("DEFAULT_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"DEFAULT_TIMEZONE must be a valid IANA timezone: {v}") from exc
        return v

    @property
    def cors_origins(self) -> list[str]:
        origins = [self.FRONTEND_URL]
        if self.CORS_ORIGINS:
            origins.extend([o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()])
        return list(set(origins))

    @property
    def google_configured(self) -> bool:
        client_id = self.GOOGLE_CLIENT_ID
        return (
            len(client_id) > MeetingProviderConfig.GOOGLE_CLIENT_ID_MIN_LENGTH
            and MeetingProviderConfig.GOOGLE_CLIENT_ID_SUFFIX in client_id
        )

    @property
    def teams_configured(self) -> bool:
        return bool(self.MICROSOFT_CLIENT_ID.strip())

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.DEFAULT_TIMEZONE)

    @model_validator(mode="after")
    def validate_production_invariants(self):
        if self.ENVIRONMENT == "production":
            if not self.SUPABASE_URL:
                raise ValueError("SUPABASE_URL must be set in production")

            if not self.SUPABASE_SERVICE_ROLE_KEY:
                raise ValueError("SUPABASE_SERVICE_ROLE_KEY must be set in production")

        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
