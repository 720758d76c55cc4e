"""Application configuration using Pydantic Settings."""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Classbook"
    debug: bool = False

    # Report / sharing
    school_name: str = ""
    tutor_name: str = "عمرو وحيد"
    report_subject: str = "Maths"
    currency: str = "EGP"
    whatsapp_base_url: str = "https://web.whatsapp.com/send"
    # TTF with Arabic glyphs for names and notes in the PDF; common system fonts are tried when empty
    report_font_path: str = ""

    # Local calendar used for day-keys and month filters
    timezone: str = "Africa/Cairo"

    # MongoDB (the whole roster lives in one document under roster_key)
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "classbook"
    roster_key: str = "students"
    storage_limit_kb: int = 1024 * 1024  # free-tier quota, 1 GB

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    @model_validator(mode="after")
    def validate_timezone(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"TIMEZONE must be an IANA zone name, got {self.timezone!r}") from e
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


settings = Settings()
