"""
Application settings loaded from environment variables (and an optional .env file).
"""
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = Field("Profile Directory API")

    # Security (required)
    JWT_SECRET: str = Field(..., description="Token signing secret (min 32 chars)")
    JWT_ALGORITHM: str = Field("HS256")
    TOKEN_EXPIRE_DAYS: int = Field(30, ge=1)
    BCRYPT_ROUNDS: int = Field(12, ge=4, le=31)

    # Database
    DATABASE_URL: str = Field("mongodb://localhost:27017")
    DATABASE_NAME: str = Field("profile_directory")

    PORT: int = Field(8000)

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if len(v.strip()) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return v


@lru_cache()
def get_settings() -> Settings:
    return Settings()
