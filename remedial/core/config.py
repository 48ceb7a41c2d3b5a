"""Application configuration from environment."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "Remedial Assessments"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./remedial.db"

    # Base URL printed into join links and QR codes
    public_app_url: str = "http://localhost:3000"

    quiz_code_length: int = 6
    # Students must hold the assessment's phonemic level for its subject
    enforce_phonemic_gating: bool = True
    seed_reference_data: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "REMEDIAL_"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
