from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Basics
    app_env: str = "dev"
    app_name: str = "Course Access"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "info"

    # Database
    database_url: str = "sqlite:///./dev.db"
    db_echo: bool = False

    # JWT
    jwt_secret: str = "secret_key"
    jwt_alg: str = "HS256"
    jwt_access_ttl_min: int = 60

    # Plans
    currency: str = "PKR"

    # Trials
    trial_duration_hours: int = 24
    # When true a trial also enrolls the user as "demo" in the course,
    # which unlocks both resource types for as long as the enrollment lives
    trial_creates_demo_enrollment: bool = True

    # Guest preview: how many of the oldest published recordings are playable
    guest_preview_count: int = 1

    # Tell pydantic to read from .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

settings = Settings()
