from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""

    vision_model: str = "claude-sonnet-4-5-20250929"

    # Anthropic API timeout settings (seconds)
    anthropic_timeout: int = 60
    anthropic_connect_timeout: int = 10

    # Upper bound for a single waste estimate before falling back
    estimator_timeout: float = 45.0

    # Photo uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024  # 5MB

    # Waste scoring
    waste_fallback_percentage: int = 5
    duplicate_photo_threshold: float = 0.05  # relative byte-size difference
    duplicate_photo_cap: int = 5

    # Tracking plan created at registration
    tracking_days: int = 5

    seed_activities: bool = True

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
