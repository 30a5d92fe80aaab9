"""Pydantic settings loaded from .env."""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator


class Settings(BaseSettings):
    jwt_secret: str = Field("change-me-to-a-random-32-char-secret", env="JWT_SECRET")
    database_url: str = Field("./lovebug.db", env="DATABASE_URL")
    # Challenge shape
    question_count: int = Field(3, env="QUESTION_COUNT")
    captcha_length: int = Field(5, env="CAPTCHA_LENGTH")
    slider_min_offset: int = Field(20, env="SLIDER_MIN_OFFSET")
    slider_max_offset: int = Field(80, env="SLIDER_MAX_OFFSET")
    slider_tolerance: int = Field(3, env="SLIDER_TOLERANCE")
    # Cooldown and timeouts
    cooldown_seconds: int = Field(60, env="COOLDOWN_SECONDS")
    persistence_timeout_s: float = Field(10.0, env="PERSISTENCE_TIMEOUT_S")
    session_ttl_s: int = Field(900, env="SESSION_TTL_S")
    answer_timeout_s: float = Field(300.0, env="ANSWER_TIMEOUT_S")
    countdown_tick_s: float = Field(1.0, env="COUNTDOWN_TICK_S")
    # Stand-in for the external auth provider
    dev_auth_enabled: bool = Field(True, env="DEV_AUTH_ENABLED")
    # Rate limiting
    rate_limit_requests: int = Field(30, env="RATE_LIMIT_REQUESTS")
    rate_limit_window_s: int = Field(60, env="RATE_LIMIT_WINDOW_S")

    @model_validator(mode="after")
    def check_slider_range(self) -> "Settings":
        if not 0 <= self.slider_min_offset < self.slider_max_offset <= 100:
            raise ValueError("slider offsets must satisfy 0 <= min < max <= 100")
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
