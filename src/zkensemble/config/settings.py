from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IMAGE = "confluentinc/cp-zookeeper:7.3.2"


class Settings(BaseSettings):
    """Environment overrides for ensemble bring-up (prefix ``ZKENSEMBLE_``)."""

    model_config = SettingsConfigDict(env_prefix="ZKENSEMBLE_", env_file=".env", extra="ignore")

    # Container settings
    IMAGE: str = DEFAULT_IMAGE
    STARTUP_TIMEOUT: float = 60.0

    # Status probe settings
    PROBE_HOST: str = "localhost"
    PROBE_TIMEOUT: float = 2.0

    LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    """Read settings fresh from the environment."""
    return Settings()
