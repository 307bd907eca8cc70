from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Checker settings with environment variable support (WORLDPING_*)"""

    model_config = SettingsConfigDict(
        env_prefix="WORLDPING_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Transport
    PLAIN_PORT: int = 43594
    SECURE_PORT: int = 443
    DOMAIN_SUFFIX: str = ".runescape.com"

    # Timeouts (seconds)
    CONNECT_TIMEOUT: float = 10.0
    READ_TIMEOUT: float = 10.0

    # Algorithm tuning (milliseconds); both assume ticks shorter than the ceiling
    BISECT_CEILING_MS: int = 600
    ANOMALY_THRESHOLD_MS: float = 900.0

    # Trial counts
    DEFAULT_TRIALS: int = 10
    DEFAULT_TICK_TRIALS: int = 1000

    WORLDS_FILE: str = "worlds.txt"
    LOG_LEVEL: str = "WARNING"

    def port_for(self, secure: bool = False) -> int:
        """Return the port to probe. Selecting the secure port does not enable TLS."""
        return self.SECURE_PORT if secure else self.PLAIN_PORT


# Global settings instance
settings = Settings()
