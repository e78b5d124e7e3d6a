"""
Configuration management for deltakit
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings"""

    model_config = SettingsConfigDict(
        env_prefix="DELTAKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "deltakit"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Bloom Filter Settings
    BLOOM_EXPECTED_SIZE: int = 1_000_000  # 1M items
    BLOOM_FALSE_POSITIVE_RATE: float = 0.001  # 0.1% false positive rate

    # Sharded fitting
    FIT_PARTITIONS: int = 4
    FIT_WORKERS: int = 4

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_URL: str = ""

    # Sketch store
    SKETCH_KEY_PREFIX: str = "deltakit"
    SKETCH_TTL_SECONDS: int = 0  # 0 = keep forever

    def get_redis_url(self) -> str:
        """Get Redis connection URL"""
        if self.REDIS_URL:
            return self.REDIS_URL

        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Global settings instance
settings = Settings()
