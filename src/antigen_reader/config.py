"""Configuration management for the antigen reader service."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = Field("development", alias="ANTIGEN_ENV")
    host: str = Field("127.0.0.1", alias="HOST")
    port: int = Field(3000, alias="PORT")
    cors_origins_raw: str = Field("http://localhost:3000", alias="CORS_ORIGINS")
    classifier_path: str = Field("./resources/model/model.pt", alias="MODEL_FP")
    # Probability the positive class must strictly exceed for a positive verdict.
    positive_threshold: float = Field(0.95, alias="POSITIVE_THRESHOLD")
    reencode_jpeg: bool = Field(True, alias="REENCODE_JPEG")
    serialize_inference: bool = Field(False, alias="SERIALIZE_INFERENCE")
    log_dir: str = Field("logs", alias="ANTIGEN_LOG_DIR")
    log_level: str = Field("INFO", alias="ANTIGEN_LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        extra = "ignore"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
