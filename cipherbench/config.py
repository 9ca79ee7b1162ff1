"""
Configuration settings for the SQLCipher pool benchmark.

Uses Pydantic Settings to load environment variables for the encrypted
database target, logging, and benchmark defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_path: str = Field("file:cipherbench.db", alias="DB_PATH")
    db_key: str = Field("cipherbench-passphrase", alias="DB_KEY")
    db_kdf_iterations: int = Field(256_000, alias="DB_KDF_ITERATIONS")
    db_busy_timeout_seconds: float = Field(5.0, alias="DB_BUSY_TIMEOUT_SECONDS")
    db_dns_args: str = Field("", alias="DB_DNS_ARGS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    # Benchmark defaults
    benchmark_pool_sizes: str = Field("1", alias="BENCHMARK_POOL_SIZES")
    benchmark_writes: int = Field(100, alias="BENCHMARK_WRITES")
    benchmark_reads: int = Field(100, alias="BENCHMARK_READS")
    benchmark_max_rows: int = Field(100, alias="BENCHMARK_MAX_ROWS")
    benchmark_write_on_dedicated_channel: bool = Field(
        False, alias="BENCHMARK_WRITE_ON_DEDICATED_CHANNEL"
    )
    benchmark_payload_bytes: int = Field(512 * 1024, alias="BENCHMARK_PAYLOAD_BYTES")
    benchmark_max_workers: int = Field(64, alias="BENCHMARK_MAX_WORKERS")
    benchmark_checkout_timeout: Optional[float] = Field(None, alias="BENCHMARK_CHECKOUT_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
