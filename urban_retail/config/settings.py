"""
Urban Retail Inventory Analytics
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type
safety. Every metric threshold used by the analytics layer is declared here so
that it can be overridden without touching code.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Warehouse Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(default="sqlite://", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL queries")
    insert_chunk_size: int = Field(default=1000, gt=0, description="Fact rows per insert batch")


class DataLakeSettings(BaseSettings):
    """Raw Input and Report Output Locations"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw data zone path")
    curated_path: str = Field(default="./data/curated", description="Curated report output path")
    raw_file: str = Field(default="retail_store_inventory.csv", description="Default raw CSV file name")
    export_format: str = Field(default="csv", description="Report export format: csv or parquet")

    @field_validator("export_format")
    @classmethod
    def validate_export_format(cls, v: str) -> str:
        """Validate export format value"""
        allowed = ["csv", "parquet"]
        if v.lower() not in allowed:
            raise ValueError(f"Export format must be one of: {allowed}")
        return v.lower()


class MetricThresholds(BaseSettings):
    """Metrics Engine Constants"""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    reorder_multiplier: float = Field(default=3.0, gt=0, description="Days of average sales covered by the reorder point")
    fast_moving_threshold: int = Field(default=1000, ge=0, description="Total units sold above which a product is fast-moving")
    overstock_inventory_threshold: float = Field(default=100, ge=0, description="Average inventory above which a group may be overstocked")
    overstock_sales_threshold: int = Field(default=500, ge=0, description="Total units sold below which an overstocked group is flagged")
    low_sales_threshold: int = Field(default=5, ge=0, description="Units sold below which a day counts as a low-sales day")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="text", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="urban-retail-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    metrics: MetricThresholds = Field(default_factory=MetricThresholds)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
