"""Catalog HTTP transport configuration.

Loads settings from `CATALOG_`-prefixed environment variables (or a `.env`
file) with sensible defaults.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CatalogSettings(BaseSettings):
    """Settings of the catalog HTTP client."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoint
    base_url: str = "https://www.wixapis.com"
    timeout: float = Field(default=10.0, gt=0)

    # Authentication
    access_token: Optional[str] = None
    origin: Optional[str] = None

    # Paging
    default_page_size: int = Field(default=50, ge=0)
