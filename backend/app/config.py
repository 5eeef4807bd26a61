"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal
from urllib.parse import urlsplit

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # CORS (the catalog is public, the original functions answered with "*")
    cors_origins: list[str] = ["*"]

    # SharePoint app-only credential (certificate)
    tenant_id: str = ""
    client_id: str = ""
    cert_thumbprint: str = ""
    cert_private_key: str = ""  # Raw PEM, line breaks may be lost in transit
    sp_site_url: str = ""  # e.g. https://tenant.sharepoint.com/sites/UseCases

    # SharePoint lists
    sp_list_id: str = ""  # GUID used by the list-items endpoints
    sp_list_title: str = ""  # Main use case list
    sp_list_pages: str = "Pages"
    sp_list_sections: str = "Sections"
    sp_list_sectionitems: str = "SectionItems"
    sp_list_assets: str = "Assets"

    # SharePoint HTTP behaviour
    sharepoint_timeout_seconds: float = 30.0
    sharepoint_max_retries: int = 3  # Retries for 429/503 only

    # Token cache
    token_refresh_margin_seconds: int = 60
    token_default_lifetime_seconds: int = 300

    # Catalog facets
    filter_config_path: str = ""  # Optional JSON file, built-in config otherwise

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_public: str = "120/minute"
    rate_limit_image: str = "60/minute"

    # Logging
    log_level: str = "INFO"

    # Image export script (reads the deployed image endpoint)
    azure_func_url_image: str = ""
    azure_func_key: str = ""

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper() if isinstance(v, str) else "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string from env var
            import json

            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("sp_site_url", mode="before")
    @classmethod
    def strip_site_url(cls, v: str) -> str:
        """Drop the trailing slash so relative API paths can be appended."""
        return v.strip().rstrip("/") if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_sharepoint_settings(self) -> "Settings":
        """Production deployments must carry the full SharePoint credential."""
        if self.environment == "production":
            missing = self.missing_sharepoint_settings
            if missing:
                raise ValueError(
                    "Production configuration errors:\n"
                    + "\n".join(f"  - {name} is required in production" for name in missing)
                )

        if self.sharepoint_timeout_seconds <= 0:
            raise ValueError("SHAREPOINT_TIMEOUT_SECONDS must be positive")

        if self.sharepoint_max_retries < 0:
            raise ValueError("SHAREPOINT_MAX_RETRIES must not be negative")

        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def missing_sharepoint_settings(self) -> list[str]:
        """Names of the credential environment variables that are unset."""
        required = {
            "TENANT_ID": self.tenant_id,
            "CLIENT_ID": self.client_id,
            "SP_SITE_URL": self.sp_site_url,
            "CERT_THUMBPRINT": self.cert_thumbprint,
            "CERT_PRIVATE_KEY": self.cert_private_key,
        }
        return [name for name, value in required.items() if not value]

    @property
    def is_sharepoint_configured(self) -> bool:
        """Check if certificate-based SharePoint access is configured."""
        return not self.missing_sharepoint_settings

    @property
    def sharepoint_origin(self) -> str:
        """Scheme and host of the site, e.g. https://tenant.sharepoint.com."""
        parts = urlsplit(self.sp_site_url)
        if not parts.scheme or not parts.netloc:
            return ""
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def sharepoint_scope(self) -> list[str]:
        """App-only scope for SharePoint REST."""
        return [f"{self.sharepoint_origin}/.default"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
