# ============================================================================
# CLA Backend - Application Configuration
# ============================================================================
"""
Application configuration module using Pydantic Settings.

This module defines all configuration parameters for the CLA backend,
including:
- API/CORS settings
- Database connection
- GitHub API and GitHub App credentials
- Email delivery
- JWT validation for the acting CLA manager

Environment Variables:
    See .env.example for a complete list of available settings.

Usage:
    from cla_backend.config import settings
    database_url = settings.database_url
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # =========================================================================
    # API SETTINGS
    # =========================================================================
    api_title: str = "CLA Backend API"
    api_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Enable verbose logging & dev helpers")
    log_level: str = Field(default="INFO", description="Root log level")

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed origins for CORS",
    )

    # =========================================================================
    # DATABASE
    # =========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/cla.db",
        description="SQLAlchemy async database URL",
    )
    db_pool_size: int = Field(default=20, description="PostgreSQL pool size")
    db_max_overflow: int = Field(default=40, description="PostgreSQL pool overflow")
    db_pool_recycle: int = Field(default=3600, description="Seconds before a pooled connection is recycled")

    # =========================================================================
    # GITHUB
    # =========================================================================
    github_api_url: str = Field(default="https://api.github.com", description="GitHub REST API base URL")
    github_oauth_token: Optional[str] = Field(default=None, description="Token for user and membership lookups")
    github_app_id: Optional[str] = Field(default=None, description="GitHub App ID")
    github_app_private_key: Optional[str] = Field(default=None, description="GitHub App private key (PEM)")
    github_timeout: float = Field(default=30.0, description="Timeout (s) for GitHub requests")
    github_org_validation: bool = Field(
        default=True,
        description="Verify the caller belongs to a GitHub org before editing the org approval list",
    )

    # =========================================================================
    # SIGNATURES
    # =========================================================================
    auto_create_ecla_note: str = Field(
        default="auto-create ECLA user from CLA Manager approval list update",
        description="Note stored on users created by the auto-create ECLA workflow",
    )

    # =========================================================================
    # EMAIL
    # =========================================================================
    email_backend: str = Field(default="console", description="console | smtp")
    email_from_address: str = Field(default="noreply@cla.example.org", description="From address")
    email_from_name: str = Field(default="EasyCLA", description="From name")
    smtp_host: Optional[str] = Field(default=None, description="SMTP host")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    cla_console_url: str = Field(
        default="https://corporate.cla.example.org",
        description="Corporate console URL used in email links",
    )

    # =========================================================================
    # AUTH
    # =========================================================================
    jwt_secret_key: str = Field(default="dev-secret-change-me", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance (imported elsewhere)
settings = Settings()
