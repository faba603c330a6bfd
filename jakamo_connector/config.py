"""
Centralized configuration using Pydantic Settings.

Values come from JAKAMO_* environment variables and env files; poll
interval minimums are enforced when the Settings object is built,
credentials are checked by validate_settings() before the service starts.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jakamo_connector.core.exceptions import ConfigurationError

MIN_POLL_INTERVAL_SECONDS = 5

# Later files override earlier ones
CONFIG_FILES = (
    "/etc/jakamo-connector/jakamo-connector.env",
    "jakamo-connector.env",
    ".env",
)

PLACEHOLDERS = {
    "api_tenant_id": "YOUR_TENANT_ID_HERE",
    "api_client_id": "YOUR_CLIENT_ID_HERE",
    "api_client_secret": "YOUR_CLIENT_SECRET_HERE",
}


class Settings(BaseSettings):
    """Connector settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JAKAMO_",
        env_file=CONFIG_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Jakamo API
    api_base_url: str = "https://api.jakamo.net/v1/"
    api_tenant_id: str = ""
    api_client_id: str = ""
    api_client_secret: str = ""
    api_scope: str = ""
    api_timeout_seconds: float = 30.0

    # Folders
    folders_inbound_orders: str = "/var/lib/jakamo/inbound"
    folders_processed_orders: str = "/var/lib/jakamo/processed"
    folders_failed_orders: str = "/var/lib/jakamo/failed"
    folders_order_responses: str = "/var/lib/jakamo/responses"

    # Polling
    polling_inbound_check_interval: int = Field(default=30, ge=MIN_POLL_INTERVAL_SECONDS)
    polling_response_check_interval: int = Field(default=60, ge=MIN_POLL_INTERVAL_SECONDS)
    polling_max_retry_attempts: int = Field(default=3, ge=0)  # not used by the poll loops

    # Logging
    logging_enable_file_logging: bool = True
    logging_log_file: str = "/var/log/jakamo/connector.log"
    logging_log_level: str = "INFO"
    logging_json_output: bool = False

    @property
    def log_file(self) -> str | None:
        """Log file path, or None when file logging is off."""
        if self.logging_enable_file_logging and self.logging_log_file.strip():
            return self.logging_log_file
        return None

    def summary(self) -> dict[str, object]:
        """Effective configuration for the startup log, secret masked."""
        return {
            "base_url": self.api_base_url,
            "tenant_id": self.api_tenant_id,
            "client_id": self.api_client_id,
            "client_secret": mask_secret(self.api_client_secret),
            "scope": self.api_scope,
            "inbound_orders": self.folders_inbound_orders,
            "processed_orders": self.folders_processed_orders,
            "failed_orders": self.folders_failed_orders,
            "order_responses": self.folders_order_responses,
            "inbound_check_interval": self.polling_inbound_check_interval,
            "response_check_interval": self.polling_response_check_interval,
            "max_retry_attempts": self.polling_max_retry_attempts,
            "file_logging": self.logging_enable_file_logging,
            "log_file": self.logging_log_file,
            "log_level": self.logging_log_level,
        }


def mask_secret(secret: str) -> str:
    """Mask a secret for logging."""
    if not secret or not secret.strip():
        return "[empty]"
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}...{secret[-4:]}"


def validate_settings(config: Settings) -> None:
    """
    Check the settings that must be filled in before the service can run.

    Raises:
        ConfigurationError: listing every problem found.
    """
    errors = []

    required = {
        "api_base_url": "Api:BaseUrl",
        "api_tenant_id": "Api:TenantId",
        "api_client_id": "Api:ClientId",
        "api_client_secret": "Api:ClientSecret",
        "api_scope": "Api:ApiScope",
    }
    for attr, label in required.items():
        if not getattr(config, attr).strip():
            errors.append(f"{label} is required")

    for attr, placeholder in PLACEHOLDERS.items():
        if getattr(config, attr) == placeholder:
            errors.append(f"{required[attr]} must be changed from default value")

    if errors:
        raise ConfigurationError(errors)


def load_settings(env_file: str | None = None) -> Settings:
    """
    Build Settings, optionally from one specific env file.

    Raises:
        ConfigurationError: if env_file is given but does not exist.
        pydantic.ValidationError: if a value is out of range.
    """
    if env_file:
        if not Path(env_file).is_file():
            raise ConfigurationError([f"Configuration file not found: {env_file}"])
        return Settings(_env_file=env_file)
    return Settings()


@lru_cache
def get_settings() -> Settings:
    """
    Settings from the standard locations, built on first use.

    Only consulted by components created without explicit values.
    """
    return Settings()
