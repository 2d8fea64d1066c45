"""
Configuration management for the Reach & Frequency Planner.
Handles calculation tolerances, data file locations and application settings.
"""

import os
import streamlit as st
from typing import Optional
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Application configuration settings."""
    grps_conflict_tolerance: float = 0.01
    max_tactics: int = 25
    default_channel: str = "Digital"
    audience_data_path: str = "data/dma_audience_sample.csv"
    cache_timeout_hours: int = 24
    max_file_size_mb: int = 5
    supported_file_formats: list = None

    def __post_init__(self):
        if self.supported_file_formats is None:
            self.supported_file_formats = ['.json']


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets and the environment."""
        if self._config is not None:
            return self._config

        defaults = AppConfig()
        self._config = AppConfig(
            grps_conflict_tolerance=self._get_float_setting(
                "GRPS_CONFLICT_TOLERANCE", defaults.grps_conflict_tolerance
            ),
            max_tactics=self._get_int_setting("MAX_TACTICS", defaults.max_tactics),
            default_channel=self._get_setting("DEFAULT_CHANNEL", defaults.default_channel),
            audience_data_path=self._get_setting("AUDIENCE_DATA_PATH", defaults.audience_data_path),
            cache_timeout_hours=self._get_int_setting("CACHE_TIMEOUT_HOURS", defaults.cache_timeout_hours),
            max_file_size_mb=self._get_int_setting("MAX_FILE_SIZE_MB", defaults.max_file_size_mb)
        )

        return self._config

    def reset(self):
        """Drop the loaded configuration so the next load re-reads it."""
        self._config = None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Streamlit raises if no secrets file exists at all
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return st.secrets[key]
        except Exception:
            pass

        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        """Get string setting with default value."""
        value = self._get_secret_or_env(key)
        return value if value is not None else default

    def _get_int_setting(self, key: str, default: int) -> int:
        """Get integer setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return int(value)
            except (TypeError, ValueError):
                pass
        return default

    def _get_float_setting(self, key: str, default: float) -> float:
        """Get float setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return float(value)
            except (TypeError, ValueError):
                pass
        return default

    def get_grps_tolerance(self) -> float:
        """Get the GRP conflict tolerance used by the resolver."""
        config = self.load_config()
        return config.grps_conflict_tolerance

    def get_cache_timeout(self) -> int:
        """Get cache timeout in hours."""
        config = self.load_config()
        return config.cache_timeout_hours

    def is_valid_file_format(self, filename: str) -> bool:
        """Check if a plan import file format is supported."""
        config = self.load_config()
        return any(filename.lower().endswith(fmt) for fmt in config.supported_file_formats)

    def get_max_file_size_bytes(self) -> int:
        """Get maximum file size in bytes."""
        config = self.load_config()
        return config.max_file_size_mb * 1024 * 1024

    def check_upload(self, filename: str, size: int) -> Optional[str]:
        """
        Check a plan import upload against the configured format and size limit.

        Returns:
            An error message for the user, or None if the upload is acceptable
        """
        if not self.is_valid_file_format(filename):
            formats = ', '.join(self.load_config().supported_file_formats)
            return f"Unsupported file type for '{filename}'. Supported formats: {formats}"
        max_bytes = self.get_max_file_size_bytes()
        if size > max_bytes:
            return (
                f"'{filename}' is {size / (1024 * 1024):.1f} MB, which exceeds the "
                f"{self.load_config().max_file_size_mb} MB upload limit"
            )
        return None


# Global configuration manager instance
config_manager = ConfigManager()
