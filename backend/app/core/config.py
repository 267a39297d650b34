"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load YAML files
containing business tunables for the restock and forecast engines.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = ""

    # Business rule files and optional seed tables
    config_dir: str = "configs"
    seed_data_dir: str = "data"

    # Vendor notification gateways (e-mail is disabled unless a host is set)
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_sender: str = "inventory@smartshelf.local"
    smtp_use_tls: bool = True
    sms_gateway: str = "logging"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_section(config_root: str, section: str) -> Dict[str, Any]:
    """Return one top-level mapping from ``settings.yaml`` (empty when absent)."""

    settings = load_yaml(os.path.join(config_root, "settings.yaml"))
    value = settings.get(section) if isinstance(settings, dict) else None
    return dict(value) if isinstance(value, dict) else {}
