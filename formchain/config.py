"""Configuration loading for formchain."""

from __future__ import annotations

import os
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import BASE_URL_ENV, CONFIG_ENV, MERGE_POLICY_ENV, TRANSPORT_ENV
from .merge import MergePolicy


class HttpConfig(BaseModel):
    """Configuration for the HTTP step transport."""

    base_url: str = "http://localhost:5173/"
    timeout: float = 30.0
    headers: Dict[str, str] = Field(default_factory=dict)


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "http"] = "inmemory"
    http: HttpConfig = Field(default_factory=HttpConfig)


class FormChainConfig(BaseModel):
    """Top-level configuration model."""

    merge_policy: MergePolicy = MergePolicy.DEEP
    transport: TransportConfig = Field(default_factory=TransportConfig)
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> FormChainConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FORMCHAIN_CONFIG env
            variable or 'formchain.yaml' in the current directory.
    """

    config_path = path or os.getenv(CONFIG_ENV, "formchain.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FormChainConfig(**data)
    else:
        config = FormChainConfig()

    env_policy = os.getenv(MERGE_POLICY_ENV)
    if env_policy:
        config.merge_policy = MergePolicy(env_policy.lower())

    env_backend = os.getenv(TRANSPORT_ENV)
    if env_backend:
        config.transport = TransportConfig(
            backend=env_backend.lower(), http=config.transport.http
        )

    env_base_url = os.getenv(BASE_URL_ENV)
    if env_base_url:
        config.transport.http.base_url = env_base_url
    return config
