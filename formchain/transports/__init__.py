"""Step transport factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FormChainConfig, load_config
from ..constants import TRANSPORT_ENV
from .base import BaseStepTransport
from .inmemory import InMemoryStepTransport


def get_transport(
    backend: Optional[str] = None, config: Optional[FormChainConfig] = None
) -> BaseStepTransport:
    """Factory function to get the configured step transport."""

    config = config or load_config()
    backend = (backend or os.getenv(TRANSPORT_ENV) or config.transport.backend).lower()

    if backend == "inmemory":
        return InMemoryStepTransport()
    elif backend == "http":
        from .http import HttpStepTransport

        http_conf = config.transport.http
        return HttpStepTransport(
            base_url=http_conf.base_url,
            timeout=http_conf.timeout,
            headers=http_conf.headers,
        )
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = ["BaseStepTransport", "InMemoryStepTransport", "get_transport"]
