"""Runtime settings read from the environment (optionally via a .env file)."""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .clients.constants import DEFAULT_MAX_CHAIN_WORKERS, DEFAULT_RPC_TIMEOUT
from .clients.rpc import rpc_urls_from_env
from .errors import ConfigurationError


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_urls: Dict[int, str] = field(default_factory=dict)
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    max_chain_workers: int = DEFAULT_MAX_CHAIN_WORKERS

    @staticmethod
    def load(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        return Settings(
            rpc_urls=rpc_urls_from_env(environ),
            rpc_timeout=_int_env(environ, "RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
            max_chain_workers=_int_env(environ, "MAX_CHAIN_WORKERS", DEFAULT_MAX_CHAIN_WORKERS),
        )
