"""RPC provider construction and small read helpers."""

import logging
import os
from typing import Dict, Mapping, Optional

from eth_utils import is_address, to_checksum_address
from web3 import Web3

from ..errors import ConfigurationError, InvalidAddressError
from .constants import DEFAULT_RPC_TIMEOUT, RPC_URL_ENV_VARS, chain_name

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """
    Validate an address and return its checksummed form.

    Raises:
        InvalidAddressError: If the value is not a 20-byte hex address
    """
    candidate = (address or "").strip()
    if not is_address(candidate):
        raise InvalidAddressError(f"Invalid contract address: {address!r}")
    return to_checksum_address(candidate)


def rpc_urls_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[int, str]:
    """
    Collect RPC URLs for every supported chain that has one configured.

    Chains whose variable is unset are skipped.
    """
    environ = os.environ if environ is None else environ
    urls = {}
    for chain_id, env_var in RPC_URL_ENV_VARS.items():
        url = (environ.get(env_var) or "").strip()
        if url:
            urls[chain_id] = url
        else:
            logger.debug(f"{env_var} not set, skipping {chain_name(chain_id)}")
    return urls


def provider_from_url(rpc_url: str, timeout: int = DEFAULT_RPC_TIMEOUT) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))


def providers_from_urls(rpc_urls: Mapping[int, str],
                        timeout: int = DEFAULT_RPC_TIMEOUT) -> Dict[int, Web3]:
    """
    Build one Web3 handle per chain.

    Raises:
        ConfigurationError: If no chain is configured
    """
    if not rpc_urls:
        env_vars = ", ".join(RPC_URL_ENV_VARS.values())
        raise ConfigurationError(f"No RPC URLs configured; set at least one of: {env_vars}")

    providers = {}
    for chain_id, url in rpc_urls.items():
        providers[int(chain_id)] = provider_from_url(url, timeout)
        logger.info(f"Configured RPC provider for {chain_name(chain_id)}")
    return providers


def contract_runtime_code(w3: Web3, address: str, block: Optional[int] = None) -> bytes:
    """Deployed code at `address`, at `block` or latest."""
    if block is None:
        code = w3.eth.get_code(to_checksum_address(address))
    else:
        code = w3.eth.get_code(to_checksum_address(address), block_identifier=block)
    return bytes(code)
