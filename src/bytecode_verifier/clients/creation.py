"""
Recover the creation transaction and creation code of a contract on one chain.

Two paths:
- Known transaction hash: decode that transaction directly.
- Unknown hash: binary search block height for the first block with code at
  the address, then scan that block's transactions.

Only plain CREATE transactions and a fixed set of CREATE2 factories are
understood; contracts deployed through other factories are not traced.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from eth_utils import add_0x_prefix, decode_hex, to_checksum_address, to_hex
from web3 import Web3

from ..errors import DiscoveryFailure, NoCodeAtAddress, TransactionNotFound, UnsupportedFactory
from .constants import (
    ARACHNID_CREATE2_FACTORY,
    KNOWN_CREATE2_FACTORIES,
    SAFE_CREATE2_FACTORY,
    SELECTOR_SIZE,
    WORD_SIZE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractCreation:
    tx_hash: str
    block: int
    creation_code: bytes


def _to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return decode_hex(value)
    return bytes(value)


def _to_hex_str(value: Any) -> str:
    if isinstance(value, str):
        return add_0x_prefix(value).lower()
    return to_hex(bytes(value))


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return str(a).lower() == str(b).lower()


def _read_word(data: bytes, offset: int) -> int:
    word = data[offset:offset + WORD_SIZE]
    if len(word) != WORD_SIZE:
        raise DiscoveryFailure(f"Calldata too short to read word at offset {offset}")
    return int.from_bytes(word, "big")


def is_known_factory(address: Optional[str]) -> bool:
    return bool(address) and str(address).lower() in KNOWN_CREATE2_FACTORIES


def decode_factory_creation_code(factory: str, calldata: bytes) -> bytes:
    """
    Extract creation code from a call to a known CREATE2 factory.

    Args:
        factory: Factory address the transaction was sent to
        calldata: Transaction input

    Returns:
        The creation code passed to the factory

    Raises:
        UnsupportedFactory: If the factory is not one of the known layouts
        DiscoveryFailure: If the calldata does not fit the factory's layout
    """
    factory = str(factory).lower()

    if factory == ARACHNID_CREATE2_FACTORY:
        if len(calldata) <= WORD_SIZE:
            raise DiscoveryFailure("Calldata for deterministic deployment proxy has no creation code")
        return calldata[WORD_SIZE:]

    if factory == SAFE_CREATE2_FACTORY:
        # Offset to the `bytes` argument is relative to the start of the arguments.
        args_start = SELECTOR_SIZE
        offset = _read_word(calldata, args_start + WORD_SIZE)
        length_position = args_start + offset
        length = _read_word(calldata, length_position)
        code_start = length_position + WORD_SIZE
        creation_code = calldata[code_start:code_start + length]
        if len(creation_code) != length:
            raise DiscoveryFailure(
                f"safeCreate2 calldata declares {length} bytes of code but has {len(creation_code)}"
            )
        return creation_code

    raise UnsupportedFactory(f"Transaction target {factory} is not a supported deployment factory")


def find_first_block(low: int, high: int, has_code: Callable[[int], bool]) -> int:
    """
    Lowest block in [low, high] where the monotonic predicate holds.

    Assumes `has_code(high)` is true; uses O(log(high - low)) probes.
    """
    while low < high:
        mid = (low + high) // 2
        if has_code(mid):
            high = mid
        else:
            low = mid + 1
    return high


def find_creation_block(w3: Web3, address: str, label: str = "") -> int:
    """
    Binary search for the block in which `address` first had code.

    Code presence is monotonic once deployed, so the search is valid.

    Raises:
        NoCodeAtAddress: If there is no code at the latest block
    """
    checksum = to_checksum_address(address)

    def has_code(block: int) -> bool:
        return len(w3.eth.get_code(checksum, block_identifier=block)) > 0

    logger.info(f"  {label}: Checking if there is code at this address.")
    latest = int(w3.eth.block_number)
    if not has_code(latest):
        logger.info(f"  {label}: No code, returning.")
        raise NoCodeAtAddress(f"No code at {checksum} as of block {latest}")

    logger.info(f"  {label}: Binary searching over {latest + 1} blocks to find deployment block.")
    block = find_first_block(0, latest, has_code)
    logger.info(f"  {label}: Found deployment block {block}.")
    return block


def _creation_from_transaction(w3: Web3, address: str, tx: Mapping[str, Any],
                               block: int) -> Optional[ContractCreation]:
    """
    Decode one transaction as the creation of `address`, or None if it is not.

    Raises:
        UnsupportedFactory: If the transaction calls an unknown contract
    """
    tx_hash = _to_hex_str(tx["hash"])
    target = tx.get("to")
    calldata = _to_bytes(tx.get("input"))

    if not target:
        receipt = w3.eth.get_transaction_receipt(tx_hash)
        if _same_address(receipt.get("contractAddress"), address):
            return ContractCreation(tx_hash=tx_hash, block=block, creation_code=calldata)
        return None

    if is_known_factory(target):
        creation_code = decode_factory_creation_code(target, calldata)
        return ContractCreation(tx_hash=tx_hash, block=block, creation_code=creation_code)

    raise UnsupportedFactory(f"Transaction {tx_hash} targets {target}, not a supported deployment factory")


def find_creation_tx(w3: Web3, address: str, block: int, label: str = "") -> ContractCreation:
    """
    Scan a block for the transaction that created `address`.

    The first CREATE whose receipt names the address, or the first call to a
    known factory, wins; several qualifying transactions in one block are not
    disambiguated.

    Raises:
        TransactionNotFound: If no transaction in the block qualifies
    """
    logger.info(f"  {label}: Finding deployment transaction and creation code.")
    block_data = w3.eth.get_block(block)

    for tx_ref in block_data["transactions"]:
        tx = tx_ref if isinstance(tx_ref, Mapping) else w3.eth.get_transaction(tx_ref)
        try:
            creation = _creation_from_transaction(w3, address, tx, block)
        except DiscoveryFailure as e:
            logger.debug(f"  {label}: Skipping transaction in block {block}: {e}")
            continue
        if creation is not None:
            logger.info(f"  {label}: Found transaction hash {creation.tx_hash}.")
            return creation

    raise TransactionNotFound(
        f"Creation transaction for {address} not found in block {block}. "
        "It may have been deployed by an unsupported factory."
    )


def creation_from_tx_hash(w3: Web3, address: str, tx_hash: str, label: str = "") -> ContractCreation:
    """
    Decode a known creation transaction without searching.

    Raises:
        TransactionNotFound: If the transaction is a CREATE of a different address
        UnsupportedFactory: If the transaction calls an unknown contract
    """
    logger.info(f"  {label}: Decoding known creation transaction {tx_hash}.")
    tx = w3.eth.get_transaction(tx_hash)
    block = int(tx["blockNumber"])
    creation = _creation_from_transaction(w3, address, tx, block)
    if creation is None:
        raise TransactionNotFound(f"Transaction {tx_hash} did not create {address}")
    return creation


def find_creation_code(w3: Web3, address: str, tx_hash: Optional[str] = None,
                       label: str = "") -> ContractCreation:
    """
    Recover creation data for `address`, preferring a known transaction hash.

    Raises:
        DiscoveryFailure: Any of NoCodeAtAddress, TransactionNotFound, UnsupportedFactory
    """
    if tx_hash:
        return creation_from_tx_hash(w3, address, tx_hash, label)
    block = find_creation_block(w3, address, label)
    return find_creation_tx(w3, address, block, label)
