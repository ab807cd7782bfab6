#!/usr/bin/env python3
"""
Main entry point for contract deployment verification.

This script orchestrates the verification workflow:
1. Parse command-line arguments
2. Fetch creation and deployed code on every configured chain
3. Clone the source repository (or use an existing checkout)
4. Build every compiler profile and compare bytecode
5. Write the JSON report
"""

import argparse
import logging
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .clients.multichain import MultiChainProvider
from .clients.rpc import normalize_address, providers_from_urls
from .config import Settings
from .errors import InvalidAddressError, VerificationError
from .frameworks import detect_framework
from .reporting import build_report, save_json_results
from .repository import clone_repo_and_checkout_commit
from .verification import fetch_expected_data, verify_project

# Load environment variables
load_dotenv(override=True)

logger = logging.getLogger(__name__)


def parse_tx_hashes(values: Optional[List[str]]) -> Dict[int, str]:
    """
    Parse repeated `CHAIN_ID:TX_HASH` arguments.

    Raises:
        ValueError: If an entry is malformed
    """
    tx_hashes: Dict[int, str] = {}
    for value in values or []:
        chain_part, sep, tx_hash = value.partition(":")
        if not sep or not chain_part.strip().isdigit() or not tx_hash.strip():
            raise ValueError(f"Expected CHAIN_ID:TX_HASH, got {value!r}")
        tx_hashes[int(chain_part)] = tx_hash.strip()
    return tx_hashes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Verify that a deployed contract was built from a source repository',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables (can also be set in .env file):
  CONTRACT_ADDRESS      Address of the deployed contract
  REPO_URL              Git URL of the source repository
  REPO_COMMIT           Commit to check out (optional)
  PROJECT_PATH          Existing project checkout, skips cloning (optional)
  <CHAIN>_RPC_URL       One per chain, e.g. MAINNET_RPC_URL, OPTIMISM_RPC_URL
  RPC_TIMEOUT           RPC request timeout in seconds (default: 10)
  MAX_CHAIN_WORKERS     Maximum concurrent chain queries (default: 8)

Priority: Command-line arguments > Environment variables > Defaults
        """
    )
    parser.add_argument(
        '--address',
        default=os.getenv('CONTRACT_ADDRESS'),
        help='Deployed contract address (env: CONTRACT_ADDRESS)'
    )
    parser.add_argument(
        '--repo-url',
        default=os.getenv('REPO_URL'),
        help='Git URL of the source repository (env: REPO_URL)'
    )
    parser.add_argument(
        '--commit',
        default=os.getenv('REPO_COMMIT'),
        help='Commit to check out (env: REPO_COMMIT, optional)'
    )
    parser.add_argument(
        '--project-path',
        type=Path,
        default=os.getenv('PROJECT_PATH'),
        help='Use an existing project checkout instead of cloning (env: PROJECT_PATH)'
    )
    parser.add_argument(
        '--tx-hash',
        action='append',
        metavar='CHAIN_ID:TX_HASH',
        help='Known creation transaction hash for a chain; may be repeated'
    )
    parser.add_argument(
        '--output',
        type=Path,
        default=Path("output"),
        help='Directory for the JSON report (default: output)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        default=False,
        help='Log to a file in the output directory (default: False)'
    )
    return parser


def configure_logging(debug: bool, output_dir: Path) -> None:
    if debug:
        output_dir.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(output_dir / 'verify_contract.log')]
    else:
        handlers = [logging.StreamHandler(sys.stderr)]
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def run(args: argparse.Namespace, address: str, tx_hashes: Dict[int, str]) -> int:
    logger.info("\nVERIFICATION INPUTS:")
    logger.info(f"  Repo URL:         {args.repo_url}")
    logger.info(f"  Commit Hash:      {args.commit}")
    logger.info(f"  Contract Address: {address}")

    settings = Settings.load()
    provider = MultiChainProvider(
        providers_from_urls(settings.rpc_urls, settings.rpc_timeout),
        max_workers=settings.max_chain_workers,
    )
    creation_data, deployed_code = fetch_expected_data(provider, address, tx_hashes)

    with tempfile.TemporaryDirectory() as temp_dir:
        if args.project_path:
            project_path = Path(args.project_path)
        else:
            logger.info("\nCLONING REPOSITORY")
            project_path = clone_repo_and_checkout_commit(args.repo_url, args.commit, Path(temp_dir) / "repo")

        framework = detect_framework(project_path)
        verified = verify_project(provider, framework, creation_data, deployed_code)
        report = build_report(
            address, verified, framework, creation_data, deployed_code, args.repo_url, args.commit
        )

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    json_output = args.output / f"results_{address}_{timestamp}.json"
    save_json_results(report, json_output)

    if not report.verified:
        logger.error("\n❌ No matching contracts found")
        return 1

    logger.info("\nCONTRACT VERIFICATION SUCCESSFUL!")
    for result in report.results:
        logger.info(
            f"  {result.chain}: {result.contract_name} "
            f"(creation: {result.creation_match.value}, deployed: {result.deployed_match.value})"
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.debug, args.output)

    if not args.address:
        parser.error("--address is required (or set CONTRACT_ADDRESS environment variable)")
    if not args.project_path and not args.repo_url:
        parser.error("--repo-url is required (or set REPO_URL), unless --project-path is given")
    try:
        address = normalize_address(args.address)
        tx_hashes = parse_tx_hashes(args.tx_hash)
    except (InvalidAddressError, ValueError) as e:
        parser.error(str(e))

    try:
        return run(args, address, tx_hashes)
    except VerificationError as e:
        logger.error(f"Verification failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
