#!/usr/bin/env python3
"""Collateral Monitor.

Refreshes collateral adapters for wrapped, interest-bearing tokens: prices
them from Chainlink feeds, tracks exchange-rate appreciation with revenue
hiding, and reports SOUND / IFFY / DEFAULT status.

Start with a collateral definitions file. See collateral/src/config_file.py
for the file format.
"""

import argparse
import asyncio
import logging
import os
import sys

from web3 import Web3

from .src.CollateralMonitor import CollateralMonitor
from .src.config_file import load_collaterals
from .src.ContractUtility import ContractUtility
from .src.errors import ConfigInvalidError
from .src.rates import get_available_rate_sources
from .src.TxSubmitter import Web3TxSubmitter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def env_flag(name: str) -> bool:
    """Interpret an environment variable as a boolean flag.

    :param name: Environment variable name.
    :returns: True for "1", "true", "yes" or "on" (any case).
    """
    return (os.environ.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def resolve_holder(holder: str | None, signer: str) -> str:
    """Pick the account that receives claimed rewards.

    Claim functions pay their caller, so rewards can only reach the signer.

    :param holder: Requested holder, or None for the signer.
    :param signer: Checksummed signing account.
    :returns: The signer.
    :raises ValueError: If the holder is not an address or is another account.
    """
    if holder is None:
        return signer
    if not Web3.is_address(holder):
        raise ValueError(f"--holder {holder} is not an address")
    if Web3.to_checksum_address(holder) != signer:
        raise ValueError(f"--holder must be the signing account {signer}")
    return signer


def main() -> None:
    """Main entry point for the Collateral Monitor CLI."""
    parser = argparse.ArgumentParser(
        description="Collateral Monitor: valuation and default detection for wrapped tokens",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available rate sources:
  {', '.join(get_available_rate_sources())}

Examples:
  # Monitor collaterals against a local node
  python -m collateral.main --collaterals collaterals.json

  # Single refresh cycle against mainnet
  python -m collateral.main --collaterals collaterals.json \\
      --rpc-url https://eth.llamarpc.com --once

  # Claim rewards every cycle (requires a signing key)
  python -m collateral.main --collaterals collaterals.json \\
      --private-key $PRIVATE_KEY --claim-rewards

Environment variables (CLI args take precedence):
  COLLATERALS_FILE, RPC_URL, POLL_PERIOD, PRIVATE_KEY, HOLDER, CLAIM_REWARDS
""",
    )

    parser.add_argument(
        "--collaterals",
        type=str,
        help="Path to the collateral definitions JSON file",
        default=os.environ.get("COLLATERALS_FILE"),
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC endpoint (default: http://localhost:8545)",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--poll-period",
        dest="poll_period",
        type=int,
        help="Seconds between refresh cycles (minimum: 1, default: 60)",
        default=int(os.environ.get("POLL_PERIOD") or "60"),
    )

    parser.add_argument(
        "--private-key",
        dest="private_key",
        type=str,
        help="Key used to sign reward claims (omit for read-only monitoring)",
        default=os.environ.get("PRIVATE_KEY"),
    )

    parser.add_argument(
        "--holder",
        type=str,
        help="Account receiving claimed rewards, must be the signing account (default: the signing account)",
        default=os.environ.get("HOLDER"),
    )

    parser.add_argument(
        "--claim-rewards",
        dest="claim_rewards",
        action="store_true",
        help="Claim rewards after every refresh cycle",
        default=env_flag("CLAIM_REWARDS"),
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh cycle and exit",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not args.collaterals:
        parser.error("--collaterals (or COLLATERALS_FILE) is required")

    if args.poll_period < 1:
        parser.error("--poll-period must be at least 1 second")

    if args.claim_rewards and not args.private_key:
        parser.error("--claim-rewards requires --private-key")

    contract_utility = ContractUtility(args.rpc_url, private_key=args.private_key)
    submitter = None
    holder = args.holder
    if contract_utility.account is not None:
        signer = contract_utility.account.address
        try:
            holder = resolve_holder(holder, signer)
        except ValueError as e:
            parser.error(str(e))
        submitter = Web3TxSubmitter(contract_utility.w3, account=signer)

    # Log configuration
    logger.info("=" * 60)
    logger.info("Collateral Monitor")
    logger.info("=" * 60)
    logger.info(f"RPC:               {contract_utility.rpc_url}")
    logger.info(f"Collaterals File:  {args.collaterals}")
    logger.info(f"Poll Period:       {args.poll_period}s")
    logger.info(f"Signing Account:   {holder or 'none (read-only)'}")
    logger.info(f"Claim Rewards:     {args.claim_rewards}")
    logger.info("=" * 60)

    try:
        collaterals = load_collaterals(
            args.collaterals,
            contract_utility.w3,
            submitter=submitter,
            holder=holder,
        )
        monitor = CollateralMonitor(
            collaterals,
            poll_period=args.poll_period,
            claim_rewards=args.claim_rewards,
        )
        asyncio.run(monitor.run(iterations=1 if args.once else None))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (ConfigInvalidError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
