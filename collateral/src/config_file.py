"""Collateral definitions loaded from a JSON file.

Fractions are decimal strings, durations are integer seconds. Example:

.. code-block:: json

    {
      "collaterals": [
        {
          "erc20": "0xac3E018457B222d93114458476f3E3416Abbe38F",
          "target_name": "ETH",
          "pricing": {
            "mode": "self_referential",
            "target_feed": {"address": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419", "timeout": 3600}
          },
          "rate_source": {"kind": "sfrxeth", "address": "0xac3E018457B222d93114458476f3E3416Abbe38F"},
          "oracle_error": "0.005",
          "max_trade_volume": "1000000",
          "default_threshold": "0",
          "delay_until_default": 86400,
          "price_timeout": 604800,
          "revenue_hiding": "0.0001"
        }
      ]
    }

Supported modes: ``fiat_pegged`` (``ref_feed``), ``self_referential``
(``target_feed``, optional ``peg_feed``) and ``non_fiat`` (``peg_feed``,
``target_feed``). An optional ``rewards`` object (``address``,
``reward_token``, optional ``claim_function``) enables reward claiming when
a transaction submitter is available.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .Collateral import Collateral
from .CollateralConfig import (
    CollateralConfig,
    FeedRef,
    FiatPegged,
    NonFiat,
    PricingMode,
    SelfReferential,
)
from .errors import ConfigInvalidError
from .feeds import ChainlinkFeed
from .fixlib import to_fix
from .rates import get_rate_source
from .rewards import ContractRewardSource

if TYPE_CHECKING:
    from web3 import Web3

    from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)


def _feed_ref(data: dict[str, Any], w3: Web3) -> FeedRef:
    feed = ChainlinkFeed(w3, data["address"], description=data.get("description", ""))
    return FeedRef(feed=feed, timeout=int(data["timeout"]))


def parse_pricing(data: dict[str, Any], w3: Web3) -> PricingMode:
    """Build a pricing mode from its JSON object.

    :param data: Object with a "mode" key and the mode's feeds.
    :param w3: Web3 instance for the feeds.
    :returns: The pricing mode.
    :raises ConfigInvalidError: If the mode is unknown.
    """
    mode = data.get("mode")
    if mode == "fiat_pegged":
        return FiatPegged(ref_feed=_feed_ref(data["ref_feed"], w3))
    if mode == "self_referential":
        peg = data.get("peg_feed")
        return SelfReferential(
            target_feed=_feed_ref(data["target_feed"], w3),
            peg_feed=_feed_ref(peg, w3) if peg else None,
        )
    if mode == "non_fiat":
        return NonFiat(
            peg_feed=_feed_ref(data["peg_feed"], w3),
            target_feed=_feed_ref(data["target_feed"], w3),
        )
    raise ConfigInvalidError(
        f"Unknown pricing mode '{mode}'. Expected fiat_pegged, self_referential or non_fiat"
    )


def parse_collateral(
    data: dict[str, Any],
    w3: Web3,
    submitter: TxSubmitter | None = None,
    holder: str | None = None,
) -> Collateral:
    """Build a collateral from its JSON object.

    :param data: Collateral definition.
    :param w3: Web3 instance for feeds, rate source and rewards.
    :param submitter: Transaction submitter; rewards are ignored without one.
    :param holder: Account receiving claimed rewards.
    :returns: A new collateral in SOUND.
    :raises ConfigInvalidError: If the definition is incomplete or invalid.
    """
    try:
        config = CollateralConfig(
            erc20=data["erc20"],
            target_name=data["target_name"],
            pricing=parse_pricing(data["pricing"], w3),
            oracle_error=to_fix(data["oracle_error"]),
            max_trade_volume=to_fix(data["max_trade_volume"]),
            default_threshold=to_fix(data.get("default_threshold", "0")),
            delay_until_default=int(data["delay_until_default"]),
            price_timeout=int(data["price_timeout"]),
        )
        rate = data.get("rate_source", {"kind": "constant"})
        rate_source = get_rate_source(rate["kind"], w3=w3, address=rate.get("address"))
        revenue_hiding = to_fix(data.get("revenue_hiding", "0"))

        reward_source = None
        rewards = data.get("rewards")
        if rewards:
            if submitter is None or not holder:
                logger.warning(
                    f"{config.erc20}: rewards configured but no signing account, "
                    "reward claims disabled"
                )
            else:
                reward_source = ContractRewardSource(
                    w3,
                    rewards["address"],
                    rewards["reward_token"],
                    submitter,
                    claim_function=rewards.get("claim_function", "claimRewards"),
                )
    except ConfigInvalidError:
        raise
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ConfigInvalidError(
            f"Invalid collateral definition {data.get('erc20', '?')}: {e!r}"
        ) from e

    return Collateral(
        config,
        rate_source,
        revenue_hiding=revenue_hiding,
        reward_source=reward_source,
        holder=holder if reward_source is not None else None,
    )


def load_collaterals(
    path: str | Path,
    w3: Web3,
    submitter: TxSubmitter | None = None,
    holder: str | None = None,
) -> list[Collateral]:
    """Load every collateral defined in a JSON file.

    :param path: Path to the definitions file.
    :param w3: Web3 instance.
    :param submitter: Optional transaction submitter for reward claims.
    :param holder: Account receiving claimed rewards.
    :returns: Collaterals in file order.
    :raises ConfigInvalidError: If the file or any definition is invalid.
    """
    with open(path, "r") as file:
        try:
            document = json.load(file)
        except json.JSONDecodeError as e:
            raise ConfigInvalidError(f"Invalid JSON in {path}: {e}") from e

    definitions = document.get("collaterals") if isinstance(document, dict) else None
    if not definitions:
        raise ConfigInvalidError(f"No collaterals defined in {path}")

    return [parse_collateral(d, w3, submitter=submitter, holder=holder) for d in definitions]
