"""
Chain configuration for transaction building and signing.

Tracks which transaction formats a network accepts and which chain id is
used for replay protection. Configs are plain values passed explicitly to
the wallet helpers; there is no global active network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ethtx.common.errors import MalformedFields
from ethtx.common.types import TxType


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 1
    chain_name: str = "mainnet"

    eip155: bool = True     # Spurious Dragon: replay-protected legacy v
    eip2930: bool = True    # Berlin: access list transactions
    eip1559: bool = True    # London: fee market transactions

    default_tx_type: TxType = TxType.LEGACY

    def supports(self, tx_type: int) -> bool:
        if tx_type == TxType.LEGACY:
            return True
        if tx_type == TxType.ACCESS_LIST:
            return self.eip2930
        if tx_type == TxType.FEE_MARKET:
            return self.eip1559
        return False

    def require(self, tx_type: int) -> None:
        if not self.supports(tx_type):
            raise MalformedFields(
                f"Transaction type {int(tx_type)} is not enabled on {self.chain_name}",
                field="type",
            )


# ---------------------------------------------------------------------------
# Known networks
# ---------------------------------------------------------------------------

MAINNET_CONFIG = ChainConfig(chain_id=1, chain_name="mainnet")
SEPOLIA_CONFIG = ChainConfig(chain_id=11155111, chain_name="sepolia")
HOLESKY_CONFIG = ChainConfig(chain_id=17000, chain_name="holesky")

CHAIN_CONFIGS: dict[str, ChainConfig] = {
    MAINNET_CONFIG.chain_name: MAINNET_CONFIG,
    SEPOLIA_CONFIG.chain_name: SEPOLIA_CONFIG,
    HOLESKY_CONFIG.chain_name: HOLESKY_CONFIG,
}


def get_chain_config(network: Union[str, int]) -> ChainConfig:
    """Look up a config by name or chain id.

    Unknown numeric ids get a custom config with every format enabled.
    """
    if isinstance(network, str) and not network.isdigit():
        try:
            return CHAIN_CONFIGS[network.lower()]
        except KeyError:
            raise MalformedFields(f"Unknown network: {network}", field="network") from None

    chain_id = int(network)
    for config in CHAIN_CONFIGS.values():
        if config.chain_id == chain_id:
            return config
    return ChainConfig(chain_id=chain_id, chain_name=f"chain-{chain_id}")
