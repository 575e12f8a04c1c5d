"""
config.py – Static on-chain contract configuration.

Each supported chain has two exchange deployments: the standard CTF
exchange and the negative-risk exchange used by multi-outcome markets.
Orders must be signed against the exchange that will settle them, so the
(chain id, neg_risk) pair selects the EIP-712 verifying contract.
"""

from __future__ import annotations

from .exceptions import InvalidChainConfig
from .types import ClobEnv, ContractConfig

_CONFIGS: dict[int, ContractConfig] = {
    ClobEnv.POLYGON.chain_id: ContractConfig(
        exchange="0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
        collateral="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        conditional_tokens="0x4D97DCd97eC945f40cF65F87097ACe5EA0476045",
    ),
    ClobEnv.AMOY.chain_id: ContractConfig(
        exchange="0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40",
        collateral="0x9c4e1703476e875070ee25b56a58b008cfb8fa78",
        conditional_tokens="0x69308FB512518e39F9b16112fA8d994F4e2Bf8bB",
    ),
}

_NEG_RISK_CONFIGS: dict[int, ContractConfig] = {
    ClobEnv.POLYGON.chain_id: ContractConfig(
        exchange="0xC5d563A36AE78145C45a50134d48A1215220f80a",
        collateral="0x2791bca1f2de4661ed88a30c99a7a9449aa84174",
        conditional_tokens="0x4D97DCd97eC945f40cF65F87097ACe5EA0476045",
    ),
    ClobEnv.AMOY.chain_id: ContractConfig(
        exchange="0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
        collateral="0x9c4e1703476e875070ee25b56a58b008cfb8fa78",
        conditional_tokens="0x69308FB512518e39F9b16112fA8d994F4e2Bf8bB",
    ),
}


def get_contract_config(chain_id: int, neg_risk: bool = False) -> ContractConfig:
    """
    Return the contract addresses for a chain.

    Raises InvalidChainConfig for an unknown chain id; this is a
    configuration error and is never retried.
    """
    table = _NEG_RISK_CONFIGS if neg_risk else _CONFIGS
    try:
        return table[int(chain_id)]
    except KeyError:
        raise InvalidChainConfig(chain_id, neg_risk) from None
