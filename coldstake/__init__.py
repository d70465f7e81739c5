"""Cold Staking Wallet - delegate staking rights of a wallet to a hot node.

This package is organized into feature-based modules:
- features.cold_staking: Validation, fee estimation, balance polling and the
  delegation pipeline behind the "create cold staking" form
- gateway: Async access to the full node's REST API
- shared: Shared utilities (network, logging)
"""

from coldstake.config import ColdStakingConfig
from coldstake.features.cold_staking import (
    BalancePoller,
    ColdStakingSetupService,
    FeeEstimator,
    TransactionPipeline,
    ValidationGate,
)
from coldstake.gateway import ApiGateway, NodeApiGateway
from coldstake.shared import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)

__version__ = "0.1.0"
__all__ = [
    "ApiGateway",
    "BalancePoller",
    "ColdStakingConfig",
    "ColdStakingSetupService",
    "FeeEstimator",
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "NodeApiGateway",
    "RetryConfig",
    "TimeoutConfig",
    "TransactionPipeline",
    "ValidationGate",
]
