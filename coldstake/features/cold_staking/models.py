"""Data types shared by the cold staking setup components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

MAIN_ACCOUNT = "account 0"
COLD_STAKING_ACCOUNT = "coldStakingColdAddresses"
HOT_STAKING_ACCOUNT = "coldStakingHotAddresses"


class FeeTier(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FormField(Enum):
    DELEGATION_ADDRESS = "delegation_address"
    AMOUNT = "amount"
    PASSWORD = "password"


@dataclass(frozen=True)
class FormState:
    delegation_address: str = ""
    amount: str = ""
    password: str = field(default="", repr=False)
    fee_tier: FeeTier = FeeTier.MEDIUM


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balances of the active wallet, in minor units."""

    total_balance: int = 0
    spendable_balance: int = 0


@dataclass(frozen=True)
class FeeQuote:
    amount: int
    sequence: int = 0


@dataclass(frozen=True)
class AddressDescriptor:
    address: str
    is_valid: bool = True
    is_witness: bool = False


@dataclass(frozen=True)
class MaximumSpendable:
    max_amount: int
    fee: int


@dataclass(frozen=True)
class DelegationRequest:
    hot_wallet_address: str
    amount: str
    wallet_name: str
    password: str = field(repr=False)
    account_name: str = MAIN_ACCOUNT
    fee: int = 0
    cold_wallet_address: str | None = None


class PipelineStage(Enum):
    IDLE = "idle"
    VALIDATING_ADDRESS = "validating_address"
    CREATING_COLD_ACCOUNT = "creating_cold_account"
    RESOLVING_COLD_ADDRESS = "resolving_cold_address"
    BUILDING_DELEGATION_TX = "building_delegation_tx"
    BROADCASTING = "broadcasting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResult:
    transaction_id: str | None = None
    failed_stage: PipelineStage | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.transaction_id is not None

    @classmethod
    def success(cls, transaction_id: str) -> "PipelineResult":
        return cls(transaction_id=transaction_id)

    @classmethod
    def failure(cls, stage: PipelineStage, message: str) -> "PipelineResult":
        return cls(failed_stage=stage, message=message)
