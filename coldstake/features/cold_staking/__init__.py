"""Cold staking setup feature for the cold staking wallet."""

from coldstake.features.cold_staking.balance import BalancePoller, PollerState
from coldstake.features.cold_staking.fee_estimator import FeeEstimator
from coldstake.features.cold_staking.models import (
    AddressDescriptor,
    BalanceSnapshot,
    DelegationRequest,
    FeeQuote,
    FeeTier,
    FormField,
    FormState,
    MaximumSpendable,
    PipelineResult,
    PipelineStage,
)
from coldstake.features.cold_staking.pipeline import TransactionPipeline
from coldstake.features.cold_staking.service import ColdStakingSetupService
from coldstake.features.cold_staking.validators import (
    FieldValidation,
    Rule,
    ValidationGate,
)

__all__ = [
    "AddressDescriptor",
    "BalancePoller",
    "BalanceSnapshot",
    "ColdStakingSetupService",
    "DelegationRequest",
    "FeeEstimator",
    "FeeQuote",
    "FeeTier",
    "FieldValidation",
    "FormField",
    "FormState",
    "MaximumSpendable",
    "PipelineResult",
    "PipelineStage",
    "PollerState",
    "Rule",
    "TransactionPipeline",
    "ValidationGate",
]
