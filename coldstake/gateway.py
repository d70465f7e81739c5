"""Node API gateway used by the cold staking setup.

Every operation is a coroutine. ``NodeApiGateway`` runs the blocking HTTP
request in a worker thread so the event loop is never blocked; failures are
raised as :class:`~coldstake.shared.network.NetworkError` carrying the first
message of the node's error body.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from coldstake.features.cold_staking.models import (
    MAIN_ACCOUNT,
    AddressDescriptor,
    BalanceSnapshot,
    FeeTier,
    MaximumSpendable,
)
from coldstake.features.cold_staking.validators import format_coin_amount
from coldstake.shared.network import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)

logger = logging.getLogger(__name__)


class ApiGateway(Protocol):
    """Request/response contract the cold staking core depends on."""

    async def validate_address(self, address: str) -> AddressDescriptor: ...

    async def ensure_cold_staking_account(
        self, wallet_name: str, password: str, create_if_absent: bool
    ) -> str: ...

    async def resolve_staking_address(
        self, wallet_name: str, cold: bool, witness_hint: str
    ) -> str: ...

    async def build_cold_staking_setup(
        self,
        hot_address: str,
        cold_address: str,
        amount: str,
        wallet_name: str,
        password: str,
        account_name: str,
        fee: int,
    ) -> str: ...

    async def broadcast_transaction(self, payload: str) -> str: ...

    async def estimate_fee(
        self,
        wallet_name: str,
        account: str,
        address: str,
        amount: str,
        fee_tier: FeeTier,
        isolate: bool,
    ) -> int: ...

    async def get_balance(self, wallet_name: str) -> BalanceSnapshot: ...

    async def get_maximum_spendable(
        self, wallet_name: str, fee_tier: FeeTier
    ) -> MaximumSpendable: ...


def _require(data: Any, key: str, context: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise NetworkError(
            error_type=NetworkErrorType.UNKNOWN,
            message=f"{context}: unexpected response from node (missing '{key}')",
        )
    return data[key]


def _malformed(context: str, data: Any, error: Exception) -> NetworkError:
    return NetworkError(
        error_type=NetworkErrorType.UNKNOWN,
        message=f"{context}: unexpected response from node: {data!r}",
        original_error=error,
    )


class NodeApiGateway:
    """``ApiGateway`` backed by a full node's REST API."""

    def __init__(
        self,
        node_url: str,
        timeout_config: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
        client: NetworkClient | None = None,
    ):
        self.client = client or NetworkClient(
            node_url=node_url,
            timeout_config=timeout_config,
            retry_config=retry_config,
        )

    async def _get(self, endpoint: str, context: str, **params: Any) -> Any:
        return await asyncio.to_thread(
            self.client.get, endpoint, context, params=params
        )

    async def _post(self, endpoint: str, context: str, payload: dict[str, Any]) -> Any:
        return await asyncio.to_thread(
            self.client.post, endpoint, context, json=payload
        )

    async def validate_address(self, address: str) -> AddressDescriptor:
        context = "Validate address"
        data = await self._get("/api/node/validateaddress", context, address=address)
        is_valid = bool(_require(data, "isvalid", context))
        if not is_valid:
            raise NetworkError(
                error_type=NetworkErrorType.HTTP_ERROR,
                message=f"Invalid address: {address}",
            )
        return AddressDescriptor(
            address=data.get("address", address),
            is_valid=is_valid,
            is_witness=bool(data.get("iswitness", False)),
        )

    async def ensure_cold_staking_account(
        self, wallet_name: str, password: str, create_if_absent: bool
    ) -> str:
        context = "Create cold staking account"
        data = await self._post(
            "/api/coldstaking/cold-staking-account",
            context,
            {
                "walletName": wallet_name,
                "walletPassword": password,
                "isColdWalletAccount": create_if_absent,
            },
        )
        return str(_require(data, "accountName", context))

    async def resolve_staking_address(
        self, wallet_name: str, cold: bool, witness_hint: str
    ) -> str:
        context = "Get cold staking address"
        data = await self._get(
            "/api/coldstaking/cold-staking-address",
            context,
            walletName=wallet_name,
            isColdWalletAddress=str(cold).lower(),
            segwit=witness_hint,
        )
        return str(_require(data, "address", context))

    async def build_cold_staking_setup(
        self,
        hot_address: str,
        cold_address: str,
        amount: str,
        wallet_name: str,
        password: str,
        account_name: str,
        fee: int,
    ) -> str:
        context = "Build cold staking setup"
        data = await self._post(
            "/api/coldstaking/setup-cold-staking",
            context,
            {
                "coldWalletAddress": cold_address,
                "hotWalletAddress": hot_address,
                "walletName": wallet_name,
                "walletPassword": password,
                "walletAccount": account_name,
                "amount": amount,
                "fees": format_coin_amount(fee),
            },
        )
        return str(_require(data, "transactionHex", context))

    async def broadcast_transaction(self, payload: str) -> str:
        context = "Send transaction"
        data = await self._post("/api/wallet/send-transaction", context, {"hex": payload})
        transaction_id = str(_require(data, "transactionId", context))
        logger.info("Transaction accepted by node: %s", transaction_id)
        return transaction_id

    async def estimate_fee(
        self,
        wallet_name: str,
        account: str,
        address: str,
        amount: str,
        fee_tier: FeeTier,
        isolate: bool,
    ) -> int:
        context = "Estimate fee"
        data = await self._post(
            "/api/wallet/estimate-txfee",
            context,
            {
                "walletName": wallet_name,
                "accountName": account,
                "recipients": [{"destinationAddress": address, "amount": amount}],
                "feeType": fee_tier.value,
                "allowUnconfirmed": isolate,
            },
        )
        try:
            return int(data)
        except (TypeError, ValueError) as e:
            raise _malformed(context, data, e) from e

    async def get_balance(self, wallet_name: str) -> BalanceSnapshot:
        context = "Get wallet balance"
        data = await self._get(
            "/api/wallet/balance", context, WalletName=wallet_name
        )
        balances = _require(data, "balances", context)
        if not balances:
            return BalanceSnapshot()
        try:
            account = balances[0]
            confirmed = int(account.get("amountConfirmed", 0))
            unconfirmed = int(account.get("amountUnconfirmed", 0))
            spendable = int(account.get("spendableAmount", 0))
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise _malformed(context, balances, e) from e
        return BalanceSnapshot(
            total_balance=confirmed + unconfirmed,
            spendable_balance=spendable,
        )

    async def get_maximum_spendable(
        self, wallet_name: str, fee_tier: FeeTier
    ) -> MaximumSpendable:
        context = "Get maximum balance"
        data = await self._get(
            "/api/wallet/maxbalance",
            context,
            WalletName=wallet_name,
            AccountName=MAIN_ACCOUNT,
            FeeType=fee_tier.value,
            AllowUnconfirmed="true",
        )
        max_amount = _require(data, "maxSpendableAmount", context)
        fee = _require(data, "fee", context)
        try:
            return MaximumSpendable(max_amount=int(max_amount), fee=int(fee))
        except (TypeError, ValueError) as e:
            raise _malformed(context, data, e) from e
