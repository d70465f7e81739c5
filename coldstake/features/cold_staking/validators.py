"""Form validation for the cold staking setup form."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from coldstake.features.cold_staking.models import (
    BalanceSnapshot,
    FeeQuote,
    FormField,
    FormState,
)

COIN = 100_000_000
COIN_DECIMALS = 8


class Rule(Enum):
    REQUIRED = "required"
    MIN_LENGTH = "minlength"
    PATTERN = "pattern"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class FieldValidation:
    field: FormField
    errors: tuple[Rule, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


VALIDATION_MESSAGES: dict[FormField, dict[Rule, str]] = {
    FormField.DELEGATION_ADDRESS: {
        Rule.REQUIRED: "A delegated staking address is required.",
        Rule.MIN_LENGTH: "A delegated staking address is at least 26 characters long.",
    },
    FormField.AMOUNT: {
        Rule.REQUIRED: "An amount is required.",
        Rule.PATTERN: (
            "Enter a valid transaction amount. Only positive numbers and "
            "no more than 8 decimals are allowed."
        ),
        Rule.MIN: "The amount has to be more or equal to 0.00001 {coin_unit}.",
        Rule.MAX: "The total transaction amount exceeds your spendable balance.",
    },
    FormField.PASSWORD: {
        Rule.REQUIRED: "Your password is required.",
    },
}


def to_coins(minor_units: int) -> Decimal:
    return Decimal(minor_units) / COIN


def format_coin_amount(minor_units: int) -> str:
    """Coin notation without trailing zeros: ``150000`` -> ``"0.0015"``."""
    value = Decimal(minor_units).scaleb(-COIN_DECIMALS)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def parse_amount(value: str) -> Decimal | None:
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class ValidationGate:
    """Evaluates the setup form against its declared rules.

    The gate is a pure function of the form, the last balance snapshot and the
    last fee quote; it never touches the network.
    """

    MIN_ADDRESS_LENGTH = 26
    MIN_AMOUNT = Decimal("0.00001")
    AMOUNT_PATTERN = re.compile(r"^([0-9]+)?(\.[0-9]{0,8})?$")

    @staticmethod
    def max_amount(balance: BalanceSnapshot, fee_quote: FeeQuote | None) -> Decimal:
        fee = fee_quote.amount if fee_quote else 0
        return to_coins(balance.spendable_balance - fee)

    def validate_address(self, value: str) -> FieldValidation:
        field = FormField.DELEGATION_ADDRESS
        if not value:
            return FieldValidation(field, (Rule.REQUIRED,))
        if len(value) < self.MIN_ADDRESS_LENGTH:
            return FieldValidation(field, (Rule.MIN_LENGTH,))
        return FieldValidation(field)

    def validate_amount(
        self,
        value: str,
        balance: BalanceSnapshot,
        fee_quote: FeeQuote | None = None,
    ) -> FieldValidation:
        field = FormField.AMOUNT
        if not value:
            return FieldValidation(field, (Rule.REQUIRED,))

        errors: list[Rule] = []
        if not self.AMOUNT_PATTERN.match(value) or not any(
            ch.isdigit() for ch in value
        ):
            errors.append(Rule.PATTERN)

        amount = parse_amount(value)
        if amount is not None:
            if amount < self.MIN_AMOUNT:
                errors.append(Rule.MIN)
            if amount > self.max_amount(balance, fee_quote):
                errors.append(Rule.MAX)

        return FieldValidation(field, tuple(errors))

    def validate_password(self, value: str) -> FieldValidation:
        if not value:
            return FieldValidation(FormField.PASSWORD, (Rule.REQUIRED,))
        return FieldValidation(FormField.PASSWORD)

    def evaluate(
        self,
        state: FormState,
        balance: BalanceSnapshot,
        fee_quote: FeeQuote | None = None,
    ) -> dict[FormField, FieldValidation]:
        return {
            FormField.DELEGATION_ADDRESS: self.validate_address(
                state.delegation_address
            ),
            FormField.AMOUNT: self.validate_amount(state.amount, balance, fee_quote),
            FormField.PASSWORD: self.validate_password(state.password),
        }

    def is_estimable(
        self,
        state: FormState,
        balance: BalanceSnapshot,
        fee_quote: FeeQuote | None = None,
    ) -> bool:
        """True when the fields a fee estimate depends on are valid."""
        return (
            self.validate_address(state.delegation_address).is_valid
            and self.validate_amount(state.amount, balance, fee_quote).is_valid
        )

    @staticmethod
    def messages_for(validation: FieldValidation, coin_unit: str = "x42") -> str:
        messages = VALIDATION_MESSAGES[validation.field]
        return " ".join(
            messages[rule].format(coin_unit=coin_unit) for rule in validation.errors
        )
