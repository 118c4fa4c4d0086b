"""
Rebalance Engine Tool: Decimal Math
Arbitrary-precision arithmetic for every monetary calculation.

Pure functions on decimal.Decimal through an explicit, immutable
configuration:
- 20 significant digits, ROUND_HALF_UP
- Parse boundary that rejects malformed or non-finite input
- Fixed decimal place formatting for output amounts

No native float arithmetic, no global decimal context.
"""

from __future__ import annotations

import os
from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
)
from functools import reduce
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rebalance_engine.config.constants import (
    DECIMAL_PRECISION,
    DECIMAL_ROUNDING,
    ENV_DECIMAL_PRECISION,
    ENV_MONETARY_PLACES,
    MONETARY_PRECISION,
)
from rebalance_engine.exceptions import (
    CalculationError,
    DivisionByZeroError,
    EnvConfigError,
    InvalidDecimalError,
)

DecimalLike = Union[Decimal, str, int, float]

SUPPORTED_ROUNDING = (ROUND_HALF_UP, ROUND_HALF_EVEN, ROUND_DOWN)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class DecimalConfig(BaseModel):
    """Immutable numeric configuration handed to DecimalMath."""

    model_config = ConfigDict(frozen=True)

    precision: int = Field(DECIMAL_PRECISION, ge=1, le=100, description="Significant digits")
    rounding: str = Field(DECIMAL_ROUNDING, description="decimal rounding mode name")
    monetary_places: int = Field(MONETARY_PRECISION, ge=0, le=12, description="Default formatting places")

    @field_validator("rounding")
    @classmethod
    def validate_rounding(cls, v: str) -> str:
        if v not in SUPPORTED_ROUNDING:
            raise ValueError(f"rounding must be one of {SUPPORTED_ROUNDING}, got '{v}'")
        return v

    @classmethod
    def from_env(cls) -> "DecimalConfig":
        """
        Build a config from environment overrides, defaults otherwise.

        Reads REBALANCE_DECIMAL_PRECISION and REBALANCE_MONETARY_PLACES.
        """
        overrides = {}
        for env_name, field_name in (
            (ENV_DECIMAL_PRECISION, "precision"),
            (ENV_MONETARY_PLACES, "monetary_places"),
        ):
            raw = os.environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[field_name] = int(raw)
            except ValueError:
                raise EnvConfigError(f"{env_name} must be an integer, got '{raw}'")
        try:
            return cls(**overrides)
        except ValueError as e:
            raise EnvConfigError(f"Invalid decimal configuration: {e}")


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class DecimalMath:
    """
    Decimal arithmetic bound to one DecimalConfig.

    Every operation runs on a private decimal.Context, so two engines
    with different configs never interfere and the interpreter-wide
    context is left untouched.
    """

    def __init__(self, config: Optional[DecimalConfig] = None):
        self.config = config or DecimalConfig()
        self._context = Context(
            prec=self.config.precision,
            rounding=self.config.rounding,
            traps=[InvalidOperation, DivisionByZero, Overflow],
        )

    # --- parse boundary ---

    def parse(self, value: DecimalLike) -> Decimal:
        """
        Parse a value into a finite Decimal.

        Strings are parsed exactly (no rounding to precision), floats via
        their shortest repr so 0.1 parses as Decimal("0.1").

        Raises:
            InvalidDecimalError: empty, malformed, boolean, NaN or infinite input.
        """
        if isinstance(value, bool):
            raise InvalidDecimalError(f"Cannot parse boolean {value!r} as Decimal")
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, int):
            parsed = Decimal(value)
        elif isinstance(value, float):
            parsed = self._parse_text(repr(value))
        elif isinstance(value, str):
            if value.strip() == "":
                raise InvalidDecimalError("Cannot parse empty string as Decimal")
            parsed = self._parse_text(value.strip())
        else:
            raise InvalidDecimalError(
                f"Cannot parse {type(value).__name__} value {value!r} as Decimal"
            )

        if not parsed.is_finite():
            raise InvalidDecimalError(f"Decimal must be finite, got {value!r}")
        return parsed

    @staticmethod
    def _parse_text(text: str) -> Decimal:
        try:
            return Decimal(text)
        except InvalidOperation:
            raise InvalidDecimalError(f"Cannot parse {text!r} as Decimal")

    # --- arithmetic ---

    def add(self, *values: Decimal) -> Decimal:
        """Sum any number of values; the empty sum is 0."""
        return reduce(self._context.add, values, Decimal(0))

    def add_exact(self, *values: Decimal) -> Decimal:
        """Sum with precision widened to hold every digit, so nothing is rounded."""
        if not values:
            return Decimal(0)
        int_digits = max(max(v.adjusted(), 0) + 1 for v in values)
        places = max(max(-v.as_tuple().exponent, 0) for v in values)
        return self.widened(int_digits + places + len(str(len(values)))).add(*values)

    def subtract(self, a: Decimal, b: Decimal) -> Decimal:
        return self._context.subtract(a, b)

    def multiply(self, a: Decimal, b: Decimal) -> Decimal:
        return self._context.multiply(a, b)

    def divide(self, a: Decimal, b: Decimal) -> Decimal:
        """
        Divide a by b.

        Raises:
            DivisionByZeroError: b is zero.
        """
        if b.is_zero():
            raise DivisionByZeroError(f"Cannot divide {a} by zero")
        return self._context.divide(a, b)

    def abs(self, value: Decimal) -> Decimal:
        return self._context.abs(value)

    # --- predicates ---

    @staticmethod
    def is_positive(value: Decimal) -> bool:
        """Strictly greater than zero."""
        return value > 0

    @staticmethod
    def is_negative(value: Decimal) -> bool:
        """Strictly less than zero."""
        return value < 0

    @staticmethod
    def is_zero(value: Decimal) -> bool:
        return value.is_zero()

    def equals(self, a: Decimal, b: Decimal) -> bool:
        """Numeric equality, ignoring trailing zeros (1.50 == 1.5)."""
        return self.compare(a, b) == 0

    def compare(self, a: Decimal, b: Decimal) -> int:
        """-1, 0 or 1 as a is less than, equal to or greater than b."""
        return int(self._context.compare(a, b))

    def widened(self, digits: int) -> "DecimalMath":
        """This engine, or a copy whose precision is raised to at least `digits`."""
        if digits <= self.config.precision:
            return self
        return DecimalMath(self.config.model_copy(update={"precision": digits}))

    # --- rounding & formatting ---

    def round(
        self,
        value: Decimal,
        places: Optional[int] = None,
        rounding: Optional[str] = None,
    ) -> Decimal:
        """
        Quantize to a fixed number of decimal places (default: monetary places).

        Values whose integer digits plus places exceed the configured
        precision are quantized on a context widened to fit, so large
        totals format like small ones.

        Args:
            value: Value to quantize.
            places: Decimal places; the config's monetary places when None.
            rounding: Rounding mode overriding the config's, e.g. ROUND_DOWN.
        """
        if places is None:
            places = self.config.monetary_places
        exponent = Decimal(1).scaleb(-places)
        # one spare digit for a carry, e.g. 9999.99995 -> 10000.0000
        digits = max(value.adjusted() + 1, 1) + places + 1
        context = self.widened(digits)._context
        try:
            return value.quantize(exponent, rounding=rounding, context=context)
        except InvalidOperation:
            raise CalculationError(f"Cannot round {value} to {places} places")

    def to_fixed(self, value: Decimal, places: Optional[int] = None) -> str:
        """Format with exactly `places` decimal places, e.g. '761.9048'. Never '-0.0000'."""
        rounded = self.round(value, places)
        if rounded.is_zero():
            rounded = rounded.copy_abs()
        return f"{rounded:f}"
