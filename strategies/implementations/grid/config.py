"""
Grid Trading Strategy Configuration

Pydantic model for grid strategy configuration and validation.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import GridConfigurationError


class GridConfig(BaseModel):
    """Configuration for the leveraged grid strategy."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    # Instrument and ladder
    symbol: str = Field(
        ...,
        description="Instrument traded by the grid (e.g. 'ETH-PERP')",
        min_length=1,
    )
    grid_size: int = Field(
        ...,
        description="Number of price levels in the ladder",
        ge=2,
    )
    lower_price: Decimal = Field(
        ...,
        description="Lowest grid level",
        gt=0,
    )
    upper_price: Decimal = Field(
        ...,
        description="Highest grid level",
        gt=0,
    )
    quantity: Decimal = Field(
        ...,
        description="Order quantity for every grid order (base units)",
        gt=0,
    )
    leverage: int = Field(
        ...,
        description="Account leverage requested at startup",
        ge=1,
    )

    # Position exits (global, shared by every grid position)
    take_profit_price: Decimal = Field(
        ...,
        description="Absolute price at which a filled position is closed for profit",
        gt=0,
    )
    stop_loss_price: Decimal = Field(
        ...,
        description="Absolute price at which a filled position is closed for a loss",
        gt=0,
    )

    # Venue
    testnet: bool = Field(
        False,
        description="Route the exchange client to its test network",
    )

    # Runtime tuning
    poll_interval: float = Field(
        5.0,
        description="Seconds between take-profit/stop-loss checks of a filled position",
        gt=0,
    )
    reladder_step: Optional[Decimal] = Field(
        None,
        description=(
            "Fraction of the filled price used to place the opposite order after a fill. "
            "When omitted the opposite order is placed one grid interval away."
        ),
        gt=0,
    )
    request_timeout: Optional[float] = Field(
        10.0,
        description="Seconds before an exchange call made by the grid is abandoned (None disables)",
        gt=0,
    )
    max_call_attempts: int = Field(
        1,
        description="Attempts per exchange call; 1 disables retries",
        ge=1,
        le=10,
    )

    @field_validator("lower_price", "upper_price", "quantity", "take_profit_price", "stop_loss_price", "reladder_step", mode="before")
    def _coerce_decimal(cls, value: Any) -> Any:
        """Floats from YAML/JSON go through ``str`` so 0.1 stays 0.1."""
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @model_validator(mode="after")
    def _validate_bounds(self) -> "GridConfig":
        if self.upper_price <= self.lower_price:
            raise ValueError(
                f"upper_price ({self.upper_price}) must be greater than lower_price ({self.lower_price})"
            )
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridConfig":
        """
        Build a config from a plain mapping.

        Raises:
            GridConfigurationError: If any field is missing or invalid
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            location = first.get("loc") or ()
            field_name = str(location[0]) if location else None
            raise GridConfigurationError(f"Invalid grid configuration: {exc}", field=field_name) from exc

    @property
    def grid_interval(self) -> Decimal:
        """Price distance between two adjacent levels."""
        return (self.upper_price - self.lower_price) / Decimal(self.grid_size - 1)
