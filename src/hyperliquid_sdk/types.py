"""
types.py – Pydantic v2 models and enums shared across the SDK.

Covers three groups:

  - Environment      : HyperliquidEnv (URLs, chain label, L1 source byte)
  - Typed data       : TypedDataField, TypedDataDomain, Signature
  - Order wire types : OrderRequest and its limit / trigger order types

Hyperliquid's API represents prices and sizes as decimal strings; this SDK
keeps that convention.  OrderRequest.to_wire() emits the short-key dict the
exchange hashes, with keys in the exact order the action hash expects.

Validation
----------
All models are validated on construction.  Invalid data raises
pydantic.ValidationError with field-level detail rather than silently
passing bad values through to signing or the exchange API.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from enum import Enum, unique
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_HEX_RE     = re.compile(r"0[xX][0-9a-fA-F]*")
_ADDRESS_RE = re.compile(r"0[xX][0-9a-fA-F]{40}")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

_ENDPOINTS: dict[str, dict[str, str]] = {
    "mainnet": {
        "api": "https://api.hyperliquid.xyz",
        "rpc": "https://rpc.hyperliquid.xyz",
        "ws":  "wss://api.hyperliquid.xyz/ws",
    },
    "testnet": {
        "api": "https://api.hyperliquid-testnet.xyz",
        "rpc": "https://rpc.hyperliquid-testnet.xyz",
        "ws":  "wss://api.hyperliquid-testnet.xyz/ws",
    },
}


@unique
class HyperliquidEnv(str, Enum):
    """Hyperliquid deployment environment."""
    MAINNET = "mainnet"
    TESTNET = "testnet"

    @property
    def is_testnet(self) -> bool:
        return self is HyperliquidEnv.TESTNET

    @property
    def api_url(self) -> str:
        return _ENDPOINTS[self.value]["api"]

    @property
    def rpc_url(self) -> str:
        return _ENDPOINTS[self.value]["rpc"]

    @property
    def ws_url(self) -> str:
        return _ENDPOINTS[self.value]["ws"]

    @property
    def chain_label(self) -> str:
        """Value of the ``hyperliquidChain`` field in user-signed actions."""
        return "Testnet" if self.is_testnet else "Mainnet"

    @property
    def source(self) -> str:
        """L1 ``Agent.source`` byte – the only network discriminator of L1 actions."""
        return "b" if self.is_testnet else "a"

    @classmethod
    def from_testnet_flag(cls, is_testnet: bool) -> "HyperliquidEnv":
        return cls.TESTNET if is_testnet else cls.MAINNET


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

@unique
class TimeInForce(str, Enum):
    ADD_LIQUIDITY_ONLY  = "Alo"
    IMMEDIATE_OR_CANCEL = "Ioc"
    GOOD_TILL_CANCEL    = "Gtc"


@unique
class Tpsl(str, Enum):
    TAKE_PROFIT = "tp"
    STOP_LOSS   = "sl"


@unique
class Grouping(str, Enum):
    NA           = "na"
    NORMAL_TPSL  = "normalTpsl"
    POSITION_TPSL = "positionTpsl"


# ---------------------------------------------------------------------------
# Shared validator helpers
# ---------------------------------------------------------------------------

def _validate_decimal_string(v: str, field: str = "value") -> str:
    """Reject empty strings and non-parseable decimals."""
    if not v or not v.strip():
        raise ValueError(f"{field} must be a non-empty decimal string")
    try:
        Decimal(v)
    except InvalidOperation:
        raise ValueError(f"{field} '{v}' is not a valid decimal string")
    return v


def _validate_hex(v: str, field: str = "hex") -> str:
    if not _HEX_RE.fullmatch(v):
        raise ValueError(f"{field} '{v}' is not 0x-prefixed hex")
    return v


def _validate_address(v: str, field: str = "address") -> str:
    if not _ADDRESS_RE.fullmatch(v):
        raise ValueError(f"{field} '{v}' is not a 20-byte hex address")
    return v


def format_decimal(value: Union[str, Decimal, int]) -> str:
    """
    Canonical decimal string used on the wire.

    Trailing fractional zeros are dropped ("30000.0" → "30000",
    "0.10" → "0.1"); integers and already-canonical strings pass through.
    The exchange hashes the literal string, so "0.10" and "0.1" would sign
    differently.
    """
    text = str(value).strip()
    if "." not in text:
        return text
    int_part, frac_part = text.split(".", 1)
    frac_part = frac_part.rstrip("0")
    return f"{int_part}.{frac_part}" if frac_part else int_part


# ---------------------------------------------------------------------------
# Typed data (EIP-712)
# ---------------------------------------------------------------------------

class TypedDataField(BaseModel):
    """One ``{name, type}`` entry of a struct definition."""
    name: str
    type: str

    model_config = {"frozen": True}


class TypedDataDomain(BaseModel):
    """
    EIP-712 domain.  Every field is optional; only the present ones take
    part in the domain type and therefore in the domain separator.
    """
    name:              Optional[str] = None
    version:           Optional[str] = None
    chainId:           Optional[int] = None
    verifyingContract: Optional[str] = None
    salt:              Optional[str] = None

    @field_validator("verifyingContract")
    @classmethod
    def validate_contract(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _validate_address(v, "verifyingContract")

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        _validate_hex(v, "salt")
        if len(v) != 66:
            raise ValueError(f"salt must be 32 bytes, got '{v}'")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of the present fields, in canonical domain order."""
        return self.model_dump(exclude_none=True)

    model_config = {"frozen": True}


class Signature(BaseModel):
    """
    ECDSA signature split into its components.

    r, s : 0x-prefixed 32-byte hex strings
    v    : recovery byte as found in the signature (27 or 28 by convention;
           not range-checked here)
    """
    r: str
    s: str
    v: int

    @field_validator("r", "s")
    @classmethod
    def validate_component(cls, v: str) -> str:
        _validate_hex(v, "signature component")
        if len(v) != 66:
            raise ValueError(f"signature component must be 32 bytes, got '{v}'")
        return v.lower()

    def to_dict(self) -> dict[str, Any]:
        return {"r": self.r, "s": self.s, "v": self.v}

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Order wire types
# ---------------------------------------------------------------------------

class LimitOrderType(BaseModel):
    tif: TimeInForce = TimeInForce.GOOD_TILL_CANCEL

    def to_wire(self) -> dict[str, Any]:
        return {"limit": {"tif": self.tif.value}}


class TriggerOrderType(BaseModel):
    """
    Trigger (TP/SL) order.

    is_market  : execute as market once triggered
    trigger_px : trigger price as decimal string
    tpsl       : take-profit or stop-loss
    """
    is_market:  bool
    trigger_px: str
    tpsl:       Tpsl

    @field_validator("trigger_px")
    @classmethod
    def validate_trigger_px(cls, v: str) -> str:
        return _validate_decimal_string(v, "trigger_px")

    def to_wire(self) -> dict[str, Any]:
        return {
            "trigger": {
                "isMarket":  self.is_market,
                "triggerPx": format_decimal(self.trigger_px),
                "tpsl":      self.tpsl.value,
            }
        }


class OrderRequest(BaseModel):
    """
    A single order as placed through the ``order`` L1 action.

    asset       : asset index (perp index, or 10000 + spot index)
    is_buy      : True → buy / long
    price       : limit price as decimal string
    size        : size in base units as decimal string
    reduce_only : can only reduce an existing position
    order_type  : limit (with TIF) or trigger order
    cloid       : optional 16-byte client order id (0x + 32 hex)
    """
    asset:       int
    is_buy:      bool
    price:       str
    size:        str
    reduce_only: bool = False
    order_type:  Union[LimitOrderType, TriggerOrderType] = LimitOrderType()
    cloid:       Optional[str] = None

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"asset must be non-negative, got {v}")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: str) -> str:
        return _validate_decimal_string(v, "price")

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: str) -> str:
        v = _validate_decimal_string(v, "size")
        if Decimal(v) <= 0:
            raise ValueError(f"size must be positive, got '{v}'")
        return v

    @field_validator("cloid")
    @classmethod
    def validate_cloid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        _validate_hex(v, "cloid")
        if len(v) != 34:
            raise ValueError(f"cloid must be 16 bytes, got '{v}'")
        return v.lower()

    def to_wire(self) -> dict[str, Any]:
        """Short-key dict in the key order the exchange hashes (a, b, p, s, r, t, c)."""
        wire: dict[str, Any] = {
            "a": self.asset,
            "b": self.is_buy,
            "p": format_decimal(self.price),
            "s": format_decimal(self.size),
            "r": self.reduce_only,
            "t": self.order_type.to_wire(),
        }
        if self.cloid is not None:
            wire["c"] = self.cloid
        return wire
