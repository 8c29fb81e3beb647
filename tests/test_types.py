"""
tests/test_types.py – Pydantic v2 model validation tests.

All tests run offline.  They verify that:
  1. Valid data constructs cleanly.
  2. Invalid data raises ValidationError with a meaningful message.
  3. OrderRequest.to_wire emits the short-key dict in hashing order.
  4. HyperliquidEnv exposes the per-network constants.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from hyperliquid_sdk.types import (
    HyperliquidEnv,
    LimitOrderType,
    OrderRequest,
    Signature,
    TimeInForce,
    Tpsl,
    TriggerOrderType,
    TypedDataDomain,
    format_decimal,
)

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

R = "0x" + "ab" * 32
S = "0x" + "cd" * 32


def _order(**kwargs) -> OrderRequest:
    defaults = dict(asset=0, is_buy=True, price="30000", size="0.1")
    return OrderRequest(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

class TestHyperliquidEnv:
    def test_mainnet(self) -> None:
        env = HyperliquidEnv.MAINNET
        assert env.api_url == "https://api.hyperliquid.xyz"
        assert env.ws_url == "wss://api.hyperliquid.xyz/ws"
        assert env.chain_label == "Mainnet"
        assert env.source == "a"
        assert not env.is_testnet

    def test_testnet(self) -> None:
        env = HyperliquidEnv.TESTNET
        assert env.api_url == "https://api.hyperliquid-testnet.xyz"
        assert env.rpc_url == "https://rpc.hyperliquid-testnet.xyz"
        assert env.chain_label == "Testnet"
        assert env.source == "b"
        assert env.is_testnet

    def test_from_testnet_flag(self) -> None:
        assert HyperliquidEnv.from_testnet_flag(True) is HyperliquidEnv.TESTNET
        assert HyperliquidEnv.from_testnet_flag(False) is HyperliquidEnv.MAINNET

    def test_from_value(self) -> None:
        assert HyperliquidEnv("testnet") is HyperliquidEnv.TESTNET


# ---------------------------------------------------------------------------
# format_decimal
# ---------------------------------------------------------------------------

class TestFormatDecimal:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("30000",    "30000"),
            ("30000.0",  "30000"),
            ("0.10",     "0.1"),
            ("1.2300",   "1.23"),
            (" 5.50 ",   "5.5"),
            (100,        "100"),
            (Decimal("2.500"), "2.5"),
        ],
    )
    def test_trailing_zeros_dropped(self, value, expected: str) -> None:
        assert format_decimal(value) == expected

    def test_integer_zeros_kept(self) -> None:
        assert format_decimal("1000") == "1000"


# ---------------------------------------------------------------------------
# Typed data models
# ---------------------------------------------------------------------------

class TestTypedDataDomain:
    def test_to_dict_skips_absent_fields(self) -> None:
        domain = TypedDataDomain(name="Exchange", chainId=1337)
        assert domain.to_dict() == {"name": "Exchange", "chainId": 1337}

    def test_to_dict_canonical_order(self) -> None:
        domain = TypedDataDomain(
            salt="0x" + "00" * 32,
            verifyingContract="0x" + "11" * 20,
            chainId=1,
            version="1",
            name="X",
        )
        assert list(domain.to_dict()) == ["name", "version", "chainId", "verifyingContract", "salt"]

    def test_invalid_contract(self) -> None:
        with pytest.raises(ValidationError, match="verifyingContract"):
            TypedDataDomain(verifyingContract="0x1234")

    def test_verifying_contract_trailing_newline_rejected(self) -> None:
        with pytest.raises(ValidationError, match="verifyingContract"):
            TypedDataDomain(verifyingContract="0x" + "11" * 20 + "\n")

    def test_short_salt(self) -> None:
        with pytest.raises(ValidationError, match="salt"):
            TypedDataDomain(salt="0x1234")

    def test_frozen(self) -> None:
        domain = TypedDataDomain(name="Exchange")
        with pytest.raises(ValidationError):
            domain.name = "Other"  # type: ignore[misc]


class TestSignature:
    def test_valid(self) -> None:
        sig = Signature(r=R, s=S, v=27)
        assert sig.to_dict() == {"r": R, "s": S, "v": 27}

    def test_components_lowercased(self) -> None:
        sig = Signature(r=R.upper().replace("0X", "0x"), s=S, v=28)
        assert sig.r == R

    def test_short_component(self) -> None:
        with pytest.raises(ValidationError, match="32 bytes"):
            Signature(r="0x1234", s=S, v=27)

    def test_non_hex_component(self) -> None:
        with pytest.raises(ValidationError, match="hex"):
            Signature(r="0x" + "zz" * 32, s=S, v=27)

    def test_equality(self) -> None:
        assert Signature(r=R, s=S, v=27) == Signature(r=R, s=S, v=27)
        assert Signature(r=R, s=S, v=27) != Signature(r=R, s=S, v=28)


# ---------------------------------------------------------------------------
# OrderRequest validation
# ---------------------------------------------------------------------------

class TestOrderRequestValidation:
    def test_valid(self) -> None:
        order = _order()
        assert order.reduce_only is False
        assert isinstance(order.order_type, LimitOrderType)

    def test_negative_asset(self) -> None:
        with pytest.raises(ValidationError, match="asset"):
            _order(asset=-1)

    def test_empty_price(self) -> None:
        with pytest.raises(ValidationError, match="price"):
            _order(price="")

    def test_non_numeric_size(self) -> None:
        with pytest.raises(ValidationError, match="size"):
            _order(size="abc")

    def test_zero_size(self) -> None:
        with pytest.raises(ValidationError, match="positive"):
            _order(size="0")

    def test_bad_cloid_length(self) -> None:
        with pytest.raises(ValidationError, match="16 bytes"):
            _order(cloid="0x1234")

    def test_cloid_lowercased(self) -> None:
        cloid = "0x" + "AB" * 16
        assert _order(cloid=cloid).cloid == cloid.lower()

    def test_invalid_trigger_price(self) -> None:
        with pytest.raises(ValidationError, match="trigger_px"):
            TriggerOrderType(is_market=True, trigger_px="", tpsl=Tpsl.STOP_LOSS)


class TestOrderToWire:
    def test_limit_order(self) -> None:
        wire = _order(price="30000.0", size="0.10").to_wire()
        assert wire == {
            "a": 0,
            "b": True,
            "p": "30000",
            "s": "0.1",
            "r": False,
            "t": {"limit": {"tif": "Gtc"}},
        }

    def test_key_order(self) -> None:
        wire = _order(cloid="0x" + "00" * 16).to_wire()
        assert list(wire) == ["a", "b", "p", "s", "r", "t", "c"]

    def test_cloid_omitted_when_absent(self) -> None:
        assert "c" not in _order().to_wire()

    def test_time_in_force(self) -> None:
        wire = _order(order_type=LimitOrderType(tif=TimeInForce.IMMEDIATE_OR_CANCEL)).to_wire()
        assert wire["t"] == {"limit": {"tif": "Ioc"}}

    def test_trigger_order(self) -> None:
        trigger = TriggerOrderType(is_market=False, trigger_px="29000.50", tpsl=Tpsl.TAKE_PROFIT)
        wire = _order(order_type=trigger).to_wire()
        assert wire["t"] == {"trigger": {"isMarket": False, "triggerPx": "29000.5", "tpsl": "tp"}}
        assert list(wire["t"]["trigger"]) == ["isMarket", "triggerPx", "tpsl"]
