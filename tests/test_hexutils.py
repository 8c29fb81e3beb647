"""
tests/test_hexutils.py – Hex conversion and signature splitting.
"""

from __future__ import annotations

import pytest

from hyperliquid_sdk.errors import EncodingError, InvalidFormatError
from hyperliquid_sdk.hexutils import (
    bytes_to_hex,
    hex_to_bytes,
    int_to_bytes,
    join_signature,
    split_signature,
    strip_hex_prefix,
)
from hyperliquid_sdk.types import Signature

R = "0x" + "11" * 32
S = "0x" + "22" * 32


class TestHexToBytes:
    def test_with_prefix(self) -> None:
        assert hex_to_bytes("0x0102ff") == b"\x01\x02\xff"

    def test_without_prefix(self) -> None:
        assert hex_to_bytes("0102ff") == b"\x01\x02\xff"

    def test_upper_case_prefix_and_digits(self) -> None:
        assert hex_to_bytes("0XABCD") == b"\xab\xcd"

    def test_empty(self) -> None:
        assert hex_to_bytes("0x") == b""

    def test_odd_length_rejected(self) -> None:
        with pytest.raises(InvalidFormatError, match="odd"):
            hex_to_bytes("0x123")

    def test_non_hex_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            hex_to_bytes("0xzz")

    def test_whitespace_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            hex_to_bytes("0x01 02")

    @pytest.mark.parametrize("value", ["0xa\n", "0x0a\n", "0x\n"])
    def test_trailing_newline_rejected(self, value: str) -> None:
        with pytest.raises(InvalidFormatError):
            hex_to_bytes(value)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            hex_to_bytes(b"\x01")  # type: ignore[arg-type]

    def test_invalid_format_is_an_encoding_error(self) -> None:
        with pytest.raises(EncodingError):
            hex_to_bytes("0x1")


class TestBytesToHex:
    def test_lowercase_prefixed(self) -> None:
        assert bytes_to_hex(b"\xab\xcd") == "0xabcd"

    def test_empty(self) -> None:
        assert bytes_to_hex(b"") == "0x"

    def test_inverse_of_hex_to_bytes(self) -> None:
        assert hex_to_bytes(bytes_to_hex(b"\x00\x7f\x80\xff")) == b"\x00\x7f\x80\xff"


class TestHelpers:
    def test_strip_prefix(self) -> None:
        assert strip_hex_prefix("0xab") == "ab"
        assert strip_hex_prefix("0Xab") == "ab"
        assert strip_hex_prefix("ab") == "ab"

    def test_int_to_bytes_big_endian(self) -> None:
        assert int_to_bytes(1234567890, 8) == bytes.fromhex("00000000499602d2")


class TestSplitSignature:
    def test_components(self) -> None:
        sig = split_signature(R + S[2:] + "1b")
        assert sig.r == R
        assert sig.s == S
        assert sig.v == 27

    def test_v_28(self) -> None:
        assert split_signature(R + S[2:] + "1c").v == 28

    def test_v_is_not_range_checked(self) -> None:
        assert split_signature(R + S[2:] + "00").v == 0

    def test_without_prefix(self) -> None:
        assert split_signature(R[2:] + S[2:] + "1b").r == R

    def test_upper_case_is_normalised(self) -> None:
        sig = split_signature("0x" + "AB" * 32 + "CD" * 32 + "1B")
        assert sig.r == "0x" + "ab" * 32
        assert sig.s == "0x" + "cd" * 32

    def test_short_signature_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            split_signature(R + S[2:])

    def test_long_signature_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            split_signature(R + S[2:] + "1b00")

    def test_non_hex_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            split_signature("0x" + "zz" * 65)

    def test_trailing_newline_rejected(self) -> None:
        with pytest.raises(InvalidFormatError):
            split_signature(R + S[2:] + "1\n")

    def test_join_is_inverse(self) -> None:
        raw = R + S[2:] + "1c"
        assert join_signature(split_signature(raw)) == raw

    def test_join_from_model(self) -> None:
        assert join_signature(Signature(r=R, s=S, v=27)) == R + S[2:] + "1b"
