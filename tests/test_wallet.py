"""
tests/test_wallet.py – Wallet capability detection and typed-data signing.

All tests run offline.  Fake wallets stand in for the three supported
shapes; the triple-argument fakes sign with eth_account's own EIP-712
implementation, so agreement with PrivateKeySigner is a cross-check of
typed_data.hash_typed_data.
"""

from __future__ import annotations

from typing import Any

import pytest
from eth_account import Account

from hyperliquid_sdk.errors import InvalidFormatError, UnsupportedWalletError
from hyperliquid_sdk.types import TypedDataDomain
from hyperliquid_sdk.wallet import (
    PrivateKeySigner,
    WalletKind,
    detect_wallet,
    get_wallet_address,
    get_wallet_chain_id,
    sign_typed_data,
)

# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------

# Deterministic test private key (DO NOT use with real funds)
PRIVATE_KEY = "0x822e9959e022b78423eb653a62ea0020cd283e71a2a8133a6ff2aeffaf373cff"
ADDRESS     = Account.from_key(PRIVATE_KEY).address

DOMAIN = TypedDataDomain(
    name="HyperliquidSignTransaction",
    version="1",
    chainId=421614,
    verifyingContract="0x0000000000000000000000000000000000000000",
)

TYPES = {
    "HyperliquidTransaction:UsdSend": [
        {"name": "hyperliquidChain", "type": "string"},
        {"name": "destination",      "type": "string"},
        {"name": "amount",           "type": "string"},
        {"name": "time",             "type": "uint64"},
    ],
}
PRIMARY_TYPE = "HyperliquidTransaction:UsdSend"

MESSAGE = {
    "hyperliquidChain": "Mainnet",
    "destination":      "0x1234567890123456789012345678901234567890",
    "amount":           "1000",
    "time":             1234567890,
}


def _eth_account_sign(domain: dict, types: dict, message: dict) -> str:
    signed = Account.sign_typed_data(
        PRIVATE_KEY,
        domain_data=domain,
        message_types=types,
        message_data=message,
    )
    return "0x" + bytes(signed.signature).hex()


class SingleArgWallet:
    def __init__(self) -> None:
        self.address = ADDRESS
        self.calls: list[dict[str, Any]] = []
        self._signer = PrivateKeySigner(PRIVATE_KEY)

    def sign_typed_data(self, typed_data: dict[str, Any], options: Any = None) -> str:
        self.calls.append(typed_data)
        return self._signer.sign_typed_data(typed_data)


class AsyncSingleArgWallet:
    """JSON-RPC style: async methods, no address attribute."""

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> bytes:
        return bytes.fromhex(PrivateKeySigner(PRIVATE_KEY).sign_typed_data(typed_data)[2:])

    async def get_addresses(self) -> list[str]:
        return [ADDRESS]

    async def get_chain_id(self) -> int:
        return 42161


class TripleArgWallet:
    def __init__(self, provider: Any = None) -> None:
        self.provider = provider
        self.calls: list[tuple[dict, dict, dict]] = []

    async def sign_typed_data(self, domain: dict, types: dict, message: dict) -> str:
        self.calls.append((domain, types, message))
        return _eth_account_sign(domain, types, message)

    async def get_address(self) -> str:
        return ADDRESS


class LegacyTripleArgWallet:
    provider = None

    def _sign_typed_data(self, domain: dict, types: dict, message: dict) -> str:
        return _eth_account_sign(domain, types, message)

    def get_address(self) -> str:
        return ADDRESS


class _Network:
    chain_id = 421614


class _Provider:
    async def get_network(self) -> _Network:
        return _Network()


class FailingWallet:
    def sign_typed_data(self, typed_data: dict[str, Any]) -> str:
        raise RuntimeError("user rejected")


class BadSignatureWallet:
    def sign_typed_data(self, typed_data: dict[str, Any]) -> str:
        return "0x1234"


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetectWallet:
    def test_single_arg(self) -> None:
        assert detect_wallet(SingleArgWallet()) is WalletKind.SINGLE_ARG

    def test_single_arg_async(self) -> None:
        assert detect_wallet(AsyncSingleArgWallet()) is WalletKind.SINGLE_ARG

    def test_private_key_signer_is_single_arg(self) -> None:
        assert detect_wallet(PrivateKeySigner(PRIVATE_KEY)) is WalletKind.SINGLE_ARG

    def test_eth_account_local_account_not_recognised(self) -> None:
        assert detect_wallet(Account.from_key(PRIVATE_KEY)) is None

    def test_triple_arg(self) -> None:
        assert detect_wallet(TripleArgWallet()) is WalletKind.TRIPLE_ARG

    def test_legacy_triple_arg(self) -> None:
        assert detect_wallet(LegacyTripleArgWallet()) is WalletKind.TRIPLE_ARG_LEGACY

    def test_single_arg_wins_over_legacy(self) -> None:
        class Both(SingleArgWallet, LegacyTripleArgWallet):
            pass
        assert detect_wallet(Both()) is WalletKind.SINGLE_ARG

    def test_two_arg_method_not_recognised(self) -> None:
        class TwoArgs:
            def sign_typed_data(self, domain: dict, message: dict) -> str:
                return ""
        assert detect_wallet(TwoArgs()) is None

    def test_non_callable_attribute(self) -> None:
        class NotCallable:
            sign_typed_data = "nope"
        assert detect_wallet(NotCallable()) is None

    def test_plain_object(self) -> None:
        assert detect_wallet(object()) is None

    def test_none(self) -> None:
        assert detect_wallet(None) is None


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

class TestSignTypedData:
    @pytest.mark.asyncio
    async def test_single_arg_payload_shape(self) -> None:
        wallet = SingleArgWallet()
        await sign_typed_data(wallet, DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)

        payload = wallet.calls[0]
        assert payload["primaryType"] == PRIMARY_TYPE
        assert payload["message"] == MESSAGE
        assert payload["domain"]["chainId"] == 421614
        assert list(payload["types"]) == ["EIP712Domain", PRIMARY_TYPE]
        assert [f["name"] for f in payload["types"]["EIP712Domain"]] == [
            "name", "version", "chainId", "verifyingContract",
        ]

    @pytest.mark.asyncio
    async def test_triple_arg_payload_excludes_domain_type(self) -> None:
        wallet = TripleArgWallet()
        await sign_typed_data(wallet, DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)

        domain, types, message = wallet.calls[0]
        assert domain == DOMAIN.to_dict()
        assert "EIP712Domain" not in types
        assert message == MESSAGE

    @pytest.mark.asyncio
    async def test_all_shapes_produce_the_same_signature(self) -> None:
        results = [
            await sign_typed_data(wallet, DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)
            for wallet in (
                SingleArgWallet(),
                AsyncSingleArgWallet(),
                TripleArgWallet(),
                LegacyTripleArgWallet(),
            )
        ]
        assert all(sig == results[0] for sig in results)

    @pytest.mark.asyncio
    async def test_signature_components(self) -> None:
        sig = await sign_typed_data(PrivateKeySigner(PRIVATE_KEY), DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)
        assert len(sig.r) == 66 and sig.r.startswith("0x")
        assert len(sig.s) == 66 and sig.s.startswith("0x")
        assert sig.v in (27, 28)

    @pytest.mark.asyncio
    async def test_dict_domain_accepted(self) -> None:
        wallet = PrivateKeySigner(PRIVATE_KEY)
        from_model = await sign_typed_data(wallet, DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)
        from_dict  = await sign_typed_data(wallet, DOMAIN.to_dict(), TYPES, PRIMARY_TYPE, MESSAGE)
        assert from_model == from_dict

    @pytest.mark.asyncio
    async def test_unsupported_wallet(self) -> None:
        with pytest.raises(UnsupportedWalletError):
            await sign_typed_data(object(), DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)

    @pytest.mark.asyncio
    async def test_local_account_error_points_to_private_key_signer(self) -> None:
        with pytest.raises(UnsupportedWalletError, match="PrivateKeySigner"):
            await sign_typed_data(Account.from_key(PRIVATE_KEY), DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)

    @pytest.mark.asyncio
    async def test_wallet_error_propagates_unwrapped(self) -> None:
        with pytest.raises(RuntimeError, match="user rejected"):
            await sign_typed_data(FailingWallet(), DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)

    @pytest.mark.asyncio
    async def test_malformed_wallet_signature(self) -> None:
        with pytest.raises(InvalidFormatError):
            await sign_typed_data(BadSignatureWallet(), DOMAIN, TYPES, PRIMARY_TYPE, MESSAGE)


# ---------------------------------------------------------------------------
# PrivateKeySigner
# ---------------------------------------------------------------------------

class TestPrivateKeySigner:
    def test_address(self) -> None:
        assert PrivateKeySigner(PRIVATE_KEY).address == ADDRESS

    def test_key_without_prefix(self) -> None:
        assert PrivateKeySigner(PRIVATE_KEY[2:]).address == ADDRESS

    def test_matches_eth_account_full_message(self) -> None:
        typed = {
            "domain":      DOMAIN.to_dict(),
            "types":       {
                "EIP712Domain": [
                    {"name": "name",              "type": "string"},
                    {"name": "version",           "type": "string"},
                    {"name": "chainId",           "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                **TYPES,
            },
            "primaryType": PRIMARY_TYPE,
            "message":     MESSAGE,
        }
        expected = Account.sign_typed_data(PRIVATE_KEY, full_message=typed)
        assert PrivateKeySigner(PRIVATE_KEY).sign_typed_data(typed) == "0x" + bytes(expected.signature).hex()

    def test_deterministic(self) -> None:
        typed = {"domain": DOMAIN, "types": TYPES, "primaryType": PRIMARY_TYPE, "message": MESSAGE}
        signer = PrivateKeySigner(PRIVATE_KEY)
        assert signer.sign_typed_data(typed) == signer.sign_typed_data(typed)

    def test_repr_hides_key(self) -> None:
        assert PRIVATE_KEY[2:] not in repr(PrivateKeySigner(PRIVATE_KEY))


# ---------------------------------------------------------------------------
# Wallet helpers
# ---------------------------------------------------------------------------

class TestWalletAddress:
    @pytest.mark.asyncio
    async def test_address_attribute_lowercased(self) -> None:
        assert await get_wallet_address(SingleArgWallet()) == ADDRESS.lower()

    @pytest.mark.asyncio
    async def test_get_addresses(self) -> None:
        assert await get_wallet_address(AsyncSingleArgWallet()) == ADDRESS.lower()

    @pytest.mark.asyncio
    async def test_get_address(self) -> None:
        assert await get_wallet_address(TripleArgWallet()) == ADDRESS.lower()
        assert await get_wallet_address(LegacyTripleArgWallet()) == ADDRESS.lower()

    @pytest.mark.asyncio
    async def test_unknown_wallet(self) -> None:
        with pytest.raises(UnsupportedWalletError):
            await get_wallet_address(object())


class TestWalletChainId:
    @pytest.mark.asyncio
    async def test_get_chain_id(self) -> None:
        assert await get_wallet_chain_id(AsyncSingleArgWallet()) == "0xa4b1"

    @pytest.mark.asyncio
    async def test_provider_network(self) -> None:
        assert await get_wallet_chain_id(TripleArgWallet(provider=_Provider())) == "0x66eee"

    @pytest.mark.asyncio
    async def test_default_without_provider(self) -> None:
        assert await get_wallet_chain_id(TripleArgWallet()) == "0x1"

    @pytest.mark.asyncio
    async def test_default_for_local_key(self) -> None:
        assert await get_wallet_chain_id(PrivateKeySigner(PRIVATE_KEY)) == "0x1"
