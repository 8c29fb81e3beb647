"""
signing.py – Action hashing and EIP-712 signing for the Hyperliquid exchange.

Hyperliquid accepts two families of signed actions.

L1 actions (orders, cancels, leverage, ...)
-------------------------------------------
1. The action is msgpack-encoded (key order matters) and followed by the
   nonce, a vault marker and an optional expiry.  keccak256 of those bytes
   is the *action hash*.
2. The hash is wrapped in a phantom ``Agent{source, connectionId}`` struct
   and signed under the fixed ``Exchange`` domain (chain id 1337).  The
   network is encoded only in ``source``: "a" for mainnet, "b" for testnet.

User-signed actions (transfers, withdrawals, agent approval, ...)
-----------------------------------------------------------------
The action itself is the EIP-712 message, signed under the
``HyperliquidSignTransaction`` domain with the chain id taken from the
action's ``signatureChainId``.  The network is carried by the action's own
``hyperliquidChain`` field.

NonceProvider
-------------
Every signed action carries a nonce: a millisecond timestamp the exchange
requires to be unique per signer.  ExchangeClient draws nonces from
exchange.NonceManager by default; anything with the NonceProvider shape
can replace it::

    class SeqNonce:
        def __init__(self, start):
            self._n = start
        def __call__(self) -> int:
            self._n += 1
            return self._n

    ExchangeClient(wallet, transport, nonce_provider=SeqNonce(1_700_000_000_000))

References
----------
- EIP-712 spec       : https://eips.ethereum.org/EIPS/eip-712
- Hyperliquid signing : https://hyperliquid.gitbook.io/hyperliquid-docs (exchange endpoint)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import msgpack
from eth_utils import keccak

from .hexutils import bytes_to_hex, hex_to_bytes, int_to_bytes
from .types import ZERO_ADDRESS, HyperliquidEnv, Signature, TypedDataDomain
from .wallet import sign_typed_data

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

# Callable with no args that returns a millisecond nonce
NonceProvider = Callable[[], int]

Action = Union[Mapping[str, Any], Sequence[Any]]


# ---------------------------------------------------------------------------
# Hyperliquid EIP-712 definitions
# ---------------------------------------------------------------------------

L1_DOMAIN = TypedDataDomain(
    name="Exchange",
    version="1",
    chainId=1337,
    verifyingContract=ZERO_ADDRESS,
)

_AGENT_TYPES: dict[str, Any] = {
    "Agent": [
        {"name": "source",       "type": "string"},
        {"name": "connectionId", "type": "bytes32"},
    ],
}

USER_SIGNED_DOMAIN_NAME = "HyperliquidSignTransaction"

_MULTI_SIG_PRIMARY_TYPE = "HyperliquidTransaction:SendMultiSig"

# Field lists of the user-signed actions, keyed by action ``type``.
# Field order is part of the type hash and must match the exchange.
USER_SIGNED_ACTION_TYPES: dict[str, dict[str, list[dict[str, str]]]] = {
    "approveAgent": {
        "HyperliquidTransaction:ApproveAgent": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "agentAddress",     "type": "address"},
            {"name": "agentName",        "type": "string"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "approveBuilderFee": {
        "HyperliquidTransaction:ApproveBuilderFee": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "maxFeeRate",       "type": "string"},
            {"name": "builder",          "type": "address"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "cDeposit": {
        "HyperliquidTransaction:CDeposit": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "wei",              "type": "uint64"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "cWithdraw": {
        "HyperliquidTransaction:CWithdraw": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "wei",              "type": "uint64"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "convertToMultiSigUser": {
        "HyperliquidTransaction:ConvertToMultiSigUser": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "signers",          "type": "string"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "multiSig": {
        _MULTI_SIG_PRIMARY_TYPE: [
            {"name": "hyperliquidChain",   "type": "string"},
            {"name": "multiSigActionHash", "type": "bytes32"},
            {"name": "nonce",              "type": "uint64"},
        ],
    },
    "spotSend": {
        "HyperliquidTransaction:SpotSend": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "destination",      "type": "string"},
            {"name": "token",            "type": "string"},
            {"name": "amount",           "type": "string"},
            {"name": "time",             "type": "uint64"},
        ],
    },
    "tokenDelegate": {
        "HyperliquidTransaction:TokenDelegate": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "validator",        "type": "address"},
            {"name": "wei",              "type": "uint64"},
            {"name": "isUndelegate",     "type": "bool"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "usdClassTransfer": {
        "HyperliquidTransaction:UsdClassTransfer": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "amount",           "type": "string"},
            {"name": "toPerp",           "type": "bool"},
            {"name": "nonce",            "type": "uint64"},
        ],
    },
    "usdSend": {
        "HyperliquidTransaction:UsdSend": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "destination",      "type": "string"},
            {"name": "amount",           "type": "string"},
            {"name": "time",             "type": "uint64"},
        ],
    },
    "withdraw3": {
        "HyperliquidTransaction:Withdraw": [
            {"name": "hyperliquidChain", "type": "string"},
            {"name": "destination",      "type": "string"},
            {"name": "amount",           "type": "string"},
            {"name": "time",             "type": "uint64"},
        ],
    },
}


def _user_signed_domain(signature_chain_id: str) -> TypedDataDomain:
    return TypedDataDomain(
        name=USER_SIGNED_DOMAIN_NAME,
        version="1",
        chainId=int(signature_chain_id, 16),
        verifyingContract=ZERO_ADDRESS,
    )


# ---------------------------------------------------------------------------
# Action hash
# ---------------------------------------------------------------------------

def _normalize_action(value: Any) -> Any:
    """
    Recursively drop mapping entries whose value is None and turn integral
    floats into ints, so ``5.0`` packs the same as ``5``.
    """
    if isinstance(value, Mapping):
        return {k: _normalize_action(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_normalize_action(v) for v in value]
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def create_l1_action_hash(
    action: Action,
    nonce: int,
    vault_address: Optional[str] = None,
    expires_after: Optional[int] = None,
) -> str:
    """
    keccak256 of the msgpack-encoded action plus nonce, vault and expiry.

    Layout of the hashed bytes::

        msgpack(action) || uint64be(nonce)
          || 0x00                          (no vault)
           | 0x01 || vault[20]             (vault)
          || 0x00 || uint64be(expiresAfter)  (only if expires_after is given)

    Parameters
    ----------
    action        : Action mapping (or list); key order is significant
    nonce         : Millisecond timestamp nonce
    vault_address : Vault or sub-account the action is executed for
    expires_after : Expiry timestamp in ms

    Returns
    -------
    0x-prefixed 32-byte hex hash.
    """
    data = msgpack.packb(_normalize_action(action))
    data += int_to_bytes(nonce, 8)
    if vault_address is None:
        data += b"\x00"
    else:
        data += b"\x01" + hex_to_bytes(vault_address)
    if expires_after is not None:
        data += b"\x00" + int_to_bytes(expires_after, 8)
    return bytes_to_hex(keccak(data))


# ---------------------------------------------------------------------------
# Public signing API
# ---------------------------------------------------------------------------

async def sign_l1_action(
    wallet: Any,
    action: Action,
    nonce: int,
    is_testnet: bool = False,
    vault_address: Optional[str] = None,
    expires_after: Optional[int] = None,
) -> Signature:
    """
    Sign an L1 action.

    Parameters
    ----------
    wallet        : Any supported wallet (see wallet.py)
    action        : Action to sign; key order is significant
    nonce         : Millisecond timestamp nonce, sent alongside the action
    is_testnet    : Selects the ``source`` byte ("b" on testnet, "a" otherwise)
    vault_address : Optional vault / sub-account address
    expires_after : Optional expiry timestamp in ms

    Notes
    -----
    - Never reuse a nonce on retry.
    - The same action signed on mainnet and testnet yields different
      signatures; nothing else about the payload changes.
    """
    action_hash = create_l1_action_hash(action, nonce, vault_address, expires_after)
    env = HyperliquidEnv.from_testnet_flag(is_testnet)
    logger.debug("L1 action hash %s (nonce=%d, %s)", action_hash, nonce, env.value)
    return await sign_typed_data(
        wallet,
        domain=L1_DOMAIN,
        types=_AGENT_TYPES,
        primary_type="Agent",
        message={"source": env.source, "connectionId": action_hash},
    )


async def sign_user_signed_action(
    wallet: Any,
    action: Mapping[str, Any],
    types: Mapping[str, Sequence[Mapping[str, str]]],
) -> Signature:
    """
    Sign a user-signed action; the action itself is the EIP-712 message.

    ``types`` holds a single entry ``{primaryType: fields}`` (see
    USER_SIGNED_ACTION_TYPES).  The action must carry ``signatureChainId``
    and ``hyperliquidChain``; hex values should already be lower-case.

    Adjustments made before signing:

    - approveAgent without an agent name signs ``agentName=""``.
    - An action carrying both ``payloadMultiSigUser`` and ``outerSigner``
      (a signature collected for a multi-sig payload) gets those two
      address fields inserted right after the first field of the type.
    - Keys not declared in the primary type are dropped from the message.
    """
    primary_type = next(iter(types))
    fields = list(types[primary_type])

    if action.get("type") == "approveAgent" and not action.get("agentName"):
        action = {**action, "agentName": ""}

    if "payloadMultiSigUser" in action and "outerSigner" in action:
        fields = [
            fields[0],
            {"name": "payloadMultiSigUser", "type": "address"},
            {"name": "outerSigner",         "type": "address"},
            *fields[1:],
        ]
    signed_types = {**types, primary_type: fields}

    declared = {f["name"] for f in fields}
    message = {k: v for k, v in action.items() if k in declared}

    logger.debug("Signing user action %s", primary_type)
    return await sign_typed_data(
        wallet,
        domain=_user_signed_domain(action["signatureChainId"]),
        types=signed_types,
        primary_type=primary_type,
        message=message,
    )


async def sign_multi_sig_action(
    wallet: Any,
    action: Mapping[str, Any],
    nonce: int,
    is_testnet: bool = False,
    vault_address: Optional[str] = None,
    expires_after: Optional[int] = None,
) -> Signature:
    """
    Sign the outer envelope of a multi-sig action.

    ``action`` is the ``multiSig`` action (signatureChainId, signatures,
    payload).  Its ``type`` key, if present, is left out of the hash; the
    rest is hashed like an L1 action and signed as SendMultiSig under the
    user-signed domain.
    """
    inner = {k: v for k, v in action.items() if k != "type"}
    action_hash = create_l1_action_hash(inner, nonce, vault_address, expires_after)
    env = HyperliquidEnv.from_testnet_flag(is_testnet)
    logger.debug("Multi-sig action hash %s (nonce=%d, %s)", action_hash, nonce, env.value)
    return await sign_typed_data(
        wallet,
        domain=_user_signed_domain(action["signatureChainId"]),
        types=USER_SIGNED_ACTION_TYPES["multiSig"],
        primary_type=_MULTI_SIG_PRIMARY_TYPE,
        message={
            "hyperliquidChain":   env.chain_label,
            "multiSigActionHash": action_hash,
            "nonce":              nonce,
        },
    )
