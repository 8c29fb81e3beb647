"""
Hyperliquid SDK – Python SDK for the Hyperliquid exchange.

Provides:
  - EIP-712 typed-data hashing          (typed_data.py → hash_typed_data)
  - Wallet adapters                     (wallet.py     → sign_typed_data, PrivateKeySigner)
  - Action hashing and signing          (signing.py    → sign_l1_action, sign_user_signed_action)
  - Typed Pydantic v2 models            (types.py)
  - HTTP transports (sync and async)    (rest.py       → HttpTransport, AsyncHttpTransport)
  - Async WebSocket transport           (ws.py         → WebSocketTransport)
  - Info and exchange clients           (info.py, exchange.py)
  - Unified façade                      (client.py     → HyperliquidClient)

Quickstart
----------
    import asyncio
    from hyperliquid_sdk import HyperliquidClient, HyperliquidEnv, PrivateKeySigner

    async def main() -> None:
        async with HyperliquidClient(PrivateKeySigner("0x..."), env=HyperliquidEnv.TESTNET) as client:
            print(await client.info.all_mids())
            await client.exchange.schedule_cancel()

    asyncio.run(main())
"""

from .types import (
    # Environment
    HyperliquidEnv,
    ZERO_ADDRESS,
    # Enums
    TimeInForce,
    Tpsl,
    Grouping,
    # Typed data
    TypedDataField,
    TypedDataDomain,
    Signature,
    # Orders
    LimitOrderType,
    TriggerOrderType,
    OrderRequest,
    format_decimal,
)
from .errors import (
    HyperliquidError,
    EncodingError,
    InvalidFormatError,
    UnsupportedTypeError,
    UnsupportedWalletError,
    TransportError,
)
from .hexutils import hex_to_bytes, bytes_to_hex, split_signature, join_signature
from .typed_data import (
    encode_value,
    encode_type,
    find_type_dependencies,
    hash_struct,
    hash_typed_data,
    build_domain_fields,
)
from .wallet import (
    WalletKind,
    detect_wallet,
    sign_typed_data,
    get_wallet_address,
    get_wallet_chain_id,
    PrivateKeySigner,
)
from .signing import (
    create_l1_action_hash,
    sign_l1_action,
    sign_user_signed_action,
    sign_multi_sig_action,
    USER_SIGNED_ACTION_TYPES,
    NonceProvider,
)
from .rest import HttpTransport, AsyncHttpTransport, HttpRequestError
from .ws import WebSocketTransport, WebSocketRequestError
from .info import InfoClient, AsyncInfoClient
from .exchange import ExchangeClient, NonceManager, ApiRequestError, assert_success_response
from .client import HyperliquidClient

__all__ = [
    # Environment
    "HyperliquidEnv",
    "ZERO_ADDRESS",
    # Enums
    "TimeInForce",
    "Tpsl",
    "Grouping",
    # Typed data
    "TypedDataField",
    "TypedDataDomain",
    "Signature",
    # Orders
    "LimitOrderType",
    "TriggerOrderType",
    "OrderRequest",
    "format_decimal",
    # Errors
    "HyperliquidError",
    "EncodingError",
    "InvalidFormatError",
    "UnsupportedTypeError",
    "UnsupportedWalletError",
    "TransportError",
    # Hex
    "hex_to_bytes",
    "bytes_to_hex",
    "split_signature",
    "join_signature",
    # EIP-712
    "encode_value",
    "encode_type",
    "find_type_dependencies",
    "hash_struct",
    "hash_typed_data",
    "build_domain_fields",
    # Wallets
    "WalletKind",
    "detect_wallet",
    "sign_typed_data",
    "get_wallet_address",
    "get_wallet_chain_id",
    "PrivateKeySigner",
    # Signing
    "create_l1_action_hash",
    "sign_l1_action",
    "sign_user_signed_action",
    "sign_multi_sig_action",
    "USER_SIGNED_ACTION_TYPES",
    "NonceProvider",
    # Transports
    "HttpTransport",
    "AsyncHttpTransport",
    "HttpRequestError",
    "WebSocketTransport",
    "WebSocketRequestError",
    # Clients
    "InfoClient",
    "AsyncInfoClient",
    "ExchangeClient",
    "NonceManager",
    "ApiRequestError",
    "assert_success_response",
    # Unified façade
    "HyperliquidClient",
]

__version__ = "0.1.0"
