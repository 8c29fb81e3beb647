"""
typed_data.py – EIP-712 typed-data encoding and hashing.

Pure functions, no I/O and no state between calls.  Given the same
(domain, types, primaryType, message) they always produce the same digest.

Pipeline
--------
1. encode_type()     – canonical type string, e.g.
                       "Mail(Person from,Person to,string contents)Person(string name,address wallet)"
2. hash_struct()     – keccak256(typeHash || encode_value(field) for each field)
3. hash_typed_data() – keccak256(0x1901 || hash_struct(EIP712Domain) || hash_struct(primaryType))

Type dictionaries are plain mappings of ``{type name: [{"name": ..., "type": ...}, ...]}``.
Field order in the *type definition* is canonical; message values are
looked up by name, so key order in the message does not matter and extra
keys are ignored.

One deliberate leniency: a nested struct field whose value is missing is
encoded as 32 zero bytes rather than rejected.  The exchange's reference
client does the same and signatures must match it byte for byte.

References
----------
- EIP-712 spec : https://eips.ethereum.org/EIPS/eip-712
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

from eth_utils import keccak

from .errors import EncodingError, UnsupportedTypeError
from .hexutils import hex_to_bytes
from .types import TypedDataDomain, TypedDataField

# Type alias: {"Person": [{"name": "name", "type": "string"}, ...], ...}
TypeDictionary = Mapping[str, Sequence[Mapping[str, str]]]

DOMAIN_TYPE = "EIP712Domain"

# Domain fields in canonical order; only those present in a domain are used.
_DOMAIN_FIELD_TYPES: tuple[tuple[str, str], ...] = (
    ("name",              "string"),
    ("version",           "string"),
    ("chainId",           "uint256"),
    ("verifyingContract", "address"),
    ("salt",              "bytes32"),
)

_ARRAY_RE        = re.compile(r"(.*)\[(\d*)\]")
_ARRAY_SUFFIX_RE = re.compile(r"(\[\d*\])+\Z")
_INT_RE          = re.compile(r"(u?)int(\d*)")
_FIXED_BYTES_RE  = re.compile(r"bytes(\d+)")

_ZERO_WORD = bytes(32)


# ---------------------------------------------------------------------------
# Type canonicalisation
# ---------------------------------------------------------------------------

def _fields(types: TypeDictionary, type_name: str) -> list[tuple[str, str]]:
    return [(f["name"], f["type"]) for f in types[type_name]]


def find_type_dependencies(
    primary_type: str,
    types: TypeDictionary,
    found: Optional[set[str]] = None,
) -> set[str]:
    """
    Collect every struct type reachable from ``primary_type`` (inclusive).

    ``found`` is the visited set; it is returned so the call can be used
    standalone.  Array suffixes are stripped before looking a field type up.
    Only acyclic type graphs are supported.
    """
    if found is None:
        found = set()
    if primary_type in found or primary_type not in types:
        return found
    found.add(primary_type)
    for _, field_type in _fields(types, primary_type):
        base_type = _ARRAY_SUFFIX_RE.sub("", field_type)
        if base_type in types:
            find_type_dependencies(base_type, types, found)
    return found


def encode_type(primary_type: str, types: TypeDictionary) -> str:
    """
    Canonical type string: the primary type first, then every referenced
    struct type in lexicographic order, each as ``Name(type1 name1,...)``.
    """
    if primary_type not in types:
        raise UnsupportedTypeError(primary_type)
    deps = find_type_dependencies(primary_type, types)
    deps.discard(primary_type)
    ordered = [primary_type, *sorted(deps)]
    return "".join(
        f"{name}({','.join(f'{t} {n}' for n, t in _fields(types, name))})"
        for name in ordered
    )


def type_hash(primary_type: str, types: TypeDictionary) -> bytes:
    return keccak(text=encode_type(primary_type, types))


# ---------------------------------------------------------------------------
# Value encoding
# ---------------------------------------------------------------------------

def _to_int(value: Any, type_name: str) -> int:
    """Coerce an int / integral float / decimal or 0x-hex string to int."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            if text[:2] in ("0x", "0X") or text[:3] in ("-0x", "-0X"):
                return int(text, 16)
            return int(text, 10)
        except ValueError as exc:
            raise EncodingError(f"{type_name} value {value!r} is not an integer") from exc
    raise EncodingError(f"{type_name} value {value!r} is not an integer")


def _to_bytes(value: Any, type_name: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return hex_to_bytes(value)
    raise EncodingError(f"{type_name} value must be hex or bytes, got {type(value).__name__}")


def _encode_integer(type_name: str, signed: bool, bits_text: str, value: Any) -> bytes:
    bits = int(bits_text) if bits_text else 256
    if bits == 0 or bits > 256 or bits % 8:
        raise EncodingError(f"Unsupported bit size for {type_name}: {bits}")

    modulus = 1 << bits
    wrapped = _to_int(value, type_name) % modulus
    if signed and wrapped >= modulus >> 1:
        wrapped -= modulus
    # Negative values are re-wrapped at 256 bits (two's complement word).
    return (wrapped % (1 << 256)).to_bytes(32, "big")


def encode_value(type_name: str, value: Any, types: TypeDictionary) -> bytes:
    """
    Encode one value of ``type_name`` into its 32-byte EIP-712 word.

    Atomic types are padded to 32 bytes; ``string``, ``bytes``, arrays and
    structs are hashed.
    """
    array_match = _ARRAY_RE.fullmatch(type_name)
    if array_match:
        base_type, length = array_match.groups()
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise EncodingError(f"Expected a list for {type_name}, got {type(value).__name__}")
        if length and len(value) != int(length):
            raise EncodingError(
                f"Invalid length for {type_name}: expected {length}, got {len(value)}"
            )
        return keccak(b"".join(encode_value(base_type, item, types) for item in value))

    if type_name in types:
        if value is None:
            return _ZERO_WORD
        if not isinstance(value, Mapping):
            raise EncodingError(f"Expected a mapping for struct {type_name}, got {type(value).__name__}")
        return hash_struct(type_name, value, types)

    if type_name == "string":
        if not isinstance(value, str):
            raise EncodingError(f"string value must be str, got {type(value).__name__}")
        return keccak(text=value)

    if type_name == "address":
        raw = _to_bytes(value, type_name)
        if len(raw) != 20:
            raise EncodingError(f"address must be 20 bytes, got {len(raw)}: {value!r}")
        return raw.rjust(32, b"\x00")

    int_match = _INT_RE.fullmatch(type_name)
    if int_match:
        unsigned, bits_text = int_match.groups()
        return _encode_integer(type_name, not unsigned, bits_text, value)

    if type_name == "bool":
        return (1 if value else 0).to_bytes(32, "big")

    if type_name == "bytes":
        return keccak(_to_bytes(value, type_name))

    bytes_match = _FIXED_BYTES_RE.fullmatch(type_name)
    if bytes_match:
        size = int(bytes_match.group(1))
        if size == 0 or size > 32:
            raise EncodingError(f"Unsupported bytes size: {size}")
        raw = _to_bytes(value, type_name)
        if len(raw) != size:
            raise EncodingError(f"Invalid length for {type_name}: expected {size}, got {len(raw)}")
        return raw.ljust(32, b"\x00")

    raise UnsupportedTypeError(type_name)


# ---------------------------------------------------------------------------
# Struct / domain hashing
# ---------------------------------------------------------------------------

def hash_struct(primary_type: str, data: Mapping[str, Any], types: TypeDictionary) -> bytes:
    """keccak256(typeHash || encoded fields in type-definition order)."""
    encoded = [type_hash(primary_type, types)]
    encoded.extend(
        encode_value(field_type, data.get(field_name), types)
        for field_name, field_type in _fields(types, primary_type)
    )
    return keccak(b"".join(encoded))


def _domain_to_dict(domain: Union[TypedDataDomain, Mapping[str, Any]]) -> dict[str, Any]:
    if isinstance(domain, TypedDataDomain):
        return domain.to_dict()
    return {k: v for k, v in domain.items() if v is not None}


def build_domain_fields(domain: Union[TypedDataDomain, Mapping[str, Any]]) -> list[dict[str, str]]:
    """EIP712Domain field list for exactly the fields present in ``domain``."""
    present = _domain_to_dict(domain)
    return [
        TypedDataField(name=name, type=field_type).model_dump()
        for name, field_type in _DOMAIN_FIELD_TYPES
        if name in present
    ]


def hash_domain(domain: Union[TypedDataDomain, Mapping[str, Any]]) -> bytes:
    """The domain separator on its own."""
    present = _domain_to_dict(domain)
    return hash_struct(DOMAIN_TYPE, present, {DOMAIN_TYPE: build_domain_fields(present)})


def hash_typed_data(typed_data: Mapping[str, Any]) -> bytes:
    """
    Final EIP-712 signing digest of a full typed-data payload.

    ``typed_data`` has the keys ``domain``, ``types``, ``primaryType`` and
    ``message``.  The EIP712Domain type is derived from the domain's present
    fields; an EIP712Domain entry already in ``types`` takes precedence.
    When ``primaryType`` is ``EIP712Domain`` only the domain is signed.
    """
    domain       = _domain_to_dict(typed_data["domain"])
    primary_type = typed_data["primaryType"]
    types: dict[str, Any] = {DOMAIN_TYPE: build_domain_fields(domain), **typed_data["types"]}

    parts = [b"\x19\x01", hash_struct(DOMAIN_TYPE, domain, types)]
    if primary_type != DOMAIN_TYPE:
        parts.append(hash_struct(primary_type, typed_data.get("message") or {}, types))
    return keccak(b"".join(parts))
