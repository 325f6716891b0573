"""Shared validation helpers for Neo MCP tools.

Every validator is a pure function: it returns the normalized value or raises
exactly one ValidationError naming the offending field. None of them contact
the network.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Union

from neo_mcp.config import NeoNetwork
from neo_mcp.errors import ValidationError

# Neo N3 addresses are Base58, 34 characters, prefixed with "N".
ADDRESS_REGEX = re.compile(r"^N[1-9A-HJ-NP-Za-km-z]{33}$")
HEX_REGEX = re.compile(r"^[0-9a-fA-F]+$")
AMOUNT_REGEX = re.compile(r"^[0-9]+(\.[0-9]+)?$")
HEIGHT_REGEX = re.compile(r"^[0-9]+$")
OPERATION_REGEX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# Compressed-key WIF (52 chars, K or L) and NEP-2 encrypted keys (58 chars, "6P").
WIF_REGEX = re.compile(r"^[KL][1-9A-HJ-NP-Za-km-z]{51}$")
NEP2_REGEX = re.compile(r"^6P[1-9A-HJ-NP-Za-km-z]{56}$")
PRIVATE_KEY_REGEX = re.compile(r"^[0-9a-fA-F]{64}$")

HASH_LENGTH = 64
SCRIPT_HASH_LENGTH = 40
MIN_PASSWORD_LENGTH = 8
MAX_CONTRACT_ARGS = 16


def strip_hex_prefix(value: str) -> str:
    """Drop a leading ``0x``/``0X`` if present."""
    if value[:2].lower() == "0x":
        return value[2:]
    return value


def is_valid_neo_address(address: Optional[str]) -> bool:
    """Basic format validation for Neo N3 addresses."""
    if not address or not isinstance(address, str):
        return False
    return bool(ADDRESS_REGEX.fullmatch(address))


def validate_address(value: Any, *, field: str = "address") -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Address must be a non-empty string.", field=field)
    if not is_valid_neo_address(value):
        raise ValidationError(f"Invalid Neo N3 address format: {value}", field=field)
    return value


def _validate_hex(value: Any, *, length: int, label: str, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{label} must be a non-empty string.", field=field)
    clean = strip_hex_prefix(value)
    if len(clean) != length:
        raise ValidationError(
            f"Invalid {label.lower()} length: {value}. Expected {length} hex characters (without 0x prefix).",
            field=field,
        )
    if not HEX_REGEX.fullmatch(clean):
        raise ValidationError(f"Invalid {label.lower()} format (not hexadecimal): {value}", field=field)
    return value


def validate_hash(value: Any, *, field: str = "txid") -> str:
    """Validate a 64-hex transaction/block hash; the caller's form is echoed back."""
    return _validate_hex(value, length=HASH_LENGTH, label="Hash", field=field)


def validate_script_hash(value: Any, *, field: str = "scriptHash") -> str:
    return _validate_hex(value, length=SCRIPT_HASH_LENGTH, label="Script hash", field=field)


def validate_block_id(value: Any, *, field: str = "hashOrHeight") -> Union[str, int]:
    """Accept a block hash or a non-negative height (int or digit string)."""
    if isinstance(value, bool):
        raise ValidationError("Block height must be an integer.", field=field)
    if isinstance(value, int):
        if value < 0:
            raise ValidationError("Block height must be non-negative.", field=field)
        return value
    if isinstance(value, str) and HEIGHT_REGEX.fullmatch(value):
        return int(value)
    return validate_hash(value, field=field)


def validate_amount(value: Any, *, field: str = "amount") -> str:
    """Validate a non-negative decimal amount and return it as a plain string."""
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number or numeric string.", field=field)
    if isinstance(value, str):
        candidate = value.strip()
        if not AMOUNT_REGEX.fullmatch(candidate):
            raise ValidationError(
                f"Invalid amount format: {value}. Must be a non-negative number.", field=field
            )
        return format(Decimal(candidate), "f")
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError("Amount must be a valid number.", field=field) from None
        if not parsed.is_finite():
            raise ValidationError("Amount must be a valid number.", field=field)
        if parsed < 0:
            raise ValidationError("Amount must be non-negative.", field=field)
        return format(parsed, "f")
    raise ValidationError("Amount must be a number or numeric string.", field=field)


def validate_password(value: Any, *, field: str = "password") -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Password must be a non-empty string.", field=field)
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.", field=field
        )
    return value


def validate_network(value: Any, *, field: str = "network") -> NeoNetwork:
    if not isinstance(value, str):
        raise ValidationError("Network must be a string.", field=field)
    normalized = value.strip().lower()
    for network in NeoNetwork:
        if normalized == network.value:
            return network
    allowed = ", ".join(network.value for network in NeoNetwork)
    raise ValidationError(f"Invalid network: {value}. Must be one of: {allowed}", field=field)


def validate_boolean(value: Any, *, field: str = "confirm") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1"}:
            return True
        if normalized in {"false", "0"}:
            return False
        raise ValidationError(
            f"Invalid boolean value: {value}. Must be 'true', 'false', '1', or '0'.", field=field
        )
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValidationError(f"Invalid boolean value: {value}. Must be 1 or 0.", field=field)
    raise ValidationError("Boolean value must be a boolean, string, or number.", field=field)


def validate_non_empty_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string.", field=field)
    return value.strip()


def validate_operation(value: Any, *, field: str = "operation") -> str:
    operation = validate_non_empty_string(value, field=field)
    if not OPERATION_REGEX.fullmatch(operation):
        raise ValidationError(f"Invalid operation name: {operation}", field=field)
    return operation


def validate_asset(value: Any, *, field: str = "asset") -> str:
    """Accept a token symbol (``NEO``, ``GAS``) or a 40-hex script hash."""
    asset = validate_non_empty_string(value, field=field)
    if len(strip_hex_prefix(asset)) == SCRIPT_HASH_LENGTH:
        return validate_script_hash(asset, field=field)
    if not asset.isalnum():
        raise ValidationError(f"Invalid asset: {asset}", field=field)
    return asset.upper()


def validate_args_list(value: Any, *, field: str = "args") -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("Contract arguments must be an array.", field=field)
    if len(value) > MAX_CONTRACT_ARGS:
        raise ValidationError(
            f"Too many contract arguments (max {MAX_CONTRACT_ARGS}).", field=field
        )
    return list(value)


def validate_wif(value: Any, *, field: str = "fromWIF") -> str:
    """Shape check only; the wallet provider verifies the checksum on import."""
    if not isinstance(value, str) or not value:
        raise ValidationError("WIF must be a non-empty string.", field=field)
    if not WIF_REGEX.fullmatch(value):
        raise ValidationError("Invalid sender WIF provided.", field=field)
    return value


def validate_key(value: Any, *, field: str = "key") -> str:
    """Accept a WIF, a 64-hex private key or a NEP-2 encrypted key."""
    key = validate_non_empty_string(value, field=field)
    if WIF_REGEX.fullmatch(key) or PRIVATE_KEY_REGEX.fullmatch(key) or NEP2_REGEX.fullmatch(key):
        return key
    raise ValidationError("Invalid private key, WIF or NEP-2 format.", field=field)
