"""
Neo N3 single-signature accounts and address helpers.

Script hashes are kept as 20 little-endian bytes internally (the order used in
serialized transactions and scripts); ``0x``-prefixed hex strings are
big-endian, matching explorers and the RPC API.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

import base58
from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from neo_mcp.errors import ValidationError

ADDRESS_VERSION = 0x35
WIF_PREFIX = 0x80
WIF_COMPRESSED_FLAG = 0x01
CHECKSIG_INTEROP = bytes.fromhex("56e7b327")
PUSHDATA1 = 0x0C
SYSCALL = 0x41


def hash160(data: bytes) -> bytes:
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


def verification_script(public_key: bytes) -> bytes:
    return bytes([PUSHDATA1, len(public_key)]) + public_key + bytes([SYSCALL]) + CHECKSIG_INTEROP


def script_hash_to_address(script_hash: bytes) -> str:
    return base58.b58encode_check(bytes([ADDRESS_VERSION]) + script_hash).decode("ascii")


def address_to_script_hash(address: str) -> bytes:
    try:
        payload = base58.b58decode_check(address)
    except ValueError as exc:
        raise ValidationError(f"Invalid Neo N3 address checksum: {address}", field="address") from exc
    if len(payload) != 21 or payload[0] != ADDRESS_VERSION:
        raise ValidationError(f"Invalid Neo N3 address: {address}", field="address")
    return payload[1:]


def script_hash_from_hex(value: str) -> bytes:
    """Big-endian ``0x`` hex to little-endian bytes."""
    text = value[2:] if value.lower().startswith("0x") else value
    return bytes.fromhex(text)[::-1]


def script_hash_to_hex(script_hash: bytes) -> str:
    return "0x" + script_hash[::-1].hex()


@dataclass(frozen=True)
class Account:
    private_key: bytes = field(repr=False)
    public_key: bytes
    script_hash: bytes
    address: str

    @classmethod
    def from_private_key(cls, private_key: bytes) -> "Account":
        signing_key = ec.derive_private_key(int.from_bytes(private_key, "big"), ec.SECP256R1())
        public_key = signing_key.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)
        script_hash = hash160(verification_script(public_key))
        return cls(
            private_key=private_key,
            public_key=public_key,
            script_hash=script_hash,
            address=script_hash_to_address(script_hash),
        )

    @property
    def signing_key(self) -> ec.EllipticCurvePrivateKey:
        return ec.derive_private_key(int.from_bytes(self.private_key, "big"), ec.SECP256R1())

    @property
    def wif(self) -> str:
        payload = bytes([WIF_PREFIX]) + self.private_key + bytes([WIF_COMPRESSED_FLAG])
        return base58.b58encode_check(payload).decode("ascii")

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    @property
    def script_hash_hex(self) -> str:
        return script_hash_to_hex(self.script_hash)

    @property
    def verification_script(self) -> bytes:
        return verification_script(self.public_key)
