"""Neo N3 transaction model and binary encoding."""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List

from neo_mcp.wallet.account import Account, script_hash_to_hex

CALLED_BY_ENTRY = 0x01
FEE_PER_BYTE = 1000
EXEC_FEE_FACTOR = 30
PUSHDATA1_PRICE = 1 << 3
CHECKSIG_PRICE = 1 << 15
SIGNATURE_SIZE = 64
VERIFICATION_SCRIPT_SIZE = 40


def _var_int(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def _var_bytes(data: bytes) -> bytes:
    return _var_int(len(data)) + data


@dataclass
class Signer:
    account: bytes
    scopes: int = CALLED_BY_ENTRY

    def serialize(self) -> bytes:
        return self.account + bytes([self.scopes])

    def to_rpc(self) -> Dict[str, Any]:
        return {"account": script_hash_to_hex(self.account), "scopes": "CalledByEntry"}


@dataclass
class Witness:
    invocation_script: bytes
    verification_script: bytes

    def serialize(self) -> bytes:
        return _var_bytes(self.invocation_script) + _var_bytes(self.verification_script)


@dataclass
class Transaction:
    script: bytes
    signers: List[Signer]
    valid_until_block: int
    system_fee: int = 0
    network_fee: int = 0
    nonce: int = field(default_factory=lambda: secrets.randbits(32))
    version: int = 0
    witnesses: List[Witness] = field(default_factory=list)

    def serialize_unsigned(self) -> bytes:
        out = bytearray()
        out.append(self.version)
        out += self.nonce.to_bytes(4, "little")
        out += self.system_fee.to_bytes(8, "little", signed=True)
        out += self.network_fee.to_bytes(8, "little", signed=True)
        out += self.valid_until_block.to_bytes(4, "little")
        out += _var_int(len(self.signers))
        for signer in self.signers:
            out += signer.serialize()
        out += _var_int(0)
        out += _var_bytes(self.script)
        return bytes(out)

    def serialize(self) -> bytes:
        out = bytearray(self.serialize_unsigned())
        out += _var_int(len(self.witnesses))
        for witness in self.witnesses:
            out += witness.serialize()
        return bytes(out)

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")

    def hash(self) -> bytes:
        return hashlib.sha256(self.serialize_unsigned()).digest()

    @property
    def txid(self) -> str:
        """Big-endian hex without the ``0x`` prefix."""
        return self.hash()[::-1].hex()

    def sign_data(self, network_magic: int) -> bytes:
        return network_magic.to_bytes(4, "little") + self.hash()


def single_sig_witness_size() -> int:
    invocation = 2 + SIGNATURE_SIZE
    return len(_var_bytes(b"\x00" * invocation)) + len(_var_bytes(b"\x00" * VERIFICATION_SCRIPT_SIZE))


def estimate_network_fee(tx: Transaction) -> int:
    """Offline network fee for a single-signature sender (size fee plus CheckSig cost)."""
    size = len(tx.serialize_unsigned()) + len(_var_int(1)) + single_sig_witness_size()
    verification_cost = EXEC_FEE_FACTOR * (PUSHDATA1_PRICE * 2 + CHECKSIG_PRICE)
    return size * FEE_PER_BYTE + verification_cost


def sender_signers(script_hash: bytes) -> List[Signer]:
    return [Signer(account=script_hash)]


def placeholder_witness(account: Account) -> Witness:
    """Witness with an empty invocation script, as calculatenetworkfee expects."""
    return Witness(invocation_script=b"", verification_script=account.verification_script)
