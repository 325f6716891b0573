"""
Wallet/crypto provider: key generation, WIF and hex import, NEP-2 encryption
and transaction signing for secp256r1 single-signature accounts.
"""

from __future__ import annotations

import hashlib
import logging
import re
import unicodedata
from typing import Protocol

import base58
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from neo_mcp.errors import ValidationError
from neo_mcp.wallet.account import WIF_COMPRESSED_FLAG, WIF_PREFIX, Account
from neo_mcp.wallet.transaction import Transaction, Witness

logger = logging.getLogger(__name__)

NEP2_PREFIX = bytes([0x01, 0x42, 0xE0])
NEP2_SCRYPT_N = 16384
NEP2_SCRYPT_R = 8
NEP2_SCRYPT_P = 8
SECP256R1_ORDER = int("FFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551", 16)
PRIVATE_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
PUSHDATA1 = 0x0C


class WalletProvider(Protocol):
    def create_account(self) -> Account:
        ...

    def import_account(self, key: str) -> Account:
        """Accept a WIF or a 64-hex private key."""
        ...

    def encrypt_key(self, account: Account, password: str) -> str:
        ...

    def decrypt_key(self, encrypted_key: str, password: str) -> Account:
        ...

    def is_valid_wif(self, key: str) -> bool:
        ...

    def is_valid_private_key(self, key: str) -> bool:
        ...

    def is_nep2(self, key: str) -> bool:
        ...

    def sign_transaction(self, tx: Transaction, account: Account, network_magic: int) -> Transaction:
        ...


def _address_hash(address: str) -> bytes:
    return hashlib.sha256(hashlib.sha256(address.encode("ascii")).digest()).digest()[:4]


def _scrypt(password: str, salt: bytes) -> bytes:
    kdf = Scrypt(salt=salt, length=64, n=NEP2_SCRYPT_N, r=NEP2_SCRYPT_R, p=NEP2_SCRYPT_P)
    return kdf.derive(unicodedata.normalize("NFC", password).encode("utf-8"))


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


class NeoWalletProvider:
    """Stateless provider; one instance may be bound to several networks."""

    def create_account(self) -> Account:
        signing_key = ec.generate_private_key(ec.SECP256R1())
        private_key = signing_key.private_numbers().private_value.to_bytes(32, "big")
        account = Account.from_private_key(private_key)
        logger.info("created account address=%s", account.address)
        return account

    def is_valid_private_key(self, key: str) -> bool:
        if not isinstance(key, str) or not PRIVATE_KEY_PATTERN.match(key):
            return False
        return 0 < int(key, 16) < SECP256R1_ORDER

    def _wif_payload(self, key: str) -> bytes | None:
        try:
            payload = base58.b58decode_check(key)
        except ValueError:
            return None
        if len(payload) != 34 or payload[0] != WIF_PREFIX or payload[33] != WIF_COMPRESSED_FLAG:
            return None
        return payload

    def is_valid_wif(self, key: str) -> bool:
        if not isinstance(key, str) or not key:
            return False
        payload = self._wif_payload(key)
        return payload is not None and 0 < int.from_bytes(payload[1:33], "big") < SECP256R1_ORDER

    def is_nep2(self, key: str) -> bool:
        if not isinstance(key, str) or not key.startswith("6P"):
            return False
        try:
            payload = base58.b58decode_check(key)
        except ValueError:
            return False
        return len(payload) == 39 and payload[:3] == NEP2_PREFIX

    def import_account(self, key: str) -> Account:
        if self.is_valid_wif(key):
            payload = self._wif_payload(key)
            return Account.from_private_key(payload[1:33])
        if self.is_valid_private_key(key):
            return Account.from_private_key(bytes.fromhex(key))
        raise ValidationError("Invalid private key or WIF format.", field="key")

    def encrypt_key(self, account: Account, password: str) -> str:
        address_hash = _address_hash(account.address)
        derived = _scrypt(password, address_hash)
        encryptor = Cipher(algorithms.AES(derived[32:]), modes.ECB()).encryptor()
        encrypted = encryptor.update(_xor(account.private_key, derived[:32])) + encryptor.finalize()
        return base58.b58encode_check(NEP2_PREFIX + address_hash + encrypted).decode("ascii")

    def decrypt_key(self, encrypted_key: str, password: str) -> Account:
        if not self.is_nep2(encrypted_key):
            raise ValidationError("Invalid NEP-2 encrypted key.", field="key")
        payload = base58.b58decode_check(encrypted_key)
        address_hash = payload[3:7]
        derived = _scrypt(password, address_hash)
        decryptor = Cipher(algorithms.AES(derived[32:]), modes.ECB()).decryptor()
        decrypted = decryptor.update(payload[7:]) + decryptor.finalize()
        private_key = _xor(decrypted, derived[:32])
        if not 0 < int.from_bytes(private_key, "big") < SECP256R1_ORDER:
            raise ValidationError("Wrong password for encrypted key.", field="password")
        account = Account.from_private_key(private_key)
        if _address_hash(account.address) != address_hash:
            raise ValidationError("Wrong password for encrypted key.", field="password")
        return account

    def sign_transaction(self, tx: Transaction, account: Account, network_magic: int) -> Transaction:
        der = account.signing_key.sign(tx.sign_data(network_magic), ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")
        tx.witnesses = [
            Witness(
                invocation_script=bytes([PUSHDATA1, len(signature)]) + signature,
                verification_script=account.verification_script,
            )
        ]
        return tx
