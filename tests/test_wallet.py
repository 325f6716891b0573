import base64
import threading

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from neo_mcp.config import NETWORK_MAGIC, NeoNetwork
from neo_mcp.contracts import NATIVE_TOKENS
from neo_mcp.errors import ValidationError
from neo_mcp.tools.context import ToolContext
from neo_mcp.tools.wallet import create_wallet, import_wallet
from neo_mcp.tools.validators import is_valid_neo_address
from neo_mcp.wallet import (
    Account,
    NeoWalletProvider,
    ScriptBuilder,
    Transaction,
    address_to_script_hash,
    build_contract_call,
)
from neo_mcp.wallet.transaction import (
    CHECKSIG_PRICE,
    EXEC_FEE_FACTOR,
    FEE_PER_BYTE,
    PUSHDATA1_PRICE,
    estimate_network_fee,
    sender_signers,
    single_sig_witness_size,
)

from conftest import make_config

provider = NeoWalletProvider()


def test_account_address_shape(sender):
    assert sender.address.startswith("N")
    assert len(sender.address) == 34
    assert is_valid_neo_address(sender.address)
    assert len(sender.public_key) == 33
    assert sender.verification_script[:2] == b"\x0c\x21"
    assert sender.verification_script[-5:] == bytes.fromhex("4156e7b327")
    assert address_to_script_hash(sender.address) == sender.script_hash
    assert sender.script_hash_hex == "0x" + sender.script_hash[::-1].hex()


def test_address_checksum_is_checked(sender):
    tampered = sender.address[:-1] + ("a" if sender.address[-1] != "a" else "b")
    with pytest.raises(ValidationError):
        address_to_script_hash(tampered)


def test_wif_and_hex_import_round_trip(sender):
    assert provider.is_valid_wif(sender.wif)
    assert provider.import_account(sender.wif).address == sender.address
    assert provider.import_account(sender.private_key.hex()).address == sender.address
    assert not provider.is_valid_wif(sender.wif[:-1] + ("2" if sender.wif[-1] != "2" else "3"))
    assert not provider.is_valid_private_key("00" * 32)
    with pytest.raises(ValidationError) as exc:
        provider.import_account("not-a-key")
    assert exc.value.field == "key"


def test_created_accounts_are_distinct():
    first = provider.create_account()
    second = provider.create_account()
    assert first.address != second.address
    assert provider.import_account(first.wif).address == first.address


def test_nep2_round_trip(sender):
    encrypted = provider.encrypt_key(sender, "correct horse")
    assert encrypted.startswith("6P")
    assert len(encrypted) == 58
    assert provider.is_nep2(encrypted)
    assert not provider.is_nep2(sender.wif)
    assert provider.decrypt_key(encrypted, "correct horse").address == sender.address

    with pytest.raises(ValidationError) as exc:
        provider.decrypt_key(encrypted, "wrong password")
    assert exc.value.field == "password"


def test_sign_transaction_produces_verifiable_witness(sender, recipient):
    script = build_contract_call(NATIVE_TOKENS["GAS"].script_hash, "transfer", [1])
    tx = Transaction(script=script, signers=sender_signers(sender.script_hash), valid_until_block=100, nonce=7)
    magic = NETWORK_MAGIC[NeoNetwork.TESTNET]

    provider.sign_transaction(tx, sender, magic)
    assert len(tx.witnesses) == 1
    invocation = tx.witnesses[0].invocation_script
    assert invocation[:2] == b"\x0c\x40"
    assert len(invocation) == 66
    assert tx.witnesses[0].verification_script == sender.verification_script

    signature = encode_dss_signature(int.from_bytes(invocation[2:34], "big"), int.from_bytes(invocation[34:], "big"))
    public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), sender.public_key)
    public_key.verify(signature, tx.sign_data(magic), ec.ECDSA(hashes.SHA256()))

    # Witnesses are not part of the hash.
    assert tx.sign_data(magic)[:4] == magic.to_bytes(4, "little")
    assert base64.b64decode(tx.to_base64()).startswith(tx.serialize_unsigned())


def test_txid_is_reversed_hash(sender):
    tx = Transaction(script=b"\x11", signers=sender_signers(sender.script_hash), valid_until_block=1, nonce=1)
    assert tx.txid == tx.hash()[::-1].hex()
    assert len(tx.txid) == 64


def test_offline_network_fee(sender):
    tx = Transaction(script=b"\x11" * 10, signers=sender_signers(sender.script_hash), valid_until_block=1, nonce=1)
    size = len(tx.serialize_unsigned()) + 1 + single_sig_witness_size()
    expected = size * FEE_PER_BYTE + EXEC_FEE_FACTOR * (PUSHDATA1_PRICE * 2 + CHECKSIG_PRICE)
    assert single_sig_witness_size() == 108
    assert estimate_network_fee(tx) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "10"),
        (16, "20"),
        (-1, "0f"),
        (17, "0011"),
        (-2, "00fe"),
        (128, "018000"),
        (1000, "01e803"),
        (100_000, "02a0860100"),
    ],
)
def test_push_int_encoding(value, expected):
    assert ScriptBuilder().emit_push_int(value).to_bytes().hex() == expected


def test_contract_call_layout():
    gas_hash = NATIVE_TOKENS["GAS"].script_hash
    script = build_contract_call(gas_hash, "symbol")
    expected = (
        b"\xc2\x1f"
        + b"\x0c\x06symbol"
        + b"\x0c\x14"
        + bytes.fromhex(gas_hash[2:])[::-1]
        + b"\x41\x62\x7d\x5b\x52"
    )
    assert script == expected


def test_typed_params(sender):
    builder = ScriptBuilder()
    builder.emit_push_param({"type": "Hash160", "value": sender.address})
    assert builder.to_bytes() == b"\x0c\x14" + sender.script_hash

    builder = ScriptBuilder()
    builder.emit_push_param({"type": "Boolean", "value": "true"})
    builder.emit_push_param(None)
    builder.emit_push_param({"type": "ByteArray", "value": base64.b64encode(b"hi").decode()})
    assert builder.to_bytes() == b"\x08\x0b\x0c\x02hi"

    with pytest.raises(ValidationError):
        ScriptBuilder().emit_push_param({"type": "Integer", "value": "abc"})
    with pytest.raises(ValidationError):
        ScriptBuilder().emit_push_param({"type": "Signature", "value": "00"})
    with pytest.raises(ValidationError):
        ScriptBuilder().emit_push_param(1.5)


class ThreadRecordingProvider(NeoWalletProvider):
    def __init__(self):
        self.threads = []

    def encrypt_key(self, account, password):
        self.threads.append(threading.get_ident())
        return super().encrypt_key(account, password)

    def decrypt_key(self, encrypted_key, password):
        self.threads.append(threading.get_ident())
        return super().decrypt_key(encrypted_key, password)


@pytest.mark.asyncio
async def test_wallet_tools_run_nep2_off_the_event_loop(sender):
    wallet = ThreadRecordingProvider()
    ctx = ToolContext(config=make_config(), wallet=wallet)

    created = await create_wallet(ctx, "correct horse")
    imported = await import_wallet(ctx, sender.wif, "correct horse")
    decrypted = await import_wallet(ctx, imported["encryptedWIF"], "correct horse")

    assert created["encryptedWIF"].startswith("6P")
    assert decrypted["address"] == sender.address
    assert len(wallet.threads) == 3
    assert threading.get_ident() not in wallet.threads
