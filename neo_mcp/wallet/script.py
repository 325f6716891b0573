"""NeoVM script construction for contract calls."""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

from neo_mcp.errors import ValidationError
from neo_mcp.wallet.account import address_to_script_hash, script_hash_from_hex

PUSHINT8 = 0x00
PUSHT = 0x08
PUSHF = 0x09
PUSHNULL = 0x0B
PUSHDATA1 = 0x0C
PUSHDATA2 = 0x0D
PUSHDATA4 = 0x0E
PUSHM1 = 0x0F
PUSH0 = 0x10
NEWARRAY0 = 0xC2
PACK = 0xC0
SYSCALL = 0x41

CONTRACT_CALL_INTEROP = bytes.fromhex("627d5b52")
CALL_FLAGS_ALL = 0x0F

_INT_WIDTHS = (1, 2, 4, 8, 16, 32)


def _signed_bytes(value: int) -> bytes:
    length = (value + (value < 0)).bit_length() // 8 + 1
    return value.to_bytes(length, "little", signed=True)


class ScriptBuilder:
    """Accumulates NeoVM opcodes; ``emit_contract_call`` mirrors System.Contract.Call."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def emit(self, opcode: int, operand: bytes = b"") -> "ScriptBuilder":
        self._buffer.append(opcode)
        self._buffer.extend(operand)
        return self

    def emit_push_int(self, value: int) -> "ScriptBuilder":
        if -1 <= value <= 16:
            return self.emit(PUSH0 + value if value >= 0 else PUSHM1)
        data = _signed_bytes(value)
        for index, width in enumerate(_INT_WIDTHS):
            if len(data) <= width:
                pad = b"\xff" if value < 0 else b"\x00"
                return self.emit(PUSHINT8 + index, data + pad * (width - len(data)))
        raise ValidationError(f"Integer out of range for NeoVM: {value}", field="args")

    def emit_push_bytes(self, data: bytes) -> "ScriptBuilder":
        length = len(data)
        if length < 0x100:
            return self.emit(PUSHDATA1, bytes([length]) + data)
        if length < 0x10000:
            return self.emit(PUSHDATA2, length.to_bytes(2, "little") + data)
        return self.emit(PUSHDATA4, length.to_bytes(4, "little") + data)

    def emit_push_bool(self, value: bool) -> "ScriptBuilder":
        return self.emit(PUSHT if value else PUSHF)

    def emit_push_param(self, param: Any) -> "ScriptBuilder":
        if param is None:
            return self.emit(PUSHNULL)
        if isinstance(param, bool):
            return self.emit_push_bool(param)
        if isinstance(param, int):
            return self.emit_push_int(param)
        if isinstance(param, str):
            return self.emit_push_bytes(param.encode("utf-8"))
        if isinstance(param, (bytes, bytearray)):
            return self.emit_push_bytes(bytes(param))
        if isinstance(param, list):
            return self.emit_push_array(param)
        if isinstance(param, dict) and "type" in param:
            return self._emit_typed_param(param)
        raise ValidationError(f"Unsupported contract argument: {param!r}", field="args")

    def emit_push_array(self, items: List[Any]) -> "ScriptBuilder":
        if not items:
            return self.emit(NEWARRAY0)
        for item in reversed(items):
            self.emit_push_param(item)
        self.emit_push_int(len(items))
        return self.emit(PACK)

    def _emit_typed_param(self, param: Dict[str, Any]) -> "ScriptBuilder":
        kind = str(param["type"]).lower()
        value = param.get("value")
        try:
            if kind == "any":
                return self.emit(PUSHNULL) if value is None else self.emit_push_param(value)
            if kind == "boolean":
                return self.emit_push_bool(value in (True, "true", 1))
            if kind == "integer":
                return self.emit_push_int(int(value))
            if kind == "string":
                return self.emit_push_bytes(str(value).encode("utf-8"))
            if kind == "hash160":
                text = str(value)
                if text.startswith("N"):
                    return self.emit_push_bytes(address_to_script_hash(text))
                return self.emit_push_bytes(script_hash_from_hex(text))
            if kind == "hash256":
                return self.emit_push_bytes(script_hash_from_hex(str(value)))
            if kind == "publickey":
                return self.emit_push_bytes(bytes.fromhex(str(value)))
            if kind == "bytearray":
                return self.emit_push_bytes(base64.b64decode(str(value)))
            if kind == "array":
                return self.emit_push_array(list(value or []))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid {param['type']} argument: {value!r}", field="args") from exc
        raise ValidationError(f"Unsupported contract argument type: {param['type']}", field="args")

    def emit_contract_call(
        self,
        script_hash: str,
        operation: str,
        args: Optional[List[Any]] = None,
        call_flags: int = CALL_FLAGS_ALL,
    ) -> "ScriptBuilder":
        self.emit_push_array(list(args or []))
        self.emit_push_int(call_flags)
        self.emit_push_bytes(operation.encode("utf-8"))
        self.emit_push_bytes(script_hash_from_hex(script_hash))
        return self.emit(SYSCALL, CONTRACT_CALL_INTEROP)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def to_base64(self) -> str:
        return base64.b64encode(self._buffer).decode("ascii")


def build_contract_call(script_hash: str, operation: str, args: Optional[List[Any]] = None) -> bytes:
    return ScriptBuilder().emit_contract_call(script_hash, operation, args).to_bytes()
