"""
Tool registry and dispatcher for the MCP surface.

Every call goes through the same pipeline: registry lookup, argument
validation (including the network name and the confirmation guard on
mutating tools), rate limit, network resolution, then the handler. Nothing
raises out of ``Dispatcher.call_tool``; every failure becomes an error
envelope.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from neo_mcp.error_normalizer import normalize_error
from neo_mcp.errors import (
    ErrorKind,
    NeoMcpError,
    NetworkNotConfiguredError,
    RateLimitError,
    ToolNotFoundError,
    ValidationError,
)
from neo_mcp.tools import (
    ToolContext,
    check_transaction_status,
    claim_gas,
    create_wallet,
    estimate_invoke_fees,
    estimate_transfer_fees,
    get_balance,
    get_block,
    get_block_count,
    get_blockchain_info,
    get_contract_info,
    get_network_mode,
    get_transaction,
    import_wallet,
    invoke_contract,
    list_famous_contracts,
    transfer_assets,
)
from neo_mcp.tools.validators import (
    ADDRESS_REGEX,
    validate_address,
    validate_amount,
    validate_args_list,
    validate_asset,
    validate_block_id,
    validate_boolean,
    validate_hash,
    validate_key,
    validate_network,
    validate_non_empty_string,
    validate_operation,
    validate_password,
    validate_script_hash,
    validate_wif,
)

if TYPE_CHECKING:
    from neo_mcp.gateway import Gateway

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = ADDRESS_REGEX.pattern
HASH_PATTERN = r"^(0x)?[0-9a-fA-F]{64}$"
SCRIPT_HASH_PATTERN = r"^(0x)?[0-9a-fA-F]{40}$"

Validator = Callable[..., Any]
ToolHandler = Callable[..., Awaitable[Any]]


class ToolScope(str, Enum):
    """Whether a tool needs a resolved network namespace."""

    NONE = "none"
    REQUIRED = "required"
    OPTIONAL = "optional"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    validator: Validator
    schema: Dict[str, Any]
    required: bool = False
    param: Optional[str] = None

    @property
    def handler_param(self) -> str:
        return self.param or self.name

    def validate(self, value: Any) -> Any:
        return self.validator(value, field=self.name)


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    handler: ToolHandler
    fields: Tuple[FieldSpec, ...] = ()
    scope: ToolScope = ToolScope.REQUIRED
    mutating: Union[bool, Callable[[Mapping[str, Any]], bool]] = False
    input_schema: Dict[str, Any] = field(default_factory=dict)

    def is_mutating(self, arguments: Mapping[str, Any]) -> bool:
        if callable(self.mutating):
            return bool(self.mutating(arguments))
        return self.mutating


NETWORK_FIELD = FieldSpec(
    "network",
    validate_network,
    {
        "type": "string",
        "enum": ["mainnet", "testnet"],
        "description": "Network to use. Defaults to the server's default network when omitted.",
    },
)


def _confirm_field(required: bool) -> FieldSpec:
    return FieldSpec(
        "confirm",
        validate_boolean,
        {"type": "boolean", "description": "Must be true to sign and broadcast the transaction."},
        required=required,
    )


def _address_field(name: str, description: str, *, param: str, required: bool = True) -> FieldSpec:
    return FieldSpec(
        name,
        validate_address,
        {
            "type": "string",
            "description": description,
            "pattern": ADDRESS_PATTERN,
            "minLength": 34,
            "maxLength": 34,
        },
        required=required,
        param=param,
    )


def _wif_field(required: bool) -> FieldSpec:
    return FieldSpec(
        "fromWIF",
        validate_wif,
        {"type": "string", "description": "Sender private key in WIF format."},
        required=required,
        param="from_wif",
    )


ASSET_FIELD = FieldSpec(
    "asset",
    validate_asset,
    {"type": "string", "description": "Token symbol (NEO, GAS) or NEP-17 script hash."},
    required=True,
)
AMOUNT_FIELD = FieldSpec(
    "amount",
    validate_amount,
    {"type": ["string", "number"], "description": "Amount as a non-negative decimal."},
    required=True,
)
SCRIPT_HASH_FIELD = FieldSpec(
    "scriptHash",
    validate_script_hash,
    {"type": "string", "description": "Contract script hash (40 hex, optional 0x).", "pattern": SCRIPT_HASH_PATTERN},
    required=True,
    param="script_hash",
)
OPERATION_FIELD = FieldSpec(
    "operation",
    validate_operation,
    {"type": "string", "description": "Contract method name."},
    required=True,
)
ARGS_FIELD = FieldSpec(
    "args",
    validate_args_list,
    {
        "type": "array",
        "description": "Contract arguments: plain JSON values or {type, value} contract parameters.",
    },
)
TXID_FIELD = FieldSpec(
    "txid",
    validate_hash,
    {"type": "string", "description": "Transaction hash (64 hex, optional 0x).", "pattern": HASH_PATTERN},
    required=True,
)
PASSWORD_FIELD = FieldSpec(
    "password",
    validate_password,
    {"type": "string", "minLength": 8, "description": "Password (at least 8 characters)."},
    required=True,
)


def _build_schema(fields: Tuple[FieldSpec, ...], scope: ToolScope) -> Dict[str, Any]:
    fields = list(fields)
    if scope != ToolScope.NONE:
        fields.append(NETWORK_FIELD)
    return {
        "type": "object",
        "properties": {spec.name: spec.schema for spec in fields},
        "required": [spec.name for spec in fields if spec.required],
        "additionalProperties": False,
    }


def _tool(
    name: str,
    description: str,
    handler: ToolHandler,
    *fields: FieldSpec,
    scope: ToolScope = ToolScope.REQUIRED,
    mutating: Union[bool, Callable[[Mapping[str, Any]], bool]] = False,
) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        handler=handler,
        fields=tuple(fields),
        scope=scope,
        mutating=mutating,
        input_schema=_build_schema(tuple(fields), scope),
    )


def _has_signing_key(arguments: Mapping[str, Any]) -> bool:
    return arguments.get("fromWIF") is not None


_DEFINITIONS = (
    _tool(
        "get_network_mode",
        "Get the configured network mode and the networks this server can reach.",
        get_network_mode,
        scope=ToolScope.NONE,
    ),
    _tool(
        "get_blockchain_info",
        "Get block height and next-block validators.",
        get_blockchain_info,
    ),
    _tool(
        "get_block_count",
        "Get the current block count of the Neo N3 blockchain.",
        get_block_count,
    ),
    _tool(
        "get_block",
        "Get block details by height or hash.",
        get_block,
        FieldSpec(
            "hashOrHeight",
            validate_block_id,
            {
                "oneOf": [
                    {"type": "string", "description": "Block hash (64 hex) or height as digits"},
                    {"type": "integer", "minimum": 0, "description": "Block height"},
                ],
                "description": "Block hash or height",
            },
            required=True,
            param="hash_or_height",
        ),
    ),
    _tool(
        "get_transaction",
        "Get transaction details by hash.",
        get_transaction,
        TXID_FIELD,
    ),
    _tool(
        "check_transaction_status",
        "Get the confirmation status of a transaction tracked by this server.",
        check_transaction_status,
        TXID_FIELD,
    ),
    _tool(
        "get_balance",
        "Get NEP-17 token balances for an address.",
        get_balance,
        _address_field("address", "Neo N3 address (N-prefixed Base58)", param="address"),
    ),
    _tool(
        "transfer_assets",
        "Transfer NEO, GAS or another NEP-17 token. Requires confirm=true.",
        transfer_assets,
        _wif_field(required=True),
        _address_field("toAddress", "Recipient address", param="to_address"),
        ASSET_FIELD,
        AMOUNT_FIELD,
        _confirm_field(required=True),
        mutating=True,
    ),
    _tool(
        "invoke_contract",
        "Invoke a contract method. Read-only unless fromWIF is given, which signs and broadcasts (confirm=true).",
        invoke_contract,
        SCRIPT_HASH_FIELD,
        OPERATION_FIELD,
        ARGS_FIELD,
        _wif_field(required=False),
        _confirm_field(required=False),
        mutating=_has_signing_key,
    ),
    _tool(
        "create_wallet",
        "Create a new account; the private key is returned NEP-2 encrypted with the password.",
        create_wallet,
        PASSWORD_FIELD,
        scope=ToolScope.NONE,
    ),
    _tool(
        "import_wallet",
        "Import an account from a WIF, hex private key or NEP-2 key.",
        import_wallet,
        FieldSpec(
            "key",
            validate_key,
            {"type": "string", "description": "WIF, 64-hex private key, or NEP-2 encrypted key"},
            required=True,
        ),
        FieldSpec(
            "password",
            validate_password,
            {"type": "string", "minLength": 8, "description": "Decrypts a NEP-2 key, or encrypts a plain one."},
        ),
        scope=ToolScope.NONE,
    ),
    _tool(
        "estimate_transfer_fees",
        "Estimate system and network fees for a token transfer.",
        estimate_transfer_fees,
        _address_field("fromAddress", "Sender address", param="from_address"),
        _address_field("toAddress", "Recipient address", param="to_address"),
        ASSET_FIELD,
        AMOUNT_FIELD,
    ),
    _tool(
        "estimate_invoke_fees",
        "Estimate system and network fees for a contract invocation.",
        estimate_invoke_fees,
        _address_field("signerAddress", "Address that would sign the invocation", param="signer_address"),
        SCRIPT_HASH_FIELD,
        OPERATION_FIELD,
        ARGS_FIELD,
    ),
    _tool(
        "claim_gas",
        "Claim unclaimed GAS for an account. Requires confirm=true.",
        claim_gas,
        _wif_field(required=True),
        _confirm_field(required=True),
        mutating=True,
    ),
    _tool(
        "list_famous_contracts",
        "List well-known Neo N3 contracts, optionally for one network.",
        list_famous_contracts,
        scope=ToolScope.OPTIONAL,
    ),
    _tool(
        "get_contract_info",
        "Get details and operations of a well-known contract by name or script hash.",
        get_contract_info,
        FieldSpec(
            "nameOrHash",
            validate_non_empty_string,
            {"type": "string", "description": "Contract name (e.g. NeoFS) or script hash"},
            required=True,
            param="name_or_hash",
        ),
    ),
)

TOOL_REGISTRY: Mapping[str, ToolDefinition] = MappingProxyType({tool.name: tool for tool in _DEFINITIONS})


def list_tools() -> List[Dict[str, Any]]:
    """Return the static tool catalog."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "inputSchema": tool.input_schema,
        }
        for tool in TOOL_REGISTRY.values()
    ]


class Dispatcher:
    """Routes validated tool calls to handlers bound to the gateway's services."""

    def __init__(self, gateway: "Gateway", registry: Mapping[str, ToolDefinition] = TOOL_REGISTRY) -> None:
        self.gateway = gateway
        self.registry = registry

    def _validate(
        self, tool: ToolDefinition, arguments: Dict[str, Any], mutating: bool
    ) -> Tuple[Dict[str, Any], Any]:
        specs = {spec.name: spec for spec in tool.fields}
        if tool.scope != ToolScope.NONE:
            specs[NETWORK_FIELD.name] = NETWORK_FIELD

        unknown = sorted(set(arguments) - set(specs))
        if unknown:
            raise ValidationError(
                f"Unknown argument(s) for {tool.name}: {', '.join(unknown)}",
                field=unknown[0],
                details={"unknown": unknown},
            )

        # Two-step commit guard: runs before any other check can incur cost.
        if mutating:
            confirmed = arguments.get("confirm")
            if confirmed is None or not validate_boolean(confirmed, field="confirm"):
                raise ValidationError(
                    f"{tool.name} requires explicit confirmation. Set confirm=true.",
                    field="confirm",
                    details={"reason": "confirmation_required"},
                )

        params: Dict[str, Any] = {}
        network = None
        for spec in specs.values():
            value = arguments.get(spec.name)
            if value is None:
                if spec.required:
                    raise ValidationError(f"Missing required argument: {spec.name}", field=spec.name)
                continue
            normalized = spec.validate(value)
            if spec is NETWORK_FIELD:
                network = normalized
            elif spec.name != "confirm":
                params[spec.handler_param] = normalized

        if tool.scope == ToolScope.REQUIRED and network is None:
            if self.gateway.config.require_network:
                raise ValidationError(f"Missing network parameter for {tool.name}.", field="network")
            network = self.gateway.default_network()
        return params, network

    def _context(self, tool: ToolDefinition, network: Any) -> ToolContext:
        gateway = self.gateway
        ctx = ToolContext(
            config=gateway.config,
            wallet=gateway.wallet,
            available_networks=list(gateway.networks),
            default_network=gateway.default_network(),
        )
        if network is None:
            return ctx
        services = gateway.networks.get(network)
        if services is None:
            raise NetworkNotConfiguredError(network.value)
        ctx.network = network
        ctx.backend = services.backend
        ctx.wallet = services.wallet
        ctx.monitor = services.monitor
        ctx.cache = services.cache
        return ctx

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        *,
        client_id: str = "anonymous",
    ) -> Dict[str, Any]:
        """Run one tool call and return ``{"result": ...}`` or ``{"error": {...}}``."""
        started = time.perf_counter()
        metrics = self.gateway.metrics
        network_label = None
        try:
            tool = self.registry.get(name)
            if tool is None:
                raise ToolNotFoundError(name)
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, dict):
                raise ValidationError("Tool arguments must be an object.", field="arguments")

            mutating = tool.is_mutating(arguments)
            params, network = self._validate(tool, arguments, mutating)
            network_label = network.value if network is not None else None
            self.gateway.rate_limiter.check(client_id)
            ctx = self._context(tool, network)
            result = await tool.handler(ctx, **params)
        except Exception as exc:
            envelope = normalize_error(exc)
            if isinstance(exc, RateLimitError):
                metrics.incr_rate_limited()
            log_extra = {"tool": name, "client_id": client_id, "network": network_label, "error": envelope.kind.value}
            if isinstance(exc, NeoMcpError) or envelope.kind != ErrorKind.INTERNAL_ERROR:
                logger.warning(
                    "tool=%s outcome=error code=%s message=%s",
                    name,
                    envelope.kind.value,
                    envelope.message,
                    extra=log_extra,
                )
            else:
                logger.exception("tool=%s outcome=error code=%s", name, envelope.kind.value, extra=log_extra)
            metrics.record_tool(name, success=False, error_code=envelope.kind.value)
            return envelope.to_response()

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "tool=%s outcome=success duration_ms=%.2f",
            name,
            duration_ms,
            extra={"tool": name, "client_id": client_id, "network": network_label},
        )
        metrics.record_tool(name, success=True)
        if mutating and network_label is not None:
            metrics.record_submission(network_label)
        return {"result": result}
