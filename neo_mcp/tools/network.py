"""Gateway configuration queries."""

from __future__ import annotations

from typing import Any, Dict

from neo_mcp.tools.context import ToolContext


async def get_network_mode(ctx: ToolContext) -> Dict[str, Any]:
    return {
        "networkMode": ctx.config.network_mode.value,
        "availableNetworks": [network.value for network in ctx.available_networks],
        "defaultNetwork": (ctx.default_network or ctx.config.default_network()).value,
        "requireNetwork": ctx.config.require_network,
    }
