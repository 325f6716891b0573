"""Minimal read-only sanity checks against the configured Neo N3 nodes."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from neo_mcp.config import default_config  # noqa: E402
from neo_mcp.gateway import build_gateway  # noqa: E402
from neo_mcp.mcp import Dispatcher  # noqa: E402

# Any public address works; override via env to check a funded account.
SAMPLE_ADDRESS = os.getenv("NEO_SAMPLE_ADDRESS", "NXV7ZhHiyM1aHXwvUNBLNAkCwZ6wgeKyMZ")
# Opt-in to the contract test invocation (one extra invokescript per network).
RUN_INVOKE = os.getenv("RUN_INVOKE_SANITY", "false").lower() in {"1", "true", "yes"}


async def main() -> None:
    gateway = build_gateway(default_config)
    dispatcher = Dispatcher(gateway)
    try:
        print("Network mode:", await dispatcher.call_tool("get_network_mode"))
        for network in gateway.networks:
            args = {"network": network.value}
            print(f"[{network.value}] Block count:", await dispatcher.call_tool("get_block_count", args))
            info = await dispatcher.call_tool("get_blockchain_info", args)
            validators = info.get("result", {}).get("validators", [])
            print(f"[{network.value}] Validators:", len(validators))
            print(
                f"[{network.value}] Balance:",
                await dispatcher.call_tool("get_balance", {**args, "address": SAMPLE_ADDRESS}),
            )
            if RUN_INVOKE:
                print(
                    f"[{network.value}] GAS symbol:",
                    await dispatcher.call_tool(
                        "invoke_contract",
                        {**args, "scriptHash": "0xd2a4cff31913016155e38e474a2c06d08be276cf", "operation": "symbol"},
                    ),
                )
    finally:
        await gateway.aclose()


if __name__ == "__main__":
    asyncio.run(main())
