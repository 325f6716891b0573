"""
Neo N3 MCP server package.

This package exposes Neo N3 blockchain operations as MCP tools over a FastAPI
JSON-RPC endpoint, routed per network (mainnet, testnet). See DESIGN.md for
the component layout.
"""

__all__ = ["config", "gateway", "mcp"]
