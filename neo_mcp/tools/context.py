"""Per-call collaborators handed to tool handlers by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from neo_mcp.config import NeoConfig, NeoNetwork
from neo_mcp.errors import InternalError


@dataclass(slots=True)
class ToolContext:
    config: NeoConfig
    wallet: Any
    network: Optional[NeoNetwork] = None
    backend: Any = None
    monitor: Any = None
    cache: Any = None
    available_networks: List[NeoNetwork] = field(default_factory=list)
    default_network: Optional[NeoNetwork] = None

    def require_network(self) -> NeoNetwork:
        if self.network is None or self.backend is None:
            raise InternalError("Tool requires a resolved network but none was bound.")
        return self.network
