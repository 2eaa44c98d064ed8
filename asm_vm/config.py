"""
Machine configuration.

Defaults describe the reference machine: 16 general registers, 512 memory
cells. The CLI overrides individual fields from its flags.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

__all__ = ['MachineConfig', 'DEFAULT_CONFIG', 'MEMORY_SIZE', 'REGISTER_COUNT',
           'ALIAS_DEPTH_LIMIT']

MEMORY_SIZE = 512
REGISTER_COUNT = 16
ALIAS_DEPTH_LIMIT = 64


@dataclass(frozen=True)
class MachineConfig:
    memory_size: int = MEMORY_SIZE
    register_count: int = REGISTER_COUNT
    alias_depth_limit: int = ALIAS_DEPTH_LIMIT  # max alias hops before AliasCycle
    trace: bool = False

    def with_overrides(self, **changes) -> "MachineConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def __post_init__(self):
        if self.memory_size <= 0:
            raise ValueError(f"memory_size must be positive, got {self.memory_size}")
        if self.register_count <= 0:
            raise ValueError(f"register_count must be positive, got {self.register_count}")
        if self.alias_depth_limit <= 0:
            raise ValueError(f"alias_depth_limit must be positive, got {self.alias_depth_limit}")


DEFAULT_CONFIG = MachineConfig()
