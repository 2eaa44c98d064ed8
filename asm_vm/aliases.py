"""Alias table: symbolic name -> unresolved target operand."""

from typing import Dict, Iterator, Optional, Tuple


class AliasTable:
    """Last-write-wins mapping. Resolution (and cycle limits) is the
    operand resolver's job; the table only stores targets."""

    def __init__(self):
        self._targets: Dict[str, object] = {}

    def define(self, name: str, target):
        self._targets[name] = target

    def lookup(self, name: str) -> Optional[object]:
        return self._targets.get(name)

    def items(self) -> Iterator[Tuple[str, object]]:
        return iter(self._targets.items())
