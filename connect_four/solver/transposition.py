# connect_four/solver/transposition.py
from dataclasses import dataclass
from typing import Dict, Optional

EXACT = 0
LOWER = 1
UPPER = 2


@dataclass(frozen=True)
class TTEntry:
    value: int
    flag: int
    depth: int


class TranspositionTable:
    def __init__(self):
        self.table: Dict[int, TTEntry] = {}
        self.hits = 0

    def get(self, key: int, depth: int) -> Optional[TTEntry]:
        """Only entries searched at least as deep as requested are usable."""
        entry = self.table.get(key)
        if entry is not None and entry.depth >= depth:
            self.hits += 1
            return entry
        return None

    def put(self, key: int, value: int, flag: int, depth: int):
        existing = self.table.get(key)
        if existing is not None and existing.depth > depth:
            return
        self.table[key] = TTEntry(value, flag, depth)

    def reset(self):
        self.table.clear()
        self.hits = 0
