"""rvcc.symtab

Symbol table shared by the lexer (which registers every identifier) and the
semantic analyzer (which records declared types).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional


class SourceCodeType(Enum):
    INT = "int"


@dataclass
class SymbolTableEntry:
    text: str
    type: Optional[SourceCodeType] = None

    def __str__(self) -> str:
        ty = self.type.value if self.type is not None else "null"
        return f"({self.text}, {ty})"


class SymbolTable:
    """Name -> entry mapping, kept in insertion order"""

    def __init__(self):
        self._entries: Dict[str, SymbolTableEntry] = {}

    def has(self, text: str) -> bool:
        return text in self._entries

    def get(self, text: str) -> SymbolTableEntry:
        try:
            return self._entries[text]
        except KeyError:
            raise KeyError(f"symbol not found: {text}") from None

    def add(self, text: str) -> SymbolTableEntry:
        if text in self._entries:
            raise ValueError(f"symbol already exists: {text}")
        entry = SymbolTableEntry(text)
        self._entries[text] = entry
        return entry

    def __iter__(self) -> Iterator[SymbolTableEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def dump(self, path: str) -> None:
        with open(path, 'w') as f:
            for entry in sorted(self._entries.values(), key=lambda e: e.text):
                f.write(f"{entry}\n")
