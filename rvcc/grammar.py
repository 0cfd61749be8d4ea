"""rvcc.grammar

The fixed grammar of the source language as a closed enumeration of
productions. Parser tables are built from it and observers dispatch on its
members instead of on raw production numbers.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Tuple


START_SYMBOL = "P"
END_MARKER = "$"

TERMINALS: FrozenSet[str] = frozenset({
    "id", "IntConst", "int", "return", "=", ",", "Semicolon",
    "+", "-", "*", "/", "(", ")", END_MARKER,
})


class Production(Enum):
    """Grammar productions, numbered 1-15 in grammar order"""

    PROGRAM = (1, "P", ("S_list",))
    STMT_LIST = (2, "S_list", ("S", "Semicolon", "S_list"))
    STMT_LIST_LAST = (3, "S_list", ("S", "Semicolon"))
    DECLARATION = (4, "S", ("D", "id"))
    TYPE_INT = (5, "D", ("int",))
    ASSIGNMENT = (6, "S", ("id", "=", "E"))
    RETURN = (7, "S", ("return", "E"))
    ADD = (8, "E", ("E", "+", "A"))
    SUB = (9, "E", ("E", "-", "A"))
    EXPR_TERM = (10, "E", ("A",))
    MUL = (11, "A", ("A", "*", "B"))
    TERM_FACTOR = (12, "A", ("B",))
    PAREN = (13, "B", ("(", "E", ")"))
    FACTOR_ID = (14, "B", ("id",))
    FACTOR_CONST = (15, "B", ("IntConst",))

    def __init__(self, index: int, head: str, body: Tuple[str, ...]):
        self.index = index
        self.head = head
        self.body = body

    @classmethod
    def from_index(cls, index: int) -> "Production":
        for prod in cls:
            if prod.index == index:
                return prod
        raise ValueError(f"unknown production index: {index}")

    def __str__(self) -> str:
        return f"{self.head} -> {' '.join(self.body)}"


NONTERMINALS: FrozenSet[str] = frozenset(p.head for p in Production)
