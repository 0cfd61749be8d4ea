"""rvcc.parser

Table-driven shift/reduce parser for the rvcc grammar.

The SLR(1) action/goto tables are built from `rvcc.grammar` when an `LRTable`
is constructed. The parser itself builds no tree: every shift, reduce and
accept is reported to the registered `ActionObserver`s, which perform
syntax-directed translation (type propagation, IR generation) as the parse
proceeds.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple, Union

from rvcc.grammar import END_MARKER, NONTERMINALS, START_SYMBOL, TERMINALS, Production
from rvcc.lexer import Token, TokenType
from rvcc.symtab import SymbolTable


logger = logging.getLogger(__name__)


class ParserError(Exception):
    """Parser error"""
    def __init__(self, message: str, token: Optional[Token] = None):
        self.message = message
        self.token = token
        if token:
            super().__init__(f"{message} at {token.line}:{token.column}")
        else:
            super().__init__(message)


class ActionObserver(ABC):
    """Receives the parser's shift/reduce/accept events.

    `status` is the parser state on top of the state stack when the action is
    taken; observers treat it as opaque.
    """

    @abstractmethod
    def on_shift(self, status: int, token: Token) -> None:
        ...

    @abstractmethod
    def on_reduce(self, status: int, production: Production) -> None:
        ...

    @abstractmethod
    def on_accept(self, status: int) -> None:
        ...

    @abstractmethod
    def set_symbol_table(self, table: SymbolTable) -> None:
        ...


# -----------------
# Table construction
# -----------------

# Rule 0 is the augmented start rule; rules 1.. are the grammar productions.
_AUGMENTED_HEAD = START_SYMBOL + "'"
_Rule = Tuple[str, Tuple[str, ...], Optional[Production]]
_Item = Tuple[int, int]  # (rule number, dot position)


@dataclass(frozen=True)
class Shift:
    state: int


@dataclass(frozen=True)
class Reduce:
    production: Production


@dataclass(frozen=True)
class Accept:
    pass


Action = Union[Shift, Reduce, Accept]


class LRTable:
    """SLR(1) action and goto tables for the rvcc grammar"""

    def __init__(self):
        self.rules: List[_Rule] = [(_AUGMENTED_HEAD, (START_SYMBOL,), None)]
        self.rules += [(p.head, p.body, p) for p in Production]
        self._first = self._compute_first()
        self._follow = self._compute_follow()
        self.states: List[FrozenSet[_Item]] = []
        self.action: Dict[Tuple[int, str], Action] = {}
        self.goto: Dict[Tuple[int, str], int] = {}
        self._build()

    def _compute_first(self) -> Dict[str, Set[str]]:
        # No production of the grammar derives the empty string.
        first: Dict[str, Set[str]] = {t: {t} for t in TERMINALS}
        for nt in NONTERMINALS | {_AUGMENTED_HEAD}:
            first[nt] = set()
        changed = True
        while changed:
            changed = False
            for head, body, _ in self.rules:
                before = len(first[head])
                first[head] |= first[body[0]]
                changed |= len(first[head]) != before
        return first

    def _compute_follow(self) -> Dict[str, Set[str]]:
        follow: Dict[str, Set[str]] = {nt: set() for nt in NONTERMINALS | {_AUGMENTED_HEAD}}
        follow[_AUGMENTED_HEAD].add(END_MARKER)
        changed = True
        while changed:
            changed = False
            for head, body, _ in self.rules:
                for i, sym in enumerate(body):
                    if sym not in follow:
                        continue
                    before = len(follow[sym])
                    if i + 1 < len(body):
                        follow[sym] |= self._first[body[i + 1]]
                    else:
                        follow[sym] |= follow[head]
                    changed |= len(follow[sym]) != before
        return follow

    def _closure(self, items: Set[_Item]) -> FrozenSet[_Item]:
        result = set(items)
        work = list(items)
        while work:
            rule_no, dot = work.pop()
            body = self.rules[rule_no][1]
            if dot >= len(body) or body[dot] not in NONTERMINALS:
                continue
            for n, (head, _, _) in enumerate(self.rules):
                if head == body[dot] and (n, 0) not in result:
                    result.add((n, 0))
                    work.append((n, 0))
        return frozenset(result)

    def _goto_items(self, items: FrozenSet[_Item], symbol: str) -> FrozenSet[_Item]:
        moved = {
            (rule_no, dot + 1)
            for rule_no, dot in items
            if dot < len(self.rules[rule_no][1]) and self.rules[rule_no][1][dot] == symbol
        }
        return self._closure(moved) if moved else frozenset()

    def _set_action(self, state: int, terminal: str, action: Action) -> None:
        existing = self.action.get((state, terminal))
        if existing is not None and existing != action:
            raise ValueError(f"grammar conflict in state {state} on {terminal!r}: {existing} / {action}")
        self.action[(state, terminal)] = action

    def _build(self) -> None:
        index: Dict[FrozenSet[_Item], int] = {}
        start = self._closure({(0, 0)})
        self.states.append(start)
        index[start] = 0
        symbols = sorted(TERMINALS | NONTERMINALS)

        i = 0
        while i < len(self.states):
            items = self.states[i]
            for sym in symbols:
                target = self._goto_items(items, sym)
                if not target:
                    continue
                if target not in index:
                    index[target] = len(self.states)
                    self.states.append(target)
                if sym in NONTERMINALS:
                    self.goto[(i, sym)] = index[target]
                else:
                    self._set_action(i, sym, Shift(index[target]))

            for rule_no, dot in items:
                head, body, prod = self.rules[rule_no]
                if dot < len(body):
                    continue
                if prod is None:
                    self._set_action(i, END_MARKER, Accept())
                    continue
                for terminal in self._follow[head]:
                    self._set_action(i, terminal, Reduce(prod))
            i += 1


@lru_cache(maxsize=None)
def default_table() -> LRTable:
    """Return the shared (read-only) table for the rvcc grammar"""
    return LRTable()


# -----------------
# Driver
# -----------------

class Parser:
    """Shift/reduce driver reporting each action to its observers"""

    def __init__(self, tokens: Sequence[Token], symbol_table: Optional[SymbolTable] = None,
                 table: Optional[LRTable] = None):
        self.tokens: List[Token] = list(tokens)
        self.symbol_table = symbol_table
        self.table = table or default_table()
        self.observers: List[ActionObserver] = []
        self._states: List[int] = [0]

    def register_observer(self, observer: ActionObserver) -> None:
        self.observers.append(observer)
        if self.symbol_table is not None:
            observer.set_symbol_table(self.symbol_table)

    def _end_token(self) -> Token:
        last = self.tokens[-1]
        return Token(TokenType.EOF, "", last.line, last.column)

    @property
    def depth(self) -> int:
        """Number of grammar symbols currently on the parse stack"""
        return len(self._states) - 1

    def run(self) -> None:
        """Parse the whole token stream, raising ParserError on a syntax error"""
        self._states = [0]
        if not self.tokens:
            raise ParserError("Empty token stream")
        pos = 0

        while True:
            token = self.tokens[pos] if pos < len(self.tokens) else self._end_token()
            state = self._states[-1]
            action = self.table.action.get((state, token.kind))

            if action is None:
                expected = sorted(t for (s, t) in self.table.action if s == state)
                raise ParserError(
                    f"Unexpected token {token.kind!r} (expected one of {', '.join(expected)})", token
                )

            if isinstance(action, Shift):
                for observer in self.observers:
                    observer.on_shift(state, token)
                self._states.append(action.state)
                pos += 1
            elif isinstance(action, Reduce):
                prod = action.production
                logger.debug("reduce %s", prod)
                for observer in self.observers:
                    observer.on_reduce(state, prod)
                del self._states[len(self._states) - len(prod.body):]
                self._states.append(self.table.goto[(self._states[-1], prod.head)])
            else:
                for observer in self.observers:
                    observer.on_accept(state)
                return
