"""rvcc.semantics

Syntax-directed semantic analysis.

Runs as a parser observer alongside the IR generator. It keeps a token stack
and a type stack in lockstep with the parser and:

- propagates the declared type of `int x` into the symbol table entry of `x`
- rejects redeclarations
- rejects uses of identifiers that were never declared
"""

from __future__ import annotations

from typing import List, Optional

from rvcc.grammar import Production
from rvcc.lexer import Token, TokenType
from rvcc.parser import ActionObserver
from rvcc.symtab import SourceCodeType, SymbolTable


class SemanticError(Exception):
    """Semantic analysis error"""
    pass


class SemanticAnalyzer(ActionObserver):
    """Type propagation and declaration checks"""

    def __init__(self):
        self.symbol_table: Optional[SymbolTable] = None
        self._types: List[Optional[SourceCodeType]] = []
        self._tokens: List[Optional[Token]] = []

    def set_symbol_table(self, table: SymbolTable) -> None:
        self.symbol_table = table

    def on_shift(self, status: int, token: Token) -> None:
        self._tokens.append(token)
        self._types.append(SourceCodeType.INT if token.type == TokenType.INT else None)

    def on_reduce(self, status: int, production: Production) -> None:
        if production is Production.DECLARATION:
            ident = self._tokens[-1]
            declared = self._types[-2]
            self._pop(2)
            self._declare(ident, declared)
            self._push(None, None)
        elif production is Production.TYPE_INT:
            # D -> int keeps the type of the keyword
            ty = self._types[-1]
            self._pop(1)
            self._push(None, ty)
        else:
            if production is Production.ASSIGNMENT:
                self._check_declared(self._tokens[-3])
            elif production is Production.FACTOR_ID:
                self._check_declared(self._tokens[-1])
            self._pop(len(production.body))
            self._push(None, None)

    def on_accept(self, status: int) -> None:
        pass

    def _declare(self, ident: Token, declared: Optional[SourceCodeType]) -> None:
        table = self._require_table()
        entry = table.get(ident.value) if table.has(ident.value) else table.add(ident.value)
        if entry.type is not None:
            raise SemanticError(f"redeclaration of '{ident.value}' at {ident.line}:{ident.column}")
        entry.type = declared

    def _check_declared(self, ident: Token) -> None:
        table = self._require_table()
        if not table.has(ident.value) or table.get(ident.value).type is None:
            raise SemanticError(f"use of undeclared identifier '{ident.value}' at {ident.line}:{ident.column}")

    def _require_table(self) -> SymbolTable:
        if self.symbol_table is None:
            raise SemanticError("no symbol table bound to the semantic analyzer")
        return self.symbol_table

    def _pop(self, n: int) -> None:
        del self._tokens[len(self._tokens) - n:]
        del self._types[len(self._types) - n:]

    def _push(self, token: Optional[Token], ty: Optional[SourceCodeType]) -> None:
        self._tokens.append(token)
        self._types.append(ty)
