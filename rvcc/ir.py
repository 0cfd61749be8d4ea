"""rvcc.ir

Intermediate Representation (IR) for rvcc.

The IR is a flat list of three-address `Instruction`s over two kinds of
values:

- `IRVariable`: a named variable. Source identifiers keep their name;
  compiler temporaries are named `%t0`, `%t1`, ... and can never collide with
  a source identifier.
- `IRImmediate`: a signed integer constant.

Instructions are produced by `IRGenerator`, a parser observer performing
syntax-directed translation: it keeps a semantic value stack in lockstep with
the parser's symbol stack and emits one instruction per assignment, return
and arithmetic reduction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from rvcc.grammar import Production
from rvcc.lexer import Token
from rvcc.parser import ActionObserver
from rvcc.symtab import SymbolTable


class InvalidGrammarEvent(Exception):
    """Raised for a shift/reduce event the generator does not know.

    This means the parser and the generator disagree about the grammar; it is
    never a user error.
    """
    pass


@dataclass(frozen=True)
class IRVariable:
    name: str

    is_immediate = False

    @classmethod
    def named(cls, name: str) -> "IRVariable":
        return cls(name)

    @property
    def is_temp(self) -> bool:
        return self.name.startswith("%")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IRImmediate:
    value: int

    is_immediate = True

    def __str__(self) -> str:
        return str(self.value)


IRValue = Union[IRVariable, IRImmediate]


class InstructionKind(Enum):
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    MOV = "MOV"
    RET = "RET"


@dataclass(frozen=True)
class Instruction:
    kind: InstructionKind
    operands: Tuple[IRValue, ...] = ()
    result: Optional[IRVariable] = None

    @classmethod
    def create_add(cls, result: IRVariable, lhs: IRValue, rhs: IRValue) -> "Instruction":
        return cls(InstructionKind.ADD, (lhs, rhs), result)

    @classmethod
    def create_sub(cls, result: IRVariable, lhs: IRValue, rhs: IRValue) -> "Instruction":
        return cls(InstructionKind.SUB, (lhs, rhs), result)

    @classmethod
    def create_mul(cls, result: IRVariable, lhs: IRValue, rhs: IRValue) -> "Instruction":
        return cls(InstructionKind.MUL, (lhs, rhs), result)

    @classmethod
    def create_mov(cls, result: IRVariable, src: IRValue) -> "Instruction":
        return cls(InstructionKind.MOV, (src,), result)

    @classmethod
    def create_ret(cls, value: IRValue) -> "Instruction":
        return cls(InstructionKind.RET, (value,))

    def __str__(self) -> str:
        parts = [str(v) for v in self.operands]
        if self.result is not None:
            parts.insert(0, str(self.result))
        return f"{self.kind.value} {', '.join(parts)}"


_BINARY_FACTORIES = {
    Production.ADD: Instruction.create_add,
    Production.SUB: Instruction.create_sub,
    Production.MUL: Instruction.create_mul,
}

# Terminals that carry no value; they occupy a placeholder slot.
_STRUCTURAL_KINDS = frozenset({"int", "return", "=", ",", "Semicolon", "+", "-", "*", "/", "(", ")"})


class IRGenerator(ActionObserver):
    """Generates intermediate representation (3-Address Code) during parsing"""

    def __init__(self):
        self.symbol_table: Optional[SymbolTable] = None
        self.instructions: List[Instruction] = []
        self.temp_counter = 0
        self._stack: List[Optional[IRValue]] = []

    def set_symbol_table(self, table: SymbolTable) -> None:
        self.symbol_table = table

    @property
    def stack_depth(self) -> int:
        return len(self._stack)

    def get_ir(self) -> Tuple[Instruction, ...]:
        return tuple(self.instructions)

    def dump_ir(self, path: str) -> None:
        with open(path, 'w') as f:
            for ins in self.instructions:
                f.write(f"{ins}\n")

    # -----------------
    # Parser events
    # -----------------

    def on_shift(self, status: int, token: Token) -> None:
        kind = token.kind
        if kind == "id":
            self._stack.append(IRVariable.named(token.value))
        elif kind == "IntConst":
            if not (token.value.isascii() and token.value.isdigit()):
                raise InvalidGrammarEvent(f"Invalid integer constant: {token.value!r}")
            self._stack.append(IRImmediate(int(token.value)))
        elif kind in _STRUCTURAL_KINDS:
            self._stack.append(None)
        else:
            raise InvalidGrammarEvent(f"Invalid token type: {kind}")

    def on_reduce(self, status: int, production: Production) -> None:
        if not isinstance(production, Production):
            raise InvalidGrammarEvent(f"Unknown production: {production!r}")

        if production in (
            Production.PROGRAM,
            Production.STMT_LIST,
            Production.STMT_LIST_LAST,
            Production.DECLARATION,
            Production.TYPE_INT,
        ):
            for _ in production.body:
                self._pop()
            self._stack.append(None)
        elif production is Production.ASSIGNMENT:
            value = self._pop_value()
            self._pop()  # '='
            target = self._pop()
            if not isinstance(target, IRVariable):
                raise InvalidGrammarEvent(f"assignment target is not a variable: {target!r}")
            self.instructions.append(Instruction.create_mov(target, value))
            self._stack.append(None)
        elif production is Production.RETURN:
            value = self._pop_value()
            self._pop()  # 'return'
            self.instructions.append(Instruction.create_ret(value))
            self._stack.append(None)
        elif production in _BINARY_FACTORIES:
            rhs = self._pop_value()
            self._pop()  # operator
            lhs = self._pop_value()
            result = self._new_temp()
            self.instructions.append(_BINARY_FACTORIES[production](result, lhs, rhs))
            self._stack.append(result)
        elif production is Production.PAREN:
            self._pop()  # ')'
            value = self._pop_value()
            self._pop()  # '('
            self._stack.append(value)
        else:
            # E -> A, A -> B, B -> id, B -> IntConst: the value is already on top
            self._stack.append(self._pop_value())

    def on_accept(self, status: int) -> None:
        pass

    # -----------------
    # Helpers
    # -----------------

    def _new_temp(self) -> IRVariable:
        var = IRVariable(f"%t{self.temp_counter}")
        self.temp_counter += 1
        return var

    def _pop(self) -> Optional[IRValue]:
        if not self._stack:
            raise InvalidGrammarEvent("semantic stack underflow")
        return self._stack.pop()

    def _pop_value(self) -> IRValue:
        value = self._pop()
        if value is None:
            raise InvalidGrammarEvent("expected a value on the semantic stack, found a placeholder")
        return value
