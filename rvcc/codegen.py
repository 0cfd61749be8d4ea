"""rvcc.codegen

RISC-V (RV32IM subset) code generator.

Lowers the IR of a single basic block into assembly text, allocating physical
registers on the fly. Lowering stops after the first RET; anything after it
is unreachable.

Register budget (three classes, consulted in this order):

- scratch:          t0..t2  (x5..x7)
- argument:         a0..a7  (x10..x17)
- extended scratch: t3..t6  (x28..x31)

When every register is taken, the register of a variable that is not read by
the current or any later instruction is reassigned ("stolen"). There is no
spill to memory: if nothing can be stolen, `RegisterExhausted` is raised.

Emitted mnemonics: add, addi, sub, mul, li, mv.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set

from rvcc.ir import Instruction, InstructionKind, IRImmediate, IRValue, IRVariable


logger = logging.getLogger(__name__)


SCRATCH_REGISTERS = range(5, 8)
ARGUMENT_REGISTERS = range(10, 18)
EXTENDED_SCRATCH_REGISTERS = range(28, 32)
REGISTER_CLASSES = (SCRATCH_REGISTERS, ARGUMENT_REGISTERS, EXTENDED_SCRATCH_REGISTERS)

RETURN_REGISTER = 10  # a0


class CodeGenerationError(Exception):
    """Base class for code generation failures"""
    pass


class RegisterExhausted(CodeGenerationError):
    """No free register and no variable whose register may be stolen"""
    pass


class InvalidOperandCombination(CodeGenerationError):
    """Instruction shape the target cannot encode (operand count or placement)"""
    pass


class InvalidRegisterNumber(CodeGenerationError):
    pass


def register_name(number: int) -> str:
    """Map a physical register number to its ABI name"""
    if number in SCRATCH_REGISTERS:
        return f"t{number - 5}"
    if number in ARGUMENT_REGISTERS:
        return f"a{number - 10}"
    if number in EXTENDED_SCRATCH_REGISTERS:
        return f"t{number - 25}"
    raise InvalidRegisterNumber(f"Invalid register number: {number}")


class RegisterAllocator:
    """Variable <-> register bijection for one code generation run.

    `position` is the index of the instruction being lowered; a variable is
    still live while it is an operand of that instruction or a later one, or
    while it is pinned for the current instruction.
    """

    def __init__(self, instructions: Sequence[Instruction]):
        self._var_to_reg: Dict[IRVariable, int] = {}
        self._reg_to_var: Dict[int, IRVariable] = {}
        self._pinned: Set[IRVariable] = set()
        self.position = 0

        self._last_use: Dict[IRVariable, int] = {}
        for i, ins in enumerate(instructions):
            for op in ins.operands:
                if isinstance(op, IRVariable):
                    self._last_use[op] = i

    def advance(self, position: int, result: Optional[IRVariable] = None) -> None:
        """Move to instruction `position`; its result stays pinned while it is lowered"""
        self.position = position
        self._pinned = {result} if result is not None else set()

    def pin(self, var: IRVariable) -> None:
        self._pinned.add(var)

    def is_referenced(self, var: IRVariable) -> bool:
        if var in self._pinned:
            return True
        return self._last_use.get(var, -1) >= self.position

    def assignments(self) -> Dict[IRVariable, int]:
        return dict(self._var_to_reg)

    def get_register(self, var: IRVariable) -> int:
        reg = self._var_to_reg.get(var)
        if reg is not None:
            return reg

        for cls in REGISTER_CLASSES:
            for reg in cls:
                if reg not in self._reg_to_var:
                    self._assign(var, reg)
                    return reg

        for victim, reg in list(self._var_to_reg.items()):
            if not self.is_referenced(victim):
                logger.debug("steal %s from %s for %s", register_name(reg), victim, var)
                del self._var_to_reg[victim]
                del self._reg_to_var[reg]
                self._assign(var, reg)
                return reg

        raise RegisterExhausted(
            f"No available register for {var} at instruction {self.position}"
        )

    def _assign(self, var: IRVariable, reg: int) -> None:
        self._var_to_reg[var] = reg
        self._reg_to_var[reg] = var
        logger.debug("assign %s -> %s", var, register_name(reg))


class CodeGenerator:
    """Generates RISC-V assembly code from IR"""

    def __init__(self, materialize_rhs_immediates: bool = False):
        # When False, a right-hand immediate of SUB/MUL is emitted as a literal
        # in the register slot.
        self.materialize_rhs_immediates = materialize_rhs_immediates
        self.assembly_lines: List[str] = []
        self._alloc: Optional[RegisterAllocator] = None

    def generate(self, instructions: Sequence[Instruction]) -> str:
        """Generate assembly text for `instructions`"""
        self.assembly_lines = [".text"]
        self._alloc = RegisterAllocator(instructions)

        for pos, ins in enumerate(instructions):
            self._alloc.advance(pos, ins.result)
            if ins.kind is InstructionKind.ADD:
                self._gen_add(ins)
            elif ins.kind in (InstructionKind.SUB, InstructionKind.MUL):
                self._gen_sub_mul(ins)
            elif ins.kind is InstructionKind.MOV:
                self._gen_mov(ins)
            elif ins.kind is InstructionKind.RET:
                self._gen_ret(ins)
                break
            else:
                raise InvalidOperandCombination(f"Operation not supported: {ins.kind}")

        return "\n".join(self.assembly_lines) + "\n"

    def dump(self, path: str) -> None:
        with open(path, 'w') as f:
            f.write("\n".join(self.assembly_lines) + "\n")

    # -----------------
    # Helpers
    # -----------------

    def _emit(self, line: str) -> None:
        self.assembly_lines.append(f"    {line}")

    def _reg(self, var: IRVariable) -> str:
        return register_name(self._alloc.get_register(var))

    def _dest(self, ins: Instruction) -> str:
        if ins.result is None:
            raise InvalidOperandCombination(f"{ins.kind.value} instruction requires a result")
        return self._reg(ins.result)

    def _src(self, value: IRValue) -> str:
        """Register name for a variable, literal text for an immediate"""
        if isinstance(value, IRImmediate):
            return str(value.value)
        return self._reg(value)

    def _materialize(self, imm: IRImmediate, slot: int) -> str:
        scratch = IRVariable(f"%imm{slot}")
        reg = self._reg(scratch)
        self._alloc.pin(scratch)
        self._emit(f"li {reg}, {imm.value}")
        return reg

    @staticmethod
    def _check_arity(ins: Instruction, count: int) -> None:
        if len(ins.operands) != count:
            raise InvalidOperandCombination(
                f"{ins.kind.value} instruction requires exactly {count} operand(s), got {len(ins.operands)}"
            )

    # -----------------
    # Lowering
    # -----------------

    def _gen_add(self, ins: Instruction) -> None:
        self._check_arity(ins, 2)
        lhs, rhs = ins.operands
        if lhs.is_immediate and rhs.is_immediate:
            raise InvalidOperandCombination("ADD instruction cannot have both operands as immediate values")

        dest = self._dest(ins)
        if lhs.is_immediate:
            self._emit(f"addi {dest}, {self._src(rhs)}, {lhs.value}")
        elif rhs.is_immediate:
            self._emit(f"addi {dest}, {self._src(lhs)}, {rhs.value}")
        else:
            self._emit(f"add {dest}, {self._src(lhs)}, {self._src(rhs)}")

    def _gen_sub_mul(self, ins: Instruction) -> None:
        self._check_arity(ins, 2)
        mnemonic = ins.kind.value.lower()
        lhs, rhs = ins.operands

        dest = self._dest(ins)
        src1 = None if lhs.is_immediate else self._src(lhs)
        src2 = self._src(rhs)
        if lhs.is_immediate:
            src1 = self._materialize(lhs, 0)
        if rhs.is_immediate and self.materialize_rhs_immediates:
            src2 = self._materialize(rhs, 1)
        self._emit(f"{mnemonic} {dest}, {src1}, {src2}")

    def _gen_mov(self, ins: Instruction) -> None:
        self._check_arity(ins, 1)
        src = ins.operands[0]
        dest = self._dest(ins)
        if src.is_immediate:
            self._emit(f"li {dest}, {src.value}")
        else:
            self._emit(f"mv {dest}, {self._src(src)}")

    def _gen_ret(self, ins: Instruction) -> None:
        if not ins.operands:
            return
        self._check_arity(ins, 1)
        value = ins.operands[0]
        ret = register_name(RETURN_REGISTER)
        if value.is_immediate:
            self._emit(f"li {ret}, {value.value}")
        else:
            self._emit(f"mv {ret}, {self._src(value)}")
