"""
Main Compiler Driver

Orchestrates the compilation pipeline:

    Lexer -> Parser (+ SemanticAnalyzer, IRGenerator observers) -> CodeGenerator
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from rvcc.codegen import CodeGenerator
from rvcc.ir import Instruction, IRGenerator
from rvcc.lexer import Lexer, Token
from rvcc.parser import Parser
from rvcc.semantics import SemanticAnalyzer
from rvcc.symtab import SymbolTable


logger = logging.getLogger(__name__)


TOKENS_FILE = "tokens.txt"
OLD_SYMBOL_TABLE_FILE = "old_symbol_table.txt"
NEW_SYMBOL_TABLE_FILE = "new_symbol_table.txt"
IR_FILE = "intermediate_code.txt"
ASSEMBLY_FILE = "assembly_language.asm"


@dataclass
class CompilationResult:
    """Result of compilation"""
    success: bool
    output_file: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    tokens: List[Token] = field(default_factory=list)
    ir: Tuple[Instruction, ...] = ()
    assembly: Optional[str] = None


class Compiler:
    """Main compiler class orchestrating all compilation stages"""

    def __init__(self, materialize_rhs_immediates: bool = False, dump_dir: Optional[str] = None):
        self.materialize_rhs_immediates = materialize_rhs_immediates
        # When set, every intermediate artifact is written into this directory.
        self.dump_dir = dump_dir

    def compile_file(self, source_file: str, output_file: Optional[str] = None) -> CompilationResult:
        """Compile a source file, writing assembly to `output_file` if given"""
        try:
            with open(source_file, 'r') as f:
                source_code = f.read()
        except IOError as e:
            return CompilationResult(success=False, errors=[f"Failed to read source file: {e}"])
        return self.compile_code(source_code, output_file)

    def compile_code(self, source_code: str, output_file: Optional[str] = None) -> CompilationResult:
        """Compile source code"""
        symbol_table = SymbolTable()

        # Phase 1: Lexical Analysis
        try:
            tokens = Lexer(source_code, symbol_table).tokenize()
        except Exception as e:
            return CompilationResult(success=False, errors=[f"Lexical analysis failed: {e}"])
        logger.debug("lexed %d tokens", len(tokens))
        self._dump(TOKENS_FILE, "".join(f"{t}\n" for t in tokens))
        self._dump_symbols(OLD_SYMBOL_TABLE_FILE, symbol_table)

        # Phase 2: Syntax-directed translation (semantic analysis + IR generation)
        semantics = SemanticAnalyzer()
        ir_gen = IRGenerator()
        parser = Parser(tokens, symbol_table)
        parser.register_observer(semantics)
        parser.register_observer(ir_gen)
        try:
            parser.run()
        except Exception as e:
            return CompilationResult(success=False, tokens=tokens, errors=[f"Syntax-directed translation failed: {e}"])
        ir = ir_gen.get_ir()
        logger.debug("generated %d IR instructions", len(ir))
        self._dump_symbols(NEW_SYMBOL_TABLE_FILE, symbol_table)
        self._dump(IR_FILE, "".join(f"{ins}\n" for ins in ir))

        # Phase 3: Code Generation
        try:
            assembly = self.get_assembly(ir)
        except Exception as e:
            return CompilationResult(success=False, tokens=tokens, ir=ir, errors=[f"Code generation failed: {e}"])
        self._dump(ASSEMBLY_FILE, assembly)

        if output_file:
            try:
                with open(output_file, 'w') as f:
                    f.write(assembly)
            except IOError as e:
                return CompilationResult(success=False, errors=[f"Failed to write output file: {e}"])

        return CompilationResult(
            success=True,
            output_file=output_file,
            tokens=tokens,
            ir=ir,
            assembly=assembly,
        )

    def get_assembly(self, ir: Tuple[Instruction, ...]) -> str:
        return CodeGenerator(materialize_rhs_immediates=self.materialize_rhs_immediates).generate(ir)

    def _dump(self, name: str, text: str) -> None:
        if not self.dump_dir:
            return
        os.makedirs(self.dump_dir, exist_ok=True)
        path = os.path.join(self.dump_dir, name)
        with open(path, 'w') as f:
            f.write(text)
        logger.debug("wrote %s", path)

    def _dump_symbols(self, name: str, table: SymbolTable) -> None:
        if not self.dump_dir:
            return
        os.makedirs(self.dump_dir, exist_ok=True)
        table.dump(os.path.join(self.dump_dir, name))
