"""
rvcc - a small syntax-directed compiler to RISC-V assembly

Lexing, SLR parsing with observer-driven translation (type propagation and
three-address IR generation), and register-allocating code generation for a
single basic block.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .lexer import Lexer, Token, TokenType
from .symtab import SymbolTable
from .grammar import Production
from .parser import ActionObserver, Parser
from .semantics import SemanticAnalyzer
from .ir import IRGenerator, Instruction
from .codegen import CodeGenerator
from .compiler import Compiler

__all__ = [
    'Lexer',
    'Token',
    'TokenType',
    'SymbolTable',
    'Production',
    'ActionObserver',
    'Parser',
    'SemanticAnalyzer',
    'IRGenerator',
    'Instruction',
    'CodeGenerator',
    'Compiler',
]
