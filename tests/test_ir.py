"""
Tests for the IR model and the syntax-directed IR generator
"""

import pytest

from rvcc.grammar import Production
from rvcc.ir import (
    Instruction,
    InstructionKind,
    IRGenerator,
    IRImmediate,
    IRVariable,
    InvalidGrammarEvent,
)
from rvcc.lexer import Lexer, Token, TokenType
from rvcc.parser import ActionObserver, Parser


def _ir(code):
    gen = IRGenerator()
    p = Parser(Lexer(code).tokenize())
    p.register_observer(gen)
    p.run()
    return [str(ins) for ins in gen.get_ir()]


class DepthChecker(ActionObserver):
    """Registered after the generator; checks its stack depth after every event"""

    def __init__(self, gen):
        self.gen = gen
        self.expected = 0
        self.samples = []

    def on_shift(self, status, token):
        self.expected += 1
        self.samples.append((self.expected, self.gen.stack_depth))

    def on_reduce(self, status, production):
        self.expected -= len(production.body) - 1
        self.samples.append((self.expected, self.gen.stack_depth))

    def on_accept(self, status):
        self.samples.append((self.expected, self.gen.stack_depth))

    def set_symbol_table(self, table):
        pass


class TestIRModel:
    def test_values(self):
        assert IRVariable.named("a") == IRVariable("a")
        assert not IRVariable("a").is_immediate
        assert IRImmediate(-3).is_immediate
        assert str(IRImmediate(-3)) == "-3"
        assert IRVariable("%t0").is_temp
        assert not IRVariable("t0").is_temp

    def test_instruction_text(self):
        a, t = IRVariable("a"), IRVariable("%t0")
        assert str(Instruction.create_add(t, a, IRImmediate(1))) == "ADD %t0, a, 1"
        assert str(Instruction.create_mov(a, t)) == "MOV a, %t0"
        assert str(Instruction.create_ret(a)) == "RET a"

    def test_instructions_are_immutable(self):
        ins = Instruction.create_ret(IRImmediate(0))
        with pytest.raises(Exception):
            ins.kind = InstructionKind.MOV


class TestTranslation:
    def test_declarations_emit_nothing(self):
        assert _ir("int a; int b;") == []

    def test_assignment_and_return(self):
        assert _ir("int a; a = 3; return a;") == ["MOV a, 3", "RET a"]

    def test_binary_operation_uses_fresh_temporary(self):
        assert _ir("int a; a = 1 + 2; return a;") == ["ADD %t0, 1, 2", "MOV a, %t0", "RET a"]

    def test_operands_keep_source_order(self):
        assert _ir("int a; a = 1 - a;") == ["SUB %t0, 1, a", "MOV a, %t0"]

    def test_precedence(self):
        assert _ir("int a; int b; b = a + a * 3;") == [
            "MUL %t0, a, 3",
            "ADD %t1, a, %t0",
            "MOV b, %t1",
        ]

    def test_parentheses(self):
        assert _ir("int a; int b; b = (a + 3) * a; return b;") == [
            "ADD %t0, a, 3",
            "MUL %t1, %t0, a",
            "MOV b, %t1",
            "RET b",
        ]

    def test_left_associative_subtraction(self):
        assert _ir("int b; b = 10 - 1 - 2;") == ["SUB %t0, 10, 1", "SUB %t1, %t0, 2", "MOV b, %t1"]

    def test_return_of_literal(self):
        assert _ir("return 7;") == ["RET 7"]

    def test_statements_after_return_are_translated(self):
        assert _ir("int a; a = 1; return a; a = 2;") == ["MOV a, 1", "RET a", "MOV a, 2"]

    def test_temporaries_are_never_reused(self):
        gen = IRGenerator()
        p = Parser(Lexer("int a; a = (1 + 2) * (3 - 4) + 5 * 6; return a * 2;").tokenize())
        p.register_observer(gen)
        p.run()
        results = [ins.result for ins in gen.get_ir() if ins.kind not in (InstructionKind.MOV, InstructionKind.RET)]
        assert len(results) == 6
        assert len(set(results)) == len(results)
        assert all(r.is_temp for r in results)

    def test_temporary_ids_are_per_generator(self):
        assert _ir("int a; a = a + 1;")[0] == "ADD %t0, a, 1"
        assert _ir("int a; a = a + 1;")[0] == "ADD %t0, a, 1"

    def test_ir_is_read_only(self):
        gen = IRGenerator()
        p = Parser(Lexer("return 1;").tokenize())
        p.register_observer(gen)
        p.run()
        assert isinstance(gen.get_ir(), tuple)

    def test_dump_ir(self, tmp_path):
        gen = IRGenerator()
        p = Parser(Lexer("int a; a = 2 * a; return a;").tokenize())
        p.register_observer(gen)
        p.run()
        out = tmp_path / "ir.txt"
        gen.dump_ir(str(out))
        assert out.read_text() == "MUL %t0, 2, a\nMOV a, %t0\nRET a\n"


@pytest.mark.parametrize("code", [
    "int a;",
    "int a; a = 1; return a;",
    "int a; int b; b = (a + 3) * (a - (2 * a)); return b + 1;",
    "return ((((1))));",
])
def test_stack_depth_tracks_parser(code):
    gen = IRGenerator()
    checker = DepthChecker(gen)
    p = Parser(Lexer(code).tokenize())
    p.register_observer(gen)
    p.register_observer(checker)
    p.run()
    assert checker.samples
    assert all(expected == actual for expected, actual in checker.samples)
    # P is the only symbol left when the parser accepts
    assert gen.stack_depth == 1


class TestInvalidEvents:
    def test_unknown_token_kind(self):
        with pytest.raises(InvalidGrammarEvent):
            IRGenerator().on_shift(0, Token(TokenType.EOF))

    def test_unknown_production(self):
        with pytest.raises(InvalidGrammarEvent):
            IRGenerator().on_reduce(0, 99)

    def test_stack_underflow(self):
        with pytest.raises(InvalidGrammarEvent):
            IRGenerator().on_reduce(0, Production.ADD)

    def test_placeholder_where_value_expected(self):
        gen = IRGenerator()
        gen.on_shift(0, Token(TokenType.RETURN))
        gen.on_shift(0, Token(TokenType.SEMICOLON))
        with pytest.raises(InvalidGrammarEvent):
            gen.on_reduce(0, Production.RETURN)

    def test_handcrafted_event_sequence(self):
        """x = 4 * y, driven without a parser"""
        gen = IRGenerator()
        gen.on_shift(0, Token(TokenType.ID, "x"))
        gen.on_shift(0, Token(TokenType.ASSIGN))
        gen.on_shift(0, Token(TokenType.INT_CONST, "4"))
        gen.on_reduce(0, Production.FACTOR_CONST)
        gen.on_reduce(0, Production.TERM_FACTOR)
        gen.on_shift(0, Token(TokenType.STAR))
        gen.on_shift(0, Token(TokenType.ID, "y"))
        gen.on_reduce(0, Production.FACTOR_ID)
        gen.on_reduce(0, Production.MUL)
        gen.on_reduce(0, Production.EXPR_TERM)
        gen.on_reduce(0, Production.ASSIGNMENT)
        gen.on_accept(0)
        assert [str(i) for i in gen.get_ir()] == ["MUL %t0, 4, y", "MOV x, %t0"]
        assert gen.stack_depth == 1

    @pytest.mark.parametrize("lexeme", ["²", "١", "", "1a"])
    def test_malformed_integer_constant(self, lexeme):
        with pytest.raises(InvalidGrammarEvent):
            IRGenerator().on_shift(0, Token(TokenType.INT_CONST, lexeme))


class TestBinaryFactories:
    def _first(self, code):
        gen = IRGenerator()
        p = Parser(Lexer(code).tokenize())
        p.register_observer(gen)
        p.run()
        return gen.get_ir()[0]

    def test_add(self):
        assert self._first("return a + 1;") == Instruction.create_add(IRVariable("%t0"), IRVariable("a"), IRImmediate(1))

    def test_sub(self):
        assert self._first("return 1 - a;") == Instruction.create_sub(IRVariable("%t0"), IRImmediate(1), IRVariable("a"))

    def test_mul(self):
        assert self._first("return a * b;") == Instruction.create_mul(IRVariable("%t0"), IRVariable("a"), IRVariable("b"))
