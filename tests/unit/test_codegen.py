import pytest
from src.hackvm.ast import Arithmetic, Comment, Push, Pop, Label, Goto, Function, Call, Return
from src.hackvm.codegen import GenContext, LabelCounter, generate, generate_unit
from src.hackvm.hack import AInstr, CInstr, LabelDecl, render_block
from src.hackvm.diagnostics import VMReferenceError, VMInternalError

def _ctx(**registry):
    return GenContext(unit="Main", registry=registry)

def _text(block):
    return "\n".join(render_block(block))

def _labels(block):
    return [x.name for x in block if isinstance(x, LabelDecl)]

def test_push_constant_exact():
    assert _text(generate(Push("constant", 7), _ctx())) == "@7\nD=A\n@SP\nM=M+1\nA=M-1\nM=D"

def test_pop_local_goes_through_r13():
    block = generate(Pop("local", 2), _ctx())
    assert _text(block) == (
        "@LCL\nD=M\n@2\nD=D+A\n@R13\nM=D\n"
        "@SP\nM=M-1\nA=M\nD=M\n"
        "@R13\nA=M\nM=D"
    )

@pytest.mark.parametrize("ins, addr", [
    (Push("temp", 3), AInstr(8)),
    (Pop("temp", 0), AInstr(5)),
    (Push("static", 4), AInstr("Main.4")),
    (Pop("static", 1), AInstr("Main.1")),
    (Push("pointer", 0), AInstr("R3")),
    (Pop("pointer", 1), AInstr("R4")),
])
def test_direct_segments(ins, addr):
    block = generate(ins, _ctx())
    assert addr in block
    assert AInstr("R13") not in block

def test_unary_ops_in_place():
    assert _text(generate(Arithmetic("neg"), _ctx())) == "@SP\nA=M-1\nM=-M"
    assert _text(generate(Arithmetic("not"), _ctx())) == "@SP\nA=M-1\nM=!M"

def test_binary_op_uses_table():
    assert _text(generate(Arithmetic("sub"), _ctx())) == "@SP\nM=M-1\nA=M\nD=M\nA=A-1\nM=M-D"

def test_comparisons_use_fresh_labels():
    ctx = _ctx()
    a = generate(Arithmetic("eq"), ctx)
    b = generate(Arithmetic("eq"), ctx)
    assert _labels(a) == ["EQ_TRUE_0", "EQ_FALSE_0", "EQ_END_0"]
    assert _labels(b) == ["EQ_TRUE_1", "EQ_FALSE_1", "EQ_END_1"]
    assert not set(_labels(a)) & set(_labels(b))
    assert ctx.counter.value == 2
    assert CInstr(comp="D", jump="JEQ") in a

def test_goto_forms():
    assert _text(generate(Goto("LOOP"), _ctx())) == "@LOOP\n0;JMP"
    assert _text(generate(Goto("LOOP", conditional=True), _ctx())) == "@SP\nM=M-1\nA=M\nD=M\n@LOOP\nD;JNE"

def test_label_and_function_are_bare_labels():
    assert generate(Label("X"), _ctx()) == (LabelDecl("X"),)
    assert generate(Function("Main.main", 3), _ctx()) == (LabelDecl("Main.main"),)

def test_comment_generates_nothing():
    assert generate(Comment("// x"), _ctx()) == ()

def test_call_layout():
    ctx = _ctx(**{"Math.mul": 2})
    block = generate(Call("Math.mul", 3), ctx)
    assert block[0] == AInstr("Math.mul$ret.0")
    assert block[-1] == LabelDecl("Math.mul$ret.0")
    assert block[-3:-1] == (AInstr("Math.mul"), CInstr(comp="0", jump="JMP"))
    # 2 locales puestos a cero por el llamador
    assert sum(1 for x in block if x == CInstr(comp="0", dest="M")) == 2
    # ARG = SP - (5 + 3 + 2)
    assert AInstr(10) in block
    saved = [x.value for x in block if isinstance(x, AInstr) and x.value in ("LCL", "ARG", "THIS", "THAT")]
    assert saved[:4] == ["LCL", "ARG", "THIS", "THAT"]
    assert ctx.counter.value == 1

def test_call_to_undeclared_function():
    ctx = _ctx()
    with pytest.raises(VMReferenceError) as info:
        generate(Call("Nope.f", 0, line=7), ctx)
    assert info.value.name == "Nope.f"
    assert info.value.diagnostic.line == 7
    # no consume etiqueta
    assert ctx.counter.value == 0

def test_return_saves_return_address_before_restoring_frame():
    block = list(generate(Return(), _ctx()))
    i_r15 = block.index(AInstr("R15"))
    i_that = block.index(AInstr("THAT"))
    assert i_r15 < i_that
    restored = [x.value for x in block[i_r15 + 2:] if isinstance(x, AInstr) and x.value in ("THAT", "THIS", "ARG", "LCL")]
    assert restored == ["THAT", "THIS", "ARG", "LCL"]
    assert block[-1] == CInstr(comp="0", jump="JMP")

def test_unknown_instruction_is_internal_error():
    with pytest.raises(VMInternalError):
        generate(object(), _ctx())

def test_generate_unit_skips_comments():
    ctx = _ctx()
    blocks = generate_unit([Comment("// a"), Push("constant", 1), Comment("// b"), Arithmetic("neg")], ctx)
    assert len(blocks) == 2

def test_shared_counter_between_contexts():
    counter = LabelCounter()
    a = GenContext(unit="A", registry={"f": 0}, counter=counter)
    b = GenContext(unit="B", registry={"f": 0}, counter=counter)
    generate(Arithmetic("lt"), a)
    blk = generate(Call("f", 0), b)
    assert blk[-1] == LabelDecl("f$ret.1")
