# src/hackvm/codegen.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

from .ast import (
    Instruction, Arithmetic, Comment, Push, Pop, Label, Goto, Function, Call, Return,
)
from .hack import AsmLine, Block, at, assign, jump, label
from .symbols import (
    SP, LCL, ARG, THIS, THAT,
    SCRATCH_ADDR, SCRATCH_FRAME, SCRATCH_RET,
    POINTER_CELLS, SEGMENT_BASE, SAVED_FRAME, FRAME_SIZE,
    UNARY_OPS, BINARY_OPS, COMPARISON_OPS,
    segment_base, temp_address, static_symbol,
)
from .diagnostics import error, VMReferenceError, VMInternalError

# ---------------- Contexto de generación ----------------

@dataclass
class LabelCounter:
    """Contador creciente para etiquetas únicas (comparaciones y retornos de call)."""
    value: int = 0

    def take(self) -> int:
        n = self.value
        self.value += 1
        return n

@dataclass
class GenContext:
    unit: str                                   # nombre visible de la unidad (espacio de 'static')
    registry: Mapping[str, int] = field(default_factory=dict)
    counter: LabelCounter = field(default_factory=LabelCounter)
    filename: Optional[str] = None

# ---------------- Fragmentos comunes ----------------

def _push_d() -> List[AsmLine]:
    # *SP = D; SP++
    return [at(SP), assign("M", "M+1"), assign("A", "M-1"), assign("M", "D")]

def _pop_d() -> List[AsmLine]:
    # SP--; D = *SP
    return [at(SP), assign("M", "M-1"), assign("A", "M"), assign("D", "M")]

def _top() -> List[AsmLine]:
    # A apunta a la cima
    return [at(SP), assign("A", "M-1")]

# ---------------- Por forma de instrucción ----------------

def gen_arithmetic(ins: Arithmetic, ctx: GenContext) -> List[AsmLine]:
    op = ins.op
    if op in UNARY_OPS:
        return _top() + [assign("M", UNARY_OPS[op])]
    if op in BINARY_OPS:
        return _pop_d() + [assign("A", "A-1"), assign("M", BINARY_OPS[op])]
    if op in COMPARISON_OPS:
        n = ctx.counter.take()
        tag = op.upper()
        l_true, l_false, l_end = f"{tag}_TRUE_{n}", f"{tag}_FALSE_{n}", f"{tag}_END_{n}"
        return _pop_d() + [
            assign("A", "A-1"),
            assign("D", "M-D"),
            at(l_true), jump("D", COMPARISON_OPS[op]),
            at(l_false), jump("0"),
            label(l_true), *_top(), assign("M", "-1"),
            at(l_end), jump("0"),
            label(l_false), *_top(), assign("M", "0"),
            label(l_end),
        ]
    raise VMInternalError(error(f"Operador aritmético desconocido: {op}", line=ins.line, file=ctx.filename))

def gen_push(ins: Push, ctx: GenContext) -> List[AsmLine]:
    seg, i = ins.segment, ins.index
    if seg == "constant":
        return [at(i), assign("D", "A")] + _push_d()
    if seg == "pointer":
        return [at(POINTER_CELLS[i]), assign("D", "M")] + _push_d()
    if seg == "temp":
        return [at(temp_address(i)), assign("D", "M")] + _push_d()
    if seg == "static":
        return [at(static_symbol(ctx.unit, i)), assign("D", "M")] + _push_d()
    if seg in SEGMENT_BASE:
        return [at(segment_base(seg)), assign("D", "M"), at(i), assign("A", "D+A"), assign("D", "M")] + _push_d()
    raise VMInternalError(error(f"Segmento desconocido: {seg}", line=ins.line, file=ctx.filename))

def gen_pop(ins: Pop, ctx: GenContext) -> List[AsmLine]:
    seg, i = ins.segment, ins.index
    if seg == "pointer":
        return _pop_d() + [at(POINTER_CELLS[i]), assign("M", "D")]
    if seg == "temp":
        return _pop_d() + [at(temp_address(i)), assign("M", "D")]
    if seg == "static":
        return _pop_d() + [at(static_symbol(ctx.unit, i)), assign("M", "D")]
    if seg in SEGMENT_BASE:
        # la dirección destino se calcula antes del pop: el pop usa D y A
        return [
            at(segment_base(seg)), assign("D", "M"), at(i), assign("D", "D+A"),
            at(SCRATCH_ADDR), assign("M", "D"),
            *_pop_d(),
            at(SCRATCH_ADDR), assign("A", "M"), assign("M", "D"),
        ]
    raise VMInternalError(error(f"No se puede hacer pop a '{seg}'", line=ins.line, file=ctx.filename))

def gen_goto(ins: Goto, ctx: GenContext) -> List[AsmLine]:
    if ins.conditional:
        return _pop_d() + [at(ins.label), jump("D", "JNE")]
    return [at(ins.label), jump("0")]

def return_label(name: str, n: int) -> str:
    return f"{name}$ret.{n}"

def gen_call(ins: Call, ctx: GenContext) -> List[AsmLine]:
    n_locals = ctx.registry.get(ins.name)
    if n_locals is None:
        raise VMReferenceError(
            error(f"La función {ins.name} no está definida", line=ins.line, file=ctx.filename,
                  hint=f"declárala con 'function {ins.name} <n>'"),
            name=ins.name,
        )
    ret = return_label(ins.name, ctx.counter.take())
    code: List[AsmLine] = [at(ret), assign("D", "A")] + _push_d()
    for reg in SAVED_FRAME:
        code += [at(reg), assign("D", "M")] + _push_d()
    code += [at(SP), assign("D", "M"), at(LCL), assign("M", "D")]
    for _ in range(n_locals):
        code += [at(SP), assign("M", "M+1"), assign("A", "M-1"), assign("M", "0")]
    code += [
        at(SP), assign("D", "M"), at(FRAME_SIZE + ins.n_args + n_locals), assign("D", "D-A"),
        at(ARG), assign("M", "D"),
        at(ins.name), jump("0"),
        label(ret),
    ]
    return code

def _restore(reg: str, offset: int) -> List[AsmLine]:
    # reg = *(R14 + offset)
    return [at(SCRATCH_FRAME), assign("D", "M"), at(offset), assign("A", "D+A"), assign("D", "M"),
            at(reg), assign("M", "D")]

def gen_return(ins: Return, ctx: GenContext) -> List[AsmLine]:
    code: List[AsmLine] = [
        # R13 = ARG: ahí queda el valor devuelto
        at(ARG), assign("D", "M"), at(SCRATCH_ADDR), assign("M", "D"),
        # R14 = LCL - 5: bloque guardado por call
        at(LCL), assign("D", "M"), at(FRAME_SIZE), assign("D", "D-A"), at(SCRATCH_FRAME), assign("M", "D"),
        # R15 = dirección de retorno, antes de restaurar el marco
        assign("A", "D"), assign("D", "M"), at(SCRATCH_RET), assign("M", "D"),
    ]
    code += _restore(THAT, 4) + _restore(THIS, 3) + _restore(ARG, 2) + _restore(LCL, 1)
    code += [
        *_top(), assign("D", "M"), at(SCRATCH_ADDR), assign("A", "M"), assign("M", "D"),
        at(SCRATCH_ADDR), assign("D", "M"), at(SP), assign("M", "D+1"),
        at(SCRATCH_RET), assign("A", "M"), jump("0"),
    ]
    return code

# ---------------- Generador principal ----------------

def generate(ins: Instruction, ctx: GenContext) -> Block:
    """Bloque de micro-instrucciones para una instrucción VM.

    Comment devuelve un bloque vacío. Las comparaciones y los call consumen
    un valor del contador de ctx.
    """
    if isinstance(ins, Comment):
        return ()
    if isinstance(ins, Arithmetic):
        return tuple(gen_arithmetic(ins, ctx))
    if isinstance(ins, Push):
        return tuple(gen_push(ins, ctx))
    if isinstance(ins, Pop):
        return tuple(gen_pop(ins, ctx))
    if isinstance(ins, Label):
        return (label(ins.name),)
    if isinstance(ins, Goto):
        return tuple(gen_goto(ins, ctx))
    if isinstance(ins, Function):
        return (label(ins.name),)
    if isinstance(ins, Call):
        return tuple(gen_call(ins, ctx))
    if isinstance(ins, Return):
        return tuple(gen_return(ins, ctx))
    raise VMInternalError(error(f"Tipo de instrucción inválido: {type(ins).__name__}", file=ctx.filename))

def generate_unit(nodes: Sequence[Instruction], ctx: GenContext) -> List[Block]:
    """Pasada 2: un bloque por instrucción no comentario, en orden."""
    blocks: List[Block] = []
    for n in nodes:
        block = generate(n, ctx)
        if block:
            blocks.append(block)
    return blocks
