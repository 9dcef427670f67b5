# src/hackvm/parser.py
from __future__ import annotations
import re
from typing import Callable, List, Optional, Tuple

from .lexer import (
    is_comment,
    strip_comment,
    split_command,
    grammar,
    INDEX,
    LABEL_NAME,
    FUNC_NAME,
    PUSH_SEGMENTS,
    POP_SEGMENTS,
)
from .ast import (
    Instruction, Arithmetic, Comment, Push, Pop, Label, Goto, Function, Call, Return,
)
from .symbols import TEMP_SIZE, ARITHMETIC_OPS
from .utils import is_unsigned_nbit
from .diagnostics import error, warning, Diagnostic, VMSyntaxError

MAX_CONSTANT = 0x7FFF   # mayor valor cargable con una A-instrucción (15 bits)

Builder = Callable[["re.Match[str]", int], Instruction]

def _push_or_pop(cls):
    def build(m: "re.Match[str]", lineno: int):
        if m.group("pointer") is not None:
            return cls("pointer", int(m.group("pointer")), line=lineno)
        return cls(m.group("segment"), int(m.group("index")), line=lineno)
    return build

# Formas en orden de prueba. Las gramáticas son mutuamente excluyentes;
# el orden sólo afecta a qué forma se intenta primero.
MATCHERS: Tuple[Tuple[str, "re.Pattern[str]", Builder], ...] = (
    ("arithmetic",
     grammar(rf"(?P<op>{'|'.join(sorted(ARITHMETIC_OPS))})"),
     lambda m, ln: Arithmetic(m.group("op"), line=ln)),
    ("push",
     grammar(rf"push\s+(?:(?P<segment>{PUSH_SEGMENTS})\s+{INDEX}|pointer\s+(?P<pointer>[01]))"),
     _push_or_pop(Push)),
    ("pop",
     grammar(rf"pop\s+(?:(?P<segment>{POP_SEGMENTS})\s+{INDEX}|pointer\s+(?P<pointer>[01]))"),
     _push_or_pop(Pop)),
    ("label",
     grammar(rf"label\s+{LABEL_NAME}"),
     lambda m, ln: Label(m.group("label"), line=ln)),
    ("goto",
     grammar(rf"(?P<cmd>goto|if-goto)\s+{LABEL_NAME}"),
     lambda m, ln: Goto(m.group("label"), conditional=m.group("cmd") == "if-goto", line=ln)),
    ("function",
     grammar(rf"function\s+{FUNC_NAME}\s+(?P<count>\d+)"),
     lambda m, ln: Function(m.group("name"), int(m.group("count")), line=ln)),
    ("call",
     grammar(rf"call\s+{FUNC_NAME}\s+(?P<count>\d+)"),
     lambda m, ln: Call(m.group("name"), int(m.group("count")), line=ln)),
    ("return",
     grammar(r"return"),
     lambda m, ln: Return(line=ln)),
)

def tokenize(line: str, *, index: Optional[int] = None, lineno: Optional[int] = None,
             filename: Optional[str] = None) -> Instruction:
    """Clasifica una línea ya recortada y no vacía.

    index es el número de línea significativa (sin blancos ni comentarios) y
    lineno la línea física; ambos sólo se usan para el mensaje de error.
    """
    if is_comment(line):
        return Comment(text=line, line=lineno or 0)
    for _kind, pattern, build in MATCHERS:
        m = pattern.match(line)
        if m:
            return build(m, lineno or 0)
    where = f" en la instrucción {index}" if index is not None else ""
    cmd, _args = split_command(strip_comment(line))
    raise VMSyntaxError(
        error(f"Expresión inválida '{line}'{where}", line=lineno, file=filename,
              hint=_hint(cmd)),
        text=line, index=index,
    )

_HINTS = {
    "push": "push <segmento> <n> o push pointer 0|1",
    "pop": "pop <segmento> <n> o pop pointer 0|1 (constant no admite pop)",
    "label": "label <nombre>",
    "goto": "goto <etiqueta>",
    "if-goto": "if-goto <etiqueta>",
    "function": "function <nombre> <n_locales>",
    "call": "call <nombre> <n_args>",
    "return": "return no lleva argumentos",
}

def _hint(cmd: str) -> str:
    if cmd in _HINTS:
        return _HINTS[cmd]
    if cmd in ARITHMETIC_OPS:
        return f"{cmd} no lleva argumentos"
    return f"comando desconocido '{cmd}'"

def _range_warnings(ins: Instruction, lineno: int, filename: Optional[str]) -> List[Diagnostic]:
    out: List[Diagnostic] = []
    if isinstance(ins, (Push, Pop)) and ins.segment != "pointer" and not is_unsigned_nbit(ins.index, 15):
        what = "Constante" if ins.segment == "constant" else f"Índice {ins.segment}"
        out.append(warning(f"{what} {ins.index} no cabe en una A-instrucción (máx. {MAX_CONSTANT})",
                           line=lineno, file=filename))
    if isinstance(ins, (Push, Pop)) and ins.segment == "temp" and TEMP_SIZE <= ins.index <= MAX_CONSTANT:
        out.append(warning(f"Índice temp {ins.index} fuera de 0..{TEMP_SIZE - 1}",
                           line=lineno, file=filename, hint="pisa los registros R13..R15"))
    return out

def parse(text: str, *, filename: Optional[str] = None,
          strict: bool = False) -> Tuple[List[Instruction], List[Diagnostic]]:
    """
    Devuelve (nodes, diagnostics) con una instrucción por línea no vacía.

    Reglas:
      - Líneas en blanco: se ignoran.
      - Líneas '// ...': producen Comment y no cuentan como línea significativa.
      - Resto: tokenize(); cada línea inválida añade un error y se sigue con la siguiente.

    Con strict=True, al terminar lanza un único VMSyntaxError con todos los
    errores; text e index son los de la primera línea inválida.
    """
    nodes: List[Instruction] = []
    diags: List[Diagnostic] = []
    index = 0
    first: Optional[VMSyntaxError] = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if is_comment(line):
            nodes.append(Comment(text=line, line=lineno))
            continue
        index += 1
        try:
            ins = tokenize(line, index=index, lineno=lineno, filename=filename)
        except VMSyntaxError as ex:
            diags.extend(ex.diagnostics)
            if first is None:
                first = ex
            continue
        diags.extend(_range_warnings(ins, lineno, filename))
        nodes.append(ins)

    if strict and first is not None:
        raise VMSyntaxError(*[d for d in diags if d.is_error], text=first.text, index=first.index)
    return nodes, diags
