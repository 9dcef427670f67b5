'''
micro-instrucciones Hack (A, C, etiqueta) y su representación textual
'''

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

@dataclass(frozen=True)
class AInstr:
    """@value: carga una constante o un símbolo en A."""
    value: Union[int, str]

    def __str__(self) -> str:
        return f"@{self.value}"

@dataclass(frozen=True)
class CInstr:
    """dest=comp;jump (dest y jump opcionales)."""
    comp: str
    dest: Optional[str] = None
    jump: Optional[str] = None

    def __str__(self) -> str:
        s = self.comp
        if self.dest:
            s = f"{self.dest}={s}"
        if self.jump:
            s = f"{s};{self.jump}"
        return s

@dataclass(frozen=True)
class LabelDecl:
    """(NAME): declaración de etiqueta, no ocupa dirección de ROM."""
    name: str

    def __str__(self) -> str:
        return f"({self.name})"

AsmLine = Union[AInstr, CInstr, LabelDecl]
Block = Tuple[AsmLine, ...]

# ---- Constructores cortos usados por el generador ----

def at(value: Union[int, str]) -> AInstr:
    return AInstr(value)

def assign(dest: str, comp: str) -> CInstr:
    return CInstr(comp=comp, dest=dest)

def jump(comp: str, cond: str = "JMP") -> CInstr:
    return CInstr(comp=comp, jump=cond)

def label(name: str) -> LabelDecl:
    return LabelDecl(name)

# ---- Texto ----

def render_block(block: Iterable[AsmLine]) -> List[str]:
    return [str(x) for x in block]

def render(blocks: Iterable[Block]) -> str:
    """Une los bloques con una línea en blanco entre ellos."""
    parts = ["\n".join(render_block(b)) for b in blocks if b]
    if not parts:
        return ""
    return "\n\n".join(parts) + "\n"

def parse_line(text: str) -> Optional[AsmLine]:
    """Convierte una línea de ensamblador Hack en micro-instrucción (None si está vacía)."""
    s = text.split("//", 1)[0].strip()
    if not s:
        return None
    if s.startswith("(") and s.endswith(")") and len(s) >= 3:
        return LabelDecl(s[1:-1].strip())
    if s.startswith("@"):
        v = s[1:].strip()
        return AInstr(int(v) if v.isdigit() else v)
    dest, rest = None, s
    if "=" in rest:
        dest, rest = rest.split("=", 1)
        dest = dest.strip()
    jmp = None
    if ";" in rest:
        rest, jmp = rest.split(";", 1)
        jmp = jmp.strip()
    return CInstr(comp=rest.strip(), dest=dest, jump=jmp)

def parse_asm(text: str) -> List[AsmLine]:
    out: List[AsmLine] = []
    for raw in text.splitlines():
        ins = parse_line(raw)
        if ins is not None:
            out.append(ins)
    return out
