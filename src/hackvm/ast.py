'''
dataclases de instrucciones VM (Arithmetic, Push, Pop, Label, Goto, Function, Call, Return)
'''

from __future__ import annotations
from dataclasses import dataclass
from typing import Union, Literal

# ---- Segmentos de memoria ----

Segment = Literal["constant", "argument", "local", "this", "that", "temp", "static", "pointer"]

# ---- Nodos a nivel de fuente ----

@dataclass(frozen=True)
class Arithmetic:
    """Operación aritmética/lógica sobre la cima de la pila (add, eq, not, ...)."""
    op: str
    line: int = 0

@dataclass(frozen=True)
class Comment:
    """Línea formada sólo por un comentario '//'."""
    text: str = ""
    line: int = 0

@dataclass(frozen=True)
class Push:
    """push <segment> <index>; para 'pointer' el índice es el bit 0/1."""
    segment: Segment
    index: int
    line: int = 0

@dataclass(frozen=True)
class Pop:
    """pop <segment> <index>; 'constant' no es destino válido."""
    segment: Segment
    index: int
    line: int = 0

@dataclass(frozen=True)
class Label:
    name: str
    line: int = 0

@dataclass(frozen=True)
class Goto:
    """goto <label> (incondicional) o if-goto <label> (conditional=True)."""
    label: str
    conditional: bool = False
    line: int = 0

@dataclass(frozen=True)
class Function:
    """Declaración 'function <name> <n_locals>'."""
    name: str
    n_locals: int
    line: int = 0

@dataclass(frozen=True)
class Call:
    name: str
    n_args: int
    line: int = 0

@dataclass(frozen=True)
class Return:
    line: int = 0

Instruction = Union[Arithmetic, Comment, Push, Pop, Label, Goto, Function, Call, Return]
