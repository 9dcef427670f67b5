'''
tablas fijas: segmentos → registro/dirección base, operadores → comp/jump de Hack
'''

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

# Celdas predefinidas de la máquina Hack
SP, LCL, ARG, THIS, THAT = "SP", "LCL", "ARG", "THIS", "THAT"

STACK_BASE = 256   # primera dirección de la pila
TEMP_BASE = 5      # temp 0..7 -> RAM[5..12]
TEMP_SIZE = 8

# Registros de trabajo (R13..R15) y celdas de 'pointer'
SCRATCH_ADDR = "R13"     # dirección destino de un pop indirecto / posición del valor devuelto
SCRATCH_FRAME = "R14"    # bloque del marco guardado (LCL - 5)
SCRATCH_RET = "R15"      # dirección de retorno

POINTER_CELLS: Mapping[int, str] = MappingProxyType({0: "R3", 1: "R4"})

# Tamaño del bloque guardado por 'call': retorno, LCL, ARG, THIS, THAT
FRAME_SIZE = 5

# Segmentos indirectos: se desreferencia el registro base
SEGMENT_BASE: Mapping[str, str] = MappingProxyType({
    "argument": ARG,
    "local": LCL,
    "this": THIS,
    "that": THAT,
})

# Registros del llamador en el orden en que 'call' los apila
SAVED_FRAME = (LCL, ARG, THIS, THAT)

UNARY_OPS: Mapping[str, str] = MappingProxyType({
    "neg": "-M",
    "not": "!M",
})

# comp con D = cima y M = elemento debajo
BINARY_OPS: Mapping[str, str] = MappingProxyType({
    "add": "D+M",
    "sub": "M-D",
    "and": "D&M",
    "or": "D|M",
})

COMPARISON_OPS: Mapping[str, str] = MappingProxyType({
    "eq": "JEQ",
    "gt": "JGT",
    "lt": "JLT",
})

ARITHMETIC_OPS = frozenset(UNARY_OPS) | frozenset(BINARY_OPS) | frozenset(COMPARISON_OPS)

def segment_base(segment: str) -> str:
    """Devuelve el registro base de un segmento indirecto."""
    s = segment.lower()
    if s not in SEGMENT_BASE:
        raise KeyError(f"Segmento sin registro base: {segment}")
    return SEGMENT_BASE[s]

def temp_address(index: int) -> int:
    return TEMP_BASE + index

def static_symbol(unit: str, index: int) -> str:
    """Nombre absoluto de 'static <index>' dentro de la unidad (p.ej. 'Main.3')."""
    return f"{unit.replace('/', '.')}.{index}"
