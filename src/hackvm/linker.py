# src/hackvm/linker.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .ast import Call
from .hack import Block, at, assign, jump, label, render
from .codegen import GenContext, gen_call
from .symbols import SP, STACK_BASE
from .diagnostics import error, VMConfigError

VM_SUFFIX = ".vm"
ASM_SUFFIX = ".asm"

DEFAULT_ENTRY_UNIT = "Sys"
DEFAULT_ENTRY_FUNCTION = "Sys.init"

HALT_LABEL = "BOOTSTRAP$halt"

# ---------- Unidades de un programa ----------

@dataclass(frozen=True)
class UnitOutput:
    """Salida ya generada de una unidad."""
    name: str
    blocks: List[Block]

    @property
    def text(self) -> str:
        return render(self.blocks)

def list_units(directory: Path) -> List[Path]:
    """Archivos .vm de un directorio, en orden de listado (alfabético)."""
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == VM_SUFFIX)

def find_entry_unit(paths: Iterable[Path], entry_unit: str = DEFAULT_ENTRY_UNIT) -> Path:
    """Devuelve el archivo '<entry_unit>.vm' (sin distinguir mayúsculas) o lanza VMConfigError."""
    wanted = f"{entry_unit}{VM_SUFFIX}".lower()
    paths = list(paths)
    for p in paths:
        if p.name.lower() == wanted:
            return p
    where = str(paths[0].parent) if paths else None
    raise VMConfigError(error(f"Falta la unidad de entrada {entry_unit}{VM_SUFFIX}", file=where,
                              hint="un programa de varias unidades necesita su unidad de entrada"))

# ---------- Arranque ----------

def bootstrap(ctx: GenContext, entry_function: str = DEFAULT_ENTRY_FUNCTION, *,
              stack_base: int = STACK_BASE) -> List[Block]:
    """SP = stack_base; call <entry_function> 0; bucle de parada.

    La llamada usa el registro de ctx (locales de la función de entrada) y
    consume un valor del contador compartido.
    """
    init: Block = (at(stack_base), assign("D", "A"), at(SP), assign("M", "D"))
    call: Block = tuple(gen_call(Call(entry_function, 0), ctx))
    halt: Block = (label(HALT_LABEL), at(HALT_LABEL), jump("0"))
    return [init, call, halt]

# ---------- Enlazado ----------

def link(units: Sequence[UnitOutput], preamble: Optional[List[Block]] = None) -> str:
    """Programa final: arranque (si lo hay) seguido de las unidades en orden."""
    parts: List[str] = []
    if preamble:
        parts.append(render(preamble))
    for u in units:
        text = u.text
        if text:
            parts.append(text)
    return "\n".join(parts)
