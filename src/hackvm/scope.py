# src/hackvm/scope.py
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .ast import Instruction, Function
from .diagnostics import Diagnostic, warning

# ---------- Resultado de la pasada 1 ----------

@dataclass(frozen=True)
class ScopeResult:
    """Registro de funciones de una unidad: nombre -> número de locales."""
    registry: Mapping[str, int]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    unit: Optional[str] = None

    def __contains__(self, name: str) -> bool:
        return name in self.registry

    def locals_of(self, name: str) -> Optional[int]:
        return self.registry.get(name)

# ---------- Pasada 1 (declaraciones de funciones) ----------

def first_pass(nodes: Iterable[Instruction], *, unit: Optional[str] = None,
               filename: Optional[str] = None) -> ScopeResult:
    """Recorre la unidad y registra cada 'function <name> <n>'.

    Las redeclaraciones no son error: gana la última y se deja una advertencia.
    No genera código.
    """
    registry: Dict[str, int] = {}
    diags: List[Diagnostic] = []

    for n in nodes:
        if not isinstance(n, Function):
            continue
        if n.name in registry:
            diags.append(warning(f"Función redeclarada: {n.name}", line=n.line, file=filename,
                                 hint=f"se usan {n.n_locals} locales (antes {registry[n.name]})"))
        registry[n.name] = n.n_locals

    return ScopeResult(registry=MappingProxyType(registry), diagnostics=diags, unit=unit)
