'''
clase Diagnostic, helpers y jerarquía de errores de traducción
'''

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Literal, List

# Severidad de los diagnósticos (en español)
Severity = Literal["error", "advertencia"]

_SEV_TO_LABEL = {
    "error": "ERROR",
    "advertencia": "ADVERTENCIA",
}

@dataclass(frozen=True)
class Diagnostic:
    """Estructura de un diagnóstico para reportar problemas.

    Abarca errores y advertencias, con ubicación opcional (archivo, línea y columna)
    y un mensaje de ayuda (pista) para orientar la corrección.
    """
    severity: Severity
    message: str
    line: Optional[int] = None
    col: Optional[int] = None
    hint: Optional[str] = None
    file: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        loc = ""
        if self.file is not None:
            loc += f"{self.file}:"
        if self.line is not None:
            loc += f"{self.line}"
            if self.col is not None:
                loc += f":{self.col}"
        if loc:
            loc += ": "
        sev = _SEV_TO_LABEL.get(self.severity, str(self.severity).upper())
        core = f"{sev}: {self.message}"
        if self.hint:
            core += f"  (pista: {self.hint})"
        return loc + core

def error(message: str, *, line: int | None = None, col: int | None = None,
          file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de tipo error."""
    return Diagnostic("error", message, line, col, hint, file)

def warning(message: str, *, line: int | None = None, col: int | None = None,
            file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de tipo advertencia."""
    return Diagnostic("advertencia", message, line, col, hint, file)

# ---- Errores fatales ----

class TranslationError(Exception):
    """Error fatal de traducción; lleva uno o más diagnósticos."""

    def __init__(self, *diagnostics: Diagnostic) -> None:
        if not diagnostics:
            raise ValueError("TranslationError requiere al menos un diagnóstico")
        self.diagnostics: List[Diagnostic] = list(diagnostics)
        super().__init__("\n".join(str(d) for d in self.diagnostics))

    @property
    def diagnostic(self) -> Diagnostic:
        return self.diagnostics[0]

class VMSyntaxError(TranslationError):
    """Línea que no corresponde a ninguna forma de instrucción."""

    def __init__(self, *diagnostics: Diagnostic, text: str | None = None,
                 index: int | None = None) -> None:
        super().__init__(*diagnostics)
        self.text = text      # línea ofensora
        self.index = index    # número de línea significativa (base 1)

class VMReferenceError(TranslationError):
    """Llamada a una función que ningún 'function' declara."""

    def __init__(self, *diagnostics: Diagnostic, name: str | None = None) -> None:
        super().__init__(*diagnostics)
        self.name = name

class VMConfigError(TranslationError):
    """Configuración inválida (p.ej. falta la unidad de entrada en un directorio)."""

class VMInternalError(TranslationError):
    """Nodo fuera del conjunto cerrado de instrucciones; indica un defecto interno."""
