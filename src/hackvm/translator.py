from __future__ import annotations
import argparse, sys
from collections import ChainMap
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .ast import Instruction
from .parser import parse
from .scope import first_pass, ScopeResult
from .codegen import GenContext, LabelCounter, generate_unit
from .linker import (
    UnitOutput, list_units, find_entry_unit, bootstrap, link,
    VM_SUFFIX, ASM_SUFFIX, DEFAULT_ENTRY_UNIT, DEFAULT_ENTRY_FUNCTION,
)
from .machine import Machine
from .writers import write_asm, write_blocks
from .hack import LabelDecl, parse_asm
from .diagnostics import Diagnostic, error, TranslationError, VMConfigError

@dataclass
class ScannedUnit:
    """Unidad tras la pasada 1: instrucciones y registro de funciones."""
    name: str
    nodes: List[Instruction]
    scope: ScopeResult
    diagnostics: List[Diagnostic]
    path: Optional[Path] = None

def scan_text(text: str, *, unit: str, filename: Optional[str] = None) -> ScannedUnit:
    """Tokeniza la unidad y construye su registro (PASADA 1).
    Lanza VMSyntaxError con todas las líneas inválidas si las hay."""
    nodes, diags = parse(text, filename=filename, strict=True)
    scope = first_pass(nodes, unit=unit, filename=filename)
    return ScannedUnit(unit, nodes, scope, list(diags) + list(scope.diagnostics))

def translate_text(text: str, *, unit: str, counter: Optional[LabelCounter] = None,
                   filename: Optional[str] = None) -> Tuple[UnitOutput, List[Diagnostic]]:
    """PASADA 1 y PASADA 2 de una sola unidad. Devuelve (salida, diagnósticos)."""
    scanned = scan_text(text, unit=unit, filename=filename)
    ctx = GenContext(unit=unit, registry=scanned.scope.registry,
                     counter=counter if counter is not None else LabelCounter(), filename=filename)
    return UnitOutput(unit, generate_unit(scanned.nodes, ctx)), scanned.diagnostics

def _read(path: Path) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as ex:
        raise VMConfigError(error(f"no pude leer el archivo: {ex.strerror or ex}", file=str(path))) from ex
    except UnicodeDecodeError as ex:
        raise VMConfigError(error(f"no pude leer el archivo: no es UTF-8 válido (byte {ex.start})",
                                  file=str(path))) from ex

@dataclass
class Translator:
    """Una ejecución de traducción: dueña del contador de etiquetas.

    En modo directorio el contador es común a todas las unidades, así las
    etiquetas son únicas en el programa enlazado. Cada unidad tiene su propio
    registro; una llamada se resuelve primero en la unidad y luego en las demás.
    """
    entry_unit: str = DEFAULT_ENTRY_UNIT
    entry_function: str = DEFAULT_ENTRY_FUNCTION
    with_bootstrap: bool = True
    counter: LabelCounter = field(default_factory=LabelCounter)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def scan_file(self, path: Path) -> ScannedUnit:
        scanned = scan_text(_read(path), unit=path.stem, filename=str(path))
        scanned.path = path
        self.diagnostics.extend(scanned.diagnostics)
        return scanned

    def generate(self, scanned: ScannedUnit, registry: Mapping[str, int]) -> UnitOutput:
        ctx = GenContext(unit=scanned.name, registry=registry, counter=self.counter,
                         filename=str(scanned.path) if scanned.path else None)
        return UnitOutput(scanned.name, generate_unit(scanned.nodes, ctx))

    def translate_file(self, source: Path, out: Optional[Path] = None) -> Tuple[Path, UnitOutput]:
        source = Path(source)
        if source.suffix != VM_SUFFIX:
            raise VMConfigError(error(f"Se esperaba un archivo {VM_SUFFIX}", file=str(source)))
        scanned = self.scan_file(source)
        unit = self.generate(scanned, scanned.scope.registry)
        target = Path(out) if out else source.with_suffix(ASM_SUFFIX)
        write_blocks(unit.blocks, target)
        return target, unit

    def translate_directory(self, directory: Path, out: Optional[Path] = None) -> Tuple[Path, str]:
        directory = Path(directory)
        paths = list_units(directory)
        if not paths:
            raise VMConfigError(error(f"No hay archivos {VM_SUFFIX}", file=str(directory)))
        # antes de traducir nada
        entry = find_entry_unit(paths, self.entry_unit)

        scanned = [self.scan_file(p) for p in paths]
        program_registry = ChainMap(*[s.scope.registry for s in scanned])

        preamble = None
        if self.with_bootstrap:
            ctx = GenContext(unit=entry.stem, registry=program_registry, counter=self.counter,
                             filename=str(entry))
            preamble = bootstrap(ctx, self.entry_function)

        units: List[UnitOutput] = []
        for s in scanned:
            others = [o.scope.registry for o in scanned if o is not s]
            units.append(self.generate(s, ChainMap(s.scope.registry, *others)))

        text = link(units, preamble)
        # se escribe sólo cuando todas las unidades se generaron sin error
        for s, u in zip(scanned, units):
            write_blocks(u.blocks, s.path.with_suffix(ASM_SUFFIX))
        target = Path(out) if out else directory / f"{directory.resolve().name}{ASM_SUFFIX}"
        write_asm(text, target)
        return target, text

def _run(program, steps: int, *, bare: bool) -> Machine:
    m = Machine.from_asm(program)
    if bare:
        m.init_frame()
    m.run(steps)
    return m

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="hackvm", description="Traductor de VM a ensamblador Hack")
    ap.add_argument("source", help="archivo .vm o directorio con archivos .vm")
    ap.add_argument("-o", "--output", help="archivo .asm de salida (por defecto junto a la fuente)")
    ap.add_argument("--entry-unit", default=DEFAULT_ENTRY_UNIT,
                    help="unidad obligatoria en modo directorio (sin distinguir mayúsculas)")
    ap.add_argument("--entry-function", default=DEFAULT_ENTRY_FUNCTION,
                    help="función que llama el arranque")
    ap.add_argument("--no-bootstrap", action="store_true", help="no anteponer el código de arranque")
    ap.add_argument("--run", type=int, metavar="STEPS",
                    help="ejecutar el resultado en el simulador como máximo STEPS pasos")
    args = ap.parse_args(argv)

    source = Path(args.source)
    out = Path(args.output) if args.output else None
    tr = Translator(entry_unit=args.entry_unit, entry_function=args.entry_function,
                    with_bootstrap=not args.no_bootstrap)

    try:
        if source.is_dir():
            target, text = tr.translate_directory(source, out)
            bare = args.no_bootstrap
        elif source.is_file():
            target, unit = tr.translate_file(source, out)
            text = unit.text
            bare = True
        else:
            print(f"ERROR: no existe {source}", file=sys.stderr)
            return 2
    except VMConfigError as ex:
        for d in ex.diagnostics:
            print(d, file=sys.stderr)
        return 2
    except TranslationError as ex:
        for d in tr.diagnostics + ex.diagnostics:
            print(d, file=sys.stderr)
        return 1
    except OSError as ex:
        print(f"ERROR de E/S: {ex}", file=sys.stderr)
        return 3

    for d in tr.diagnostics:
        # advertencias: no cambian el código de salida
        print(d, file=sys.stderr)

    program = parse_asm(text)
    n = sum(1 for ins in program if not isinstance(ins, LabelDecl))
    print(f"OK: {n} instrucciones → {target}")

    if args.run is not None:
        m = _run(program, args.run, bare=bare)
        state = "detenida" if m.halted else "sin detenerse"
        print(f"SP={m.sp} pila={m.stack()} ({state})")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
