'''
simulador de la CPU Hack para ejecutar el ensamblador generado
'''

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Union

from .hack import AsmLine, AInstr, CInstr, LabelDecl, parse_asm
from .symbols import STACK_BASE
from .utils import u16, to_signed16

RAM_SIZE = 32768
VAR_BASE = 16   # primera dirección para variables (símbolos no declarados)

PREDEFINED: Dict[str, int] = {
    "SP": 0, "LCL": 1, "ARG": 2, "THIS": 3, "THAT": 4,
    "SCREEN": 16384, "KBD": 24576,
    **{f"R{i}": i for i in range(16)}
}

# comp -> f(a, d, m)
COMP: Dict[str, Callable[[int, int, int], int]] = {
    "0":   lambda a, d, m: 0,
    "1":   lambda a, d, m: 1,
    "-1":  lambda a, d, m: -1,
    "D":   lambda a, d, m: d,
    "A":   lambda a, d, m: a,
    "M":   lambda a, d, m: m,
    "!D":  lambda a, d, m: ~d,
    "!A":  lambda a, d, m: ~a,
    "!M":  lambda a, d, m: ~m,
    "-D":  lambda a, d, m: -d,
    "-A":  lambda a, d, m: -a,
    "-M":  lambda a, d, m: -m,
    "D+1": lambda a, d, m: d + 1,
    "A+1": lambda a, d, m: a + 1,
    "M+1": lambda a, d, m: m + 1,
    "D-1": lambda a, d, m: d - 1,
    "A-1": lambda a, d, m: a - 1,
    "M-1": lambda a, d, m: m - 1,
    "D+A": lambda a, d, m: d + a,
    "D+M": lambda a, d, m: d + m,
    "D-A": lambda a, d, m: d - a,
    "D-M": lambda a, d, m: d - m,
    "A-D": lambda a, d, m: a - d,
    "M-D": lambda a, d, m: m - d,
    "D&A": lambda a, d, m: d & a,
    "D&M": lambda a, d, m: d & m,
    "D|A": lambda a, d, m: d | a,
    "D|M": lambda a, d, m: d | m,
}

JUMP: Dict[str, Callable[[int], bool]] = {
    "JGT": lambda v: v > 0,
    "JEQ": lambda v: v == 0,
    "JGE": lambda v: v >= 0,
    "JLT": lambda v: v < 0,
    "JNE": lambda v: v != 0,
    "JLE": lambda v: v <= 0,
    "JMP": lambda v: True,
}

class MachineError(Exception):
    pass

def assemble(program: Sequence[AsmLine]) -> List[Union[int, CInstr]]:
    """Dos pasadas: etiquetas -> direcciones de ROM, luego variables desde RAM[16].

    Devuelve la ROM: enteros para A-instrucciones y CInstr para el resto.
    """
    symtab: Dict[str, int] = dict(PREDEFINED)
    pc = 0
    for ins in program:
        if isinstance(ins, LabelDecl):
            if ins.name in symtab:
                raise MachineError(f"Etiqueta redefinida: {ins.name}")
            symtab[ins.name] = pc
        else:
            pc += 1

    rom: List[Union[int, CInstr]] = []
    next_var = VAR_BASE
    for ins in program:
        if isinstance(ins, LabelDecl):
            continue
        if isinstance(ins, AInstr):
            v = ins.value
            if isinstance(v, int):
                rom.append(u16(v))
                continue
            if v not in symtab:
                symtab[v] = next_var
                next_var += 1
            rom.append(symtab[v])
            continue
        if ins.comp not in COMP:
            raise MachineError(f"comp inválido: {ins.comp}")
        if ins.jump is not None and ins.jump not in JUMP:
            raise MachineError(f"jump inválido: {ins.jump}")
        rom.append(ins)
    return rom

@dataclass
class Machine:
    """CPU Hack: registros A, D, PC y RAM de 16 bits."""
    rom: List[Union[int, CInstr]]
    ram: List[int] = field(default_factory=lambda: [0] * RAM_SIZE)
    a: int = 0
    d: int = 0
    pc: int = 0
    halted: bool = False

    @classmethod
    def from_asm(cls, source: Union[str, Sequence[AsmLine]]) -> "Machine":
        program = parse_asm(source) if isinstance(source, str) else list(source)
        return cls(rom=assemble(program))

    def _is_halt_loop(self, target: int) -> bool:
        # (L) @L 0;JMP
        if target + 1 >= len(self.rom):
            return False
        nxt = self.rom[target + 1]
        return (self.rom[target] == target and isinstance(nxt, CInstr)
                and nxt.jump == "JMP" and nxt.dest is None)

    def step(self) -> None:
        if self.pc >= len(self.rom):
            self.halted = True
            return
        ins = self.rom[self.pc]
        if isinstance(ins, int):
            self.a = ins
            self.pc += 1
            return
        m = self.ram[self.a] if self.a < len(self.ram) else 0
        value = u16(COMP[ins.comp](to_signed16(self.a), to_signed16(self.d), to_signed16(m)))
        dest = ins.dest or ""
        addr = self.a
        if "M" in dest:
            if addr >= len(self.ram):
                raise MachineError(f"Escritura fuera de RAM: {addr}")
            self.ram[addr] = value
        if "D" in dest:
            self.d = value
        if "A" in dest:
            self.a = value
        if ins.jump and JUMP[ins.jump](to_signed16(value)):
            target = addr
            if self._is_halt_loop(target):
                self.halted = True
            self.pc = target
        else:
            self.pc += 1

    def run(self, max_steps: int = 100_000) -> int:
        """Ejecuta hasta parar (fin de ROM o bucle de parada) o agotar max_steps."""
        steps = 0
        while not self.halted and steps < max_steps:
            self.step()
            steps += 1
        return steps

    def init_frame(self, *, sp: int = STACK_BASE, lcl: int = 300, arg: int = 400,
                   this: int = 3000, that: int = 3010) -> None:
        """Punteros iniciales para ejecutar una unidad suelta, sin arranque."""
        for name, value in (("SP", sp), ("LCL", lcl), ("ARG", arg), ("THIS", this), ("THAT", that)):
            self.poke(name, value)

    # ---- Inspección ----

    def peek(self, addr: Union[int, str]) -> int:
        return self.ram[PREDEFINED[addr] if isinstance(addr, str) else addr]

    def poke(self, addr: Union[int, str], value: int) -> None:
        self.ram[PREDEFINED[addr] if isinstance(addr, str) else addr] = u16(value)

    @property
    def sp(self) -> int:
        return self.ram[0]

    def stack(self, base: int = STACK_BASE) -> List[int]:
        """Contenido de la pila (con signo) desde base hasta SP."""
        return [to_signed16(x) for x in self.ram[base:self.sp]]
