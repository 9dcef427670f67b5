from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List, Union
from .hack import Block, render_block

def to_asm_lines(blocks: Iterable[Block]) -> List[str]:
    lines: List[str] = []
    for b in blocks:
        if not b:
            continue
        if lines:
            lines.append("")
        lines.extend(render_block(b))
    return lines

def write_asm(text: str, path: Union[str, Path]) -> None:
    """Escribe en un temporal hermano y lo renombra al terminar."""
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()

def write_blocks(blocks: Iterable[Block], path: Union[str, Path]) -> None:
    lines = to_asm_lines(blocks)
    write_asm("".join(line + "\n" for line in lines), path)
