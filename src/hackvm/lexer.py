from __future__ import annotations
import re

COMMENT_MARK = "//"

def strip_comment(line: str) -> str:
    """Remove a trailing '//' comment and surrounding whitespace."""
    idx = line.find(COMMENT_MARK)
    if idx < 0:
        return line.strip()
    return line[:idx].strip()

def is_comment(line: str) -> bool:
    """True for a line made only of a comment."""
    return line.strip().startswith(COMMENT_MARK)

def split_command(line: str):
    """Return (command, [args]) from a comment-free line."""
    parts = line.split()
    if not parts:
        return "", []
    return parts[0], parts[1:]

# Piezas de la gramática
INDEX = r"(?P<index>\d+)"
LABEL_NAME = r"(?P<label>\w+(?:[.$]\w+)*)"
FUNC_NAME = r"(?P<name>[A-Za-z][\w.$]*)"
PUSH_SEGMENTS = "constant|argument|local|this|that|temp|static"
POP_SEGMENTS = "argument|local|this|that|temp|static"

# Sufijo permitido en todas las formas: espacios y comentario opcional
TRAIL = r"\s*(?://.*)?"

def grammar(body: str) -> "re.Pattern[str]":
    """Compila una forma de instrucción anclada a toda la línea."""
    return re.compile(rf"^{body}{TRAIL}$")
