import pytest
from pathlib import Path

from src.hackvm.translator import Translator, translate_text, main
from src.hackvm.machine import Machine
from src.hackvm.diagnostics import VMConfigError, VMReferenceError, VMSyntaxError

SYS = "function Sys.init 0\ncall Main.main 0\nlabel HALT\ngoto HALT\n"
MAIN = """// Main.vm
function Main.main 0
    push constant 2
    push constant 3
    call Main.twice 1     // llamada hacia delante
    add
    return
function Main.twice 0
    push argument 0
    push argument 0
    add
    return
"""

def _write(d: Path, name: str, text: str) -> Path:
    p = d / name
    p.write_text(text, encoding="utf-8")
    return p

def test_forward_call_resolves_in_same_unit():
    out, diags = translate_text(MAIN, unit="Main")
    assert not diags
    assert "(Main.twice$ret.0)" in out.text

def test_call_to_undeclared_name_fails():
    with pytest.raises(VMReferenceError):
        translate_text("function f 0\ncall g 0\nreturn\n", unit="X")

def test_syntax_errors_abort_the_unit():
    with pytest.raises(VMSyntaxError) as info:
        translate_text("push constant 1\npush banana 2\nadd\nfoo\n", unit="X", filename="X.vm")
    lines = [d.line for d in info.value.diagnostics]
    assert lines == [2, 4]

def test_translate_file_writes_sibling(tmp_path):
    src = _write(tmp_path, "Simple.vm", "push constant 7\npush static 1\nadd\npop static 1\n")
    target, unit = Translator().translate_file(src)
    assert target == tmp_path / "Simple.asm"
    text = target.read_text(encoding="utf-8")
    assert text == unit.text
    assert "@Simple.1" in text
    assert not list(tmp_path.glob("*.tmp"))

def test_translate_file_requires_vm_suffix(tmp_path):
    src = _write(tmp_path, "Simple.txt", "add\n")
    with pytest.raises(VMConfigError):
        Translator().translate_file(src)

def test_directory_program(tmp_path):
    prog = tmp_path / "Prog"
    prog.mkdir()
    _write(prog, "sys.vm", SYS)
    _write(prog, "Main.vm", MAIN)
    target, text = Translator().translate_directory(prog)
    assert target == prog / "Prog.asm"
    assert text.startswith("@256\nD=A\n@SP\nM=D\n")
    assert (prog / "Main.asm").exists() and (prog / "sys.asm").exists()
    # orden de listado: Main antes que sys
    assert text.index("(Main.main)") < text.index("(Sys.init)")

    m = Machine.from_asm(target.read_text(encoding="utf-8"))
    m.run(20_000)
    assert m.halted
    # Sys.init: ARG=256, LCL=261; valor devuelto por Main.main en 261
    assert m.peek(261) == 8
    assert m.sp == 262

def test_directory_labels_unique_across_units(tmp_path):
    prog = tmp_path / "Cmp"
    prog.mkdir()
    _write(prog, "A.vm", "function A.f 0\npush constant 1\npush constant 1\neq\nreturn\n")
    _write(prog, "B.vm", "function B.f 0\npush constant 1\npush constant 1\neq\nreturn\n")
    _write(prog, "Sys.vm", "function Sys.init 0\ncall A.f 0\ncall B.f 0\nlabel L\ngoto L\n")
    _, text = Translator().translate_directory(prog)
    assert "(EQ_TRUE_1)" in text and "(EQ_TRUE_2)" in text
    labels = [l for l in text.splitlines() if l.startswith("(")]
    assert len(labels) == len(set(labels))

def test_directory_without_entry_unit_writes_nothing(tmp_path):
    prog = tmp_path / "NoSys"
    prog.mkdir()
    _write(prog, "Main.vm", MAIN)
    with pytest.raises(VMConfigError):
        Translator().translate_directory(prog)
    assert not list(prog.glob("*.asm"))

def test_directory_with_bad_unit_writes_nothing(tmp_path):
    prog = tmp_path / "Bad"
    prog.mkdir()
    _write(prog, "Sys.vm", SYS)
    _write(prog, "Main.vm", "function Main.main 0\npush nada\n")
    with pytest.raises(VMSyntaxError):
        Translator().translate_directory(prog)
    assert not list(prog.glob("*.asm"))

def test_directory_without_bootstrap(tmp_path):
    prog = tmp_path / "Bare"
    prog.mkdir()
    _write(prog, "Sys.vm", SYS)
    _write(prog, "Main.vm", MAIN)
    _, text = Translator(with_bootstrap=False).translate_directory(prog)
    assert not text.startswith("@256")
    # orden alfabético: Main.vm toma el contador antes que Sys.vm
    assert "(Main.twice$ret.0)" in text
    assert "(Main.main$ret.1)" in text

# ---- CLI ----

def test_main_file_ok(tmp_path, capsys):
    src = _write(tmp_path, "Add.vm", "push constant 7\npush constant 8\nadd\n")
    assert main([str(src), "--run", "1000"]) == 0
    out = capsys.readouterr().out
    assert "OK:" in out
    assert "SP=257 pila=[15]" in out

def test_main_reports_syntax_error(tmp_path, capsys):
    src = _write(tmp_path, "Bad.vm", "push constant 1\npushh constant 2\n")
    assert main([str(src)]) == 1
    err = capsys.readouterr().err
    assert "Bad.vm:2: ERROR: Expresión inválida 'pushh constant 2' en la instrucción 2" in err
    assert not (tmp_path / "Bad.asm").exists()

def test_main_missing_entry_unit(tmp_path, capsys):
    prog = tmp_path / "P"
    prog.mkdir()
    _write(prog, "Main.vm", MAIN)
    assert main([str(prog)]) == 2
    assert "Sys.vm" in capsys.readouterr().err

def test_main_custom_entry(tmp_path, capsys):
    prog = tmp_path / "M"
    prog.mkdir()
    _write(prog, "Main.vm", "function Main 0\npush constant 1\nreturn\n")
    code = main([str(prog), "--entry-unit", "main", "--entry-function", "Main", "--run", "5000"])
    assert code == 0
    assert "SP=257 pila=[1]" in capsys.readouterr().out

def test_main_nonexistent_path(tmp_path):
    assert main([str(tmp_path / "nope.vm")]) == 2

def test_main_reports_non_utf8_source(tmp_path, capsys):
    src = tmp_path / "Cafe.vm"
    src.write_bytes(b"push constant 1 // caf\xe9\n")
    assert main([str(src)]) == 2
    err = capsys.readouterr().err
    assert "ERROR: no pude leer el archivo" in err
    assert "UTF-8" in err
    assert not (tmp_path / "Cafe.asm").exists()

def test_main_counts_emitted_instructions(tmp_path, capsys):
    src = _write(tmp_path, "Seven.vm", "push constant 7\n")
    assert main([str(src)]) == 0
    # @7 D=A @SP A=M M=D @SP M=M+1
    assert f"OK: 7 instrucciones → {tmp_path / 'Seven.asm'}" in capsys.readouterr().out

def test_syntax_error_keeps_first_offending_line():
    with pytest.raises(VMSyntaxError) as info:
        translate_text("push constant 1\n// nota\npush banana 2\nfoo\n", unit="X")
    assert info.value.text == "push banana 2"
    assert info.value.index == 2
    assert len(info.value.diagnostics) == 2
