"""
Testes do assembler de duas passadas (labels, operandos, dados crus, erros).

Uso:
  python -m pytest tests/test_assembler.py -v
"""

import pytest

from mic1.assembler.core import assemble, parse_int
from mic1.common.errors import AssemblyError
from mic1.hardware.cpu import Mic1CPU


# =============================================================================
#  CASOS BASICOS
# =============================================================================

def test_label_resolves_to_address():
    res = assemble("start: LOCO 5\nADDD start\nHALT")
    assert res.ok
    assert res.binary == [0x7005, 0x2000, 0xFFFF]
    assert res.labels == {"start": 0}


def test_missing_label_is_single_error():
    res = assemble("LODD missing_label")
    assert res.binary == []
    assert len(res.errors) == 1
    assert "linha 1" in res.errors[0]
    assert "missing_label" in res.errors[0]


def test_every_mnemonic():
    src = """
    LODD 1
    STOD 2
    ADDD 3
    SUBD 4
    JPOS 5
    JZER 6
    JUMP 7
    LOCO 8
    LODL 9
    STOL 10
    ADDL 11
    SUBL 12
    JNEG 13
    JNZE 14
    CALL 15
    PSHI
    POPI
    PUSH
    POP
    RETN
    SWAP
    INSP 1
    DESP 2
    HALT
    """
    res = assemble(src)
    assert res.ok
    assert res.binary == [
        0x0001, 0x1002, 0x2003, 0x3004, 0x4005, 0x5006, 0x6007, 0x7008,
        0x8009, 0x900A, 0xA00B, 0xB00C, 0xC00D, 0xD00E, 0xE00F,
        0xF000, 0xF200, 0xF400, 0xF600, 0xF800, 0xFA00, 0xFC01, 0xFE02, 0xFFFF,
    ]


def test_mnemonic_case_insensitive():
    assert assemble("loco 3\nhalt").binary == [0x7003, 0xFFFF]


def test_comments_and_blank_lines():
    src = "; cabecalho\n\n   LOCO 1   ; um\n\t\nHALT;fim\n"
    res = assemble(src)
    assert res.binary == [0x7001, 0xFFFF]


def test_label_on_own_line():
    res = assemble("inicio:\n  LOCO 1\n  JUMP inicio\nfim:\n  JUMP fim")
    assert res.labels == {"inicio": 0, "fim": 2}
    assert res.binary == [0x7001, 0x6000, 0x6002]


def test_forward_reference():
    res = assemble("JUMP fim\nLOCO 1\nfim: HALT")
    assert res.binary == [0x6002, 0x7001, 0xFFFF]


def test_extra_tokens_ignored():
    assert assemble("LOCO 5 6 7").binary == [0x7005]


# =============================================================================
#  OPERANDOS
# =============================================================================

@pytest.mark.parametrize("src, word", [
    ("LOCO 0x10", 0x7010),
    ("LOCO 0XfF", 0x70FF),
    ("LOCO 0b101", 0x7005),
    ("LOCO -1", 0x7FFF),
    ("LODD 5000", 0x0388),      # 5000 & 0xFFF
    ("INSP 300", 0xFC2C),       # 300 & 0xFF
    ("DESP -1", 0xFEFF),
])
def test_operand_masking(src, word):
    assert assemble(src).binary == [word]


def test_operand_label_is_case_sensitive():
    res = assemble("Fim: HALT\nJUMP fim")
    assert res.binary == [0xFFFF]
    assert len(res.errors) == 1


def test_missing_operand():
    res = assemble("LOCO 1\nSTOD\nINSP\nHALT")
    assert res.binary == [0x7001, 0xFFFF]
    assert len(res.errors) == 2
    assert res.errors[0].startswith("Erro linha 2")
    assert "requer" in res.errors[0]
    assert res.errors[1].startswith("Erro linha 3")


def test_no_operand_mnemonic_ignores_operand():
    assert assemble("HALT 5\nPUSH x").binary == [0xFFFF, 0xF400]


# =============================================================================
#  DADOS CRUS E LABELS SOLTOS
# =============================================================================

def test_raw_data_words():
    res = assemble("HALT\n42\n0x1234\n-1\n70000")
    assert res.binary == [0xFFFF, 42, 0x1234, 0xFFFF, 70000 & 0xFFFF]


def test_bare_label_emits_address():
    res = assemble("HALT\nptr: tabela\ntabela: 7")
    assert res.binary == [0xFFFF, 2, 7]


def test_unknown_command():
    res = assemble("LOCO 1\nFOO\nHALT")
    assert res.binary == [0x7001, 0xFFFF]
    assert res.errors == ["Erro linha 2: Comando desconhecido 'FOO'"]


def test_error_line_numbers_skip_comments():
    res = assemble("; nada\n\nLOCO 1\n; mais nada\nBAR")
    assert res.errors[0].startswith("Erro linha 2")


def test_errors_are_collected():
    res = assemble("A1\nLODD\nJUMP ?\nHALT")
    assert len(res.errors) == 3
    assert res.binary == [0xFFFF]


# =============================================================================
#  LABELS DUPLICADOS / RESULTADO
# =============================================================================

def test_duplicate_label_last_wins_with_warning():
    res = assemble("a: LOCO 1\na: LOCO 2\nJUMP a")
    assert res.ok
    assert res.binary == [0x7001, 0x7002, 0x6001]
    assert len(res.warnings) == 1
    assert "'a'" in res.warnings[0]


def test_raise_for_errors():
    res = assemble("NOPE")
    with pytest.raises(AssemblyError) as exc:
        res.raise_for_errors()
    assert exc.value.errors == res.errors
    assemble("HALT").raise_for_errors()


def test_fresh_state_per_call():
    assemble("x: HALT")
    res = assemble("JUMP x")
    assert not res.ok
    assert res.labels == {}


@pytest.mark.parametrize("tok, val", [
    ("10", 10), ("-10", -10), ("+3", 3), ("0x1F", 31), ("0b11", 3),
    ("abc", None), ("0x", None), ("", None), ("-", None), ("1.5", None),
    ("--5", None), ("+-5", None), ("1_0", None), ("0x_1F", None),
    ("\u0661\u0662", None), ("0b12", None), ("0xG", None),
])
def test_parse_int(tok, val):
    assert parse_int(tok) == val


@pytest.mark.parametrize("src", [
    "LOCO --5", "LOCO +-5", "LOCO 1_0", "LOCO ١٢", "١٢", "1_0",
])
def test_malformed_literal_is_error(src):
    res = assemble(src)
    assert res.binary == []
    assert len(res.errors) == 1
    assert res.errors[0].startswith("Erro linha 1")


# =============================================================================
#  INTEGRACAO COM A CPU
# =============================================================================

SUM_SRC = """
; 5 + 4 + 3 + 2 + 1, depois dobra numa sub-rotina
        LOCO 5
        STOD 400
        LOCO 0
        STOD 401
Loop:   LODD 401
        ADDD 400
        STOD 401
        LODD 400
        SUBD Um
        STOD 400
        JNZE Loop
        LODD 401
        PUSH
        CALL Dobra
        HALT
Dobra:  LODL 1
        ADDL 1
        STOL 1
        RETN
Um:     1
"""


def test_assembled_program_runs():
    res = assemble(SUM_SRC)
    res.raise_for_errors()
    cpu = Mic1CPU()
    cpu.load_program(res.binary)
    steps = cpu.run()
    assert cpu.halted
    assert steps == 47
    assert cpu.mem.get(401) == 15
    assert cpu.mem.get(4094) == 30
    assert cpu.regs["AC"] == 30
    assert cpu.regs["SP"] == 4094
    assert cpu.regs["PC"] == 15
    assert cpu.d_cache.hits > cpu.d_cache.misses
