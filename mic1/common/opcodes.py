from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from mic1.common.constants import MASK_8BIT, MASK_12BIT, MASK_16BIT


class Opcode(IntEnum):
    # Codigos das operacoes base (4 bits mais significativos)
    LODD = 0x0
    STOD = 0x1
    ADDD = 0x2
    SUBD = 0x3
    JPOS = 0x4
    JZER = 0x5
    JUMP = 0x6
    LOCO = 0x7
    LODL = 0x8
    STOL = 0x9
    ADDL = 0xA
    SUBL = 0xB
    JNEG = 0xC
    JNZE = 0xD
    CALL = 0xE
    EXT  = 0xF  # Instrucoes estendidas (sub-opcode nos 12 bits de baixo)


class ExtOp(Enum):
    # Com imediato de 8 bits: casa so o byte de cima
    INSP = 0xFC
    DESP = 0xFE
    # Palavra inteira, sem bits livres
    PSHI = 0xF000
    POPI = 0xF200
    PUSH = 0xF400
    POP  = 0xF600
    RETN = 0xF800
    SWAP = 0xFA00
    HALT = 0xFFFF


OFFSET_EXT = (ExtOp.INSP, ExtOp.DESP)
_EXACT_EXT = {op.value: op for op in ExtOp if op not in OFFSET_EXT}
_OFFSET_EXT = {op.value: op for op in OFFSET_EXT}

# Mapeamento Texto -> Hexadecimal para o Assembler usar
# CUIDADO: Nao alterar os valores hexa, senao quebra a compatibilidade
OPCODE_MAP = {
    'LODD': 0x0000, 'STOD': 0x1000, 'ADDD': 0x2000, 'SUBD': 0x3000,
    'JPOS': 0x4000, 'JZER': 0x5000, 'JUMP': 0x6000, 'LOCO': 0x7000,
    'LODL': 0x8000, 'STOL': 0x9000, 'ADDL': 0xA000, 'SUBL': 0xB000,
    'JNEG': 0xC000, 'JNZE': 0xD000, 'CALL': 0xE000,

    # Instrucoes estendidas (comecam com F)
    'PSHI': 0xF000, 'POPI': 0xF200, 'PUSH': 0xF400, 'POP':  0xF600,
    'RETN': 0xF800, 'SWAP': 0xFA00, 'INSP': 0xFC00, 'DESP': 0xFE00,
    'HALT': 0xFFFF
}


def needs_operand(mnemonic: str) -> bool:
    """Tudo abaixo de 0xF000 leva endereco/valor; das estendidas so INSP e DESP"""
    return OPCODE_MAP[mnemonic] < 0xF000 or mnemonic in ('INSP', 'DESP')


@dataclass(frozen=True)
class Instruction:
    """Palavra ja decodificada.

    ``ext`` so e preenchido no grupo 0xF; fica ``None`` quando a palavra
    estendida nao casa com nenhuma sub-operacao conhecida.
    """
    word: int
    opcode: Opcode
    operand: int
    ext: Optional[ExtOp] = None

    @property
    def known(self) -> bool:
        return self.opcode != Opcode.EXT or self.ext is not None


def decode(word: int) -> Instruction:
    word &= MASK_16BIT
    op = Opcode(word >> 12)
    if op != Opcode.EXT:
        return Instruction(word, op, word & MASK_12BIT)

    # Segundo nivel: primeiro os pares com offset, depois match exato
    ext = _OFFSET_EXT.get(word >> 8)
    if ext is not None:
        return Instruction(word, op, word & MASK_8BIT, ext)
    return Instruction(word, op, word & MASK_12BIT, _EXACT_EXT.get(word))


def disassemble(word: int) -> str:
    ins = decode(word)
    if ins.opcode != Opcode.EXT:
        return f"{ins.opcode.name} {ins.operand}"
    if ins.ext is None:
        return f"??? 0x{ins.word:04X}"
    if ins.ext in OFFSET_EXT:
        return f"{ins.ext.name} {ins.operand}"
    return ins.ext.name
