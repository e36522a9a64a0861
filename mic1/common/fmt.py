"""Helpers numericos (16 bits) e formatos de exibicao usados pela interface."""
from mic1.common.constants import MASK_16BIT, SIGN_BIT


def mask16(val: int) -> int:
    return val & MASK_16BIT


def to_signed(val: int) -> int:
    """Reinterpreta uma palavra de 16 bits em complemento de 2."""
    val &= MASK_16BIT
    return val - 0x10000 if val & SIGN_BIT else val


def fmt_hex(val: int) -> str:
    return f"0x{val & MASK_16BIT:04X}"


def fmt_bin(val: int) -> str:
    return f"{val & MASK_16BIT:016b}"


def fmt_dec(val: int) -> str:
    return str(val & MASK_16BIT)


def fmt_signed(val: int) -> str:
    return str(to_signed(val))
