import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from mic1.common.constants import (
    BLOCK_SIZE, CACHE_LINES, MASK_16BIT, MEM_SIZE, REGISTER_NAMES, SP_INIT,
)

log = logging.getLogger(__name__)


@dataclass
class Register:
    """Classe simples pra representar um registrador"""
    name: str
    _value: int = 0

    @property
    def value(self) -> int:
        return self._value & MASK_16BIT

    @value.setter
    def value(self, val: int):
        # Garante que sempre fique em 16 bits ao atribuir
        self._value = val & MASK_16BIT

    def __repr__(self):
        return f"[{self.name}: {self.value:04X}]"


class RegisterFile:
    """Banco de registradores: PC, AC, SP, IR, TIR, MAR, MBR e A-F"""

    def __init__(self):
        self._regs = {name: Register(name) for name in REGISTER_NAMES}
        self.reset()

    def reset(self):
        for r in self._regs.values():
            r.value = 0
        self._regs["SP"].value = SP_INIT

    def __getitem__(self, name: str) -> int:
        return self._regs[name].value

    def __setitem__(self, name: str, val: int):
        self._regs[name].value = val

    def __getattr__(self, name):
        # regs.pc -> Register("PC"), igual ao jeito antigo (cpu.pc.value)
        try:
            return self.__dict__["_regs"][name.upper()]
        except KeyError:
            raise AttributeError(name) from None

    def __iter__(self):
        return iter(self._regs)

    def as_dict(self) -> Dict[str, int]:
        return {name: r.value for name, r in self._regs.items()}


class Memory:
    """RAM plana de palavras de 16 bits. Fora do range: le 0 e ignora escrita"""

    def __init__(self, size=MEM_SIZE):
        self.size = size
        self._words = [0] * size

    def get(self, addr: int) -> int:
        if 0 <= addr < self.size:
            return self._words[addr]
        return 0

    def set(self, addr: int, val: int):
        if 0 <= addr < self.size:
            self._words[addr] = val & MASK_16BIT

    def clear(self):
        self._words = [0] * self.size

    def load(self, words: Iterable[int]):
        # Copia a partir do endereco 0, corta o que passar do tamanho
        for addr, val in enumerate(words):
            if addr >= self.size:
                log.warning("Programa maior que a memoria, truncado em %d palavras", self.size)
                break
            self._words[addr] = val & MASK_16BIT

    def snapshot(self) -> List[int]:
        return list(self._words)

    def __len__(self):
        return self.size

    def __getitem__(self, addr):
        return self._words[addr]


@dataclass
class CacheLine:
    block_size: int = BLOCK_SIZE
    valid: bool = False
    tag: int = 0
    dirty: bool = False  # Nunca vai pra True com write-through, so pra inspecao
    block: List[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.block:
            self.block = [0] * self.block_size


class Cache:
    """Cache L1 com mapeamento direto, write-through e write-allocate.

    O endereco se divide em tag | linha | offset:
    ``linha = (addr // K) % N``, ``tag = addr // (K * N)``, ``offset = addr % K``.
    A cache nao e dona da memoria, so guarda a referencia.
    """

    def __init__(self, memory: Memory, num_lines=CACHE_LINES, block_size=BLOCK_SIZE, name="L1"):
        self.memory = memory
        self.num_lines = num_lines
        self.block_size = block_size
        self.name = name
        self.lines = [CacheLine(block_size) for _ in range(num_lines)]
        self.hits = 0
        self.misses = 0
        self.last_status = "COLD"
        self.event_log: List[str] = []

    # --- Decomposicao do endereco ---

    def line_index(self, addr: int) -> int:
        return (addr // self.block_size) % self.num_lines

    def tag_of(self, addr: int) -> int:
        return addr // (self.block_size * self.num_lines)

    def offset(self, addr: int) -> int:
        return addr % self.block_size

    def block_start(self, addr: int) -> int:
        return (addr // self.block_size) * self.block_size

    def is_hit(self, addr: int) -> bool:
        line = self.lines[self.line_index(addr)]
        return line.valid and line.tag == self.tag_of(addr)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def _event(self, msg: str):
        self.event_log.append(msg)
        log.debug("%s: %s", self.name, msg)

    def _fill(self, addr: int):
        # Traz o bloco alinhado inteiro da RAM (substitui o que tinha na linha)
        idx = self.line_index(addr)
        line = self.lines[idx]
        start = self.block_start(addr)
        for i in range(self.block_size):
            line.block[i] = self.memory.get(start + i)
        line.valid = True
        line.tag = self.tag_of(addr)
        return line

    def read(self, addr: int) -> int:
        idx = self.line_index(addr)
        line = self.lines[idx]

        # Verifica Hit
        if self.is_hit(addr):
            self.hits += 1
            self.last_status = "HIT"
            self._event(f"HIT em {addr} (L{idx})")
            return line.block[self.offset(addr)]

        # Miss: busca o bloco na RAM e atualiza a linha
        self.misses += 1
        self.last_status = "MISS"
        self._event(f"MISS em {addr} (L{idx}). Buscando bloco {self.block_start(addr)} na RAM...")
        return self._fill(addr).block[self.offset(addr)]

    def write(self, addr: int, val: int):
        idx = self.line_index(addr)
        val &= MASK_16BIT

        # Write-Allocate: se nao ta na cache, traz o bloco antes de escrever
        if self.is_hit(addr):
            self.hits += 1
            self.last_status = "WR-HIT"
            self._event(f"WRITE HIT em {addr} (L{idx})")
            line = self.lines[idx]
        else:
            self.misses += 1
            self.last_status = "WR-MISS"
            self._event(f"WRITE MISS em {addr} (L{idx}). Alocando...")
            line = self._fill(addr)

        line.block[self.offset(addr)] = val
        # Write-Through: RAM atualizada na hora
        self.memory.set(addr, val)
        self._event(f"Write-Through: RAM[{addr}] <- {val}")

    def flush_all(self):
        # Com write-through a RAM ja ta sempre em dia, nao tem o que escrever
        self.last_status = "FLUSH"
        self._event("FLUSH: cache ja sincronizada (write-through)")

    def stats(self) -> Dict[str, float]:
        return {"hits": self.hits, "misses": self.misses, "hit_rate": self.hit_rate}
