import logging
from typing import Iterable, List, Tuple

from mic1.common.constants import MEM_SIZE
from mic1.common.fmt import fmt_hex, mask16, to_signed
from mic1.common.opcodes import ExtOp, Instruction, Opcode, decode
from mic1.hardware.components import Cache, Memory, RegisterFile

log = logging.getLogger(__name__)


class Mic1CPU:
    """Maquina de acumulador MIC-1: um passo = busca + decodifica + executa.

    Toda leitura/escrita na RAM passa pelas caches (I-Cache pra busca,
    D-Cache pra dados). O trace de micro-operacoes de cada passo e o
    retorno de ``step()``.
    """

    def __init__(self, mem_size=MEM_SIZE):
        self.mem = Memory(mem_size)
        self.regs = RegisterFile()
        self.i_cache = Cache(self.mem, name="I-Cache")
        self.d_cache = Cache(self.mem, name="D-Cache")
        self.halted = False
        self.cycle = 0
        self._trace: List[str] = []

        # Tabela de despacho (evita aquele monte de if/else)
        self._ops = {
            Opcode.LODD: self._lodd, Opcode.STOD: self._stod,
            Opcode.ADDD: self._addd, Opcode.SUBD: self._subd,
            Opcode.JPOS: self._jpos, Opcode.JZER: self._jzer,
            Opcode.JUMP: self._jump, Opcode.LOCO: self._loco,
            Opcode.LODL: self._lodl, Opcode.STOL: self._stol,
            Opcode.ADDL: self._addl, Opcode.SUBL: self._subl,
            Opcode.JNEG: self._jneg, Opcode.JNZE: self._jnze,
            Opcode.CALL: self._call, Opcode.EXT:  self._ext,
        }
        self._ext_ops = {
            ExtOp.INSP: self._insp, ExtOp.DESP: self._desp,
            ExtOp.PSHI: self._pshi, ExtOp.POPI: self._popi,
            ExtOp.PUSH: self._push, ExtOp.POP:  self._pop,
            ExtOp.RETN: self._retn, ExtOp.SWAP: self._swap,
            ExtOp.HALT: self._halt,
        }

    # --- Estado ---

    def reset(self):
        # Zera tudo e recria as caches vazias
        self.mem.clear()
        self.i_cache = Cache(self.mem, name="I-Cache")
        self.d_cache = Cache(self.mem, name="D-Cache")
        self.regs.reset()
        self.halted = False
        self.cycle = 0
        self._trace = []

    def load_program(self, words: Iterable[int]):
        self.reset()
        self.mem.load(words)
        log.info("Programa carregado na RAM")

    @property
    def last_trace(self) -> Tuple[str, ...]:
        return tuple(self._trace)

    def state(self) -> dict:
        return {
            "registers": self.regs.as_dict(),
            "halted": self.halted,
            "cycle": self.cycle,
            "i_cache": self.i_cache.stats(),
            "d_cache": self.d_cache.stats(),
        }

    # --- Acesso a memoria (sempre via cache) ---

    def _in_range(self, addr: int) -> bool:
        return 0 <= addr < self.mem.size

    def _read_data(self, addr: int) -> int:
        if not self._in_range(addr):
            return 0
        self.regs["MAR"] = addr
        val = self.d_cache.read(addr)
        self.regs["MBR"] = val
        return val

    def _write_data(self, addr: int, val: int):
        if not self._in_range(addr):
            return
        self.regs["MAR"] = addr
        self.regs["MBR"] = val
        self.d_cache.write(addr, val)

    def _push_word(self, val: int):
        sp = mask16(self.regs["SP"] - 1)
        self.regs["SP"] = sp
        self._write_data(sp, val)

    def _pop_word(self) -> int:
        sp = self.regs["SP"]
        val = self._read_data(sp)
        self.regs["SP"] = mask16(sp + 1)
        return val

    def _t(self, msg: str):
        self._trace.append(msg)

    # --- Ciclo de Instrucao ---

    def fetch(self) -> int:
        pc = self.regs["PC"]
        self.regs["MAR"] = pc
        self._t(f"[FETCH] MAR <- PC ({pc}); RD (I-Cache)")
        word = self.i_cache.read(pc)
        self.regs["MBR"] = word
        self.regs["IR"] = word
        self.regs["PC"] = mask16(pc + 1)
        self._t(f"[FETCH] IR <- MBR ({fmt_hex(word)}); PC <- PC + 1")
        return word

    def execute(self, ins: Instruction):
        handler = self._ops.get(ins.opcode)
        if handler is None:
            # Nao acontece com 4 bits, mas fica tratado
            self._t(f"Opcode invalido: {ins.opcode}")
            log.warning("Opcode invalido %s em %s", ins.opcode, fmt_hex(ins.word))
            return
        handler(ins)

    def step(self) -> List[str]:
        """Roda um ciclo completo. Retorna o trace desse passo."""
        if self.halted:
            return []

        pc = self.regs["PC"]
        if not self._in_range(pc):
            self.halted = True
            self._trace = []
            log.info("PC fora da memoria (%d), CPU parada", pc)
            return []

        self._trace = []
        ins = decode(self.fetch())
        self.execute(ins)
        self.cycle += 1
        log.debug("ciclo %d: %s", self.cycle, "; ".join(self._trace))
        return list(self._trace)

    def run(self, max_steps=10000) -> int:
        # Driver sem interface: roda ate HALT ou estourar o limite
        steps = 0
        while not self.halted and steps < max_steps:
            self.step()
            steps += 1
        if not self.halted:
            log.warning("Limite de %d passos atingido sem HALT", max_steps)
        return steps

    # --- Implementacao das Instrucoes ---

    def _lodd(self, ins):
        # Carrega Direto: Mem[addr] -> AC
        self._t(f"[LODD] MAR <- {ins.operand}; RD (D-Cache)")
        val = self._read_data(ins.operand)
        self.regs["AC"] = val
        self._t(f"[LODD] AC <- MBR ({val})")

    def _stod(self, ins):
        ac = self.regs["AC"]
        self._write_data(ins.operand, ac)
        self._t(f"[STOD] MAR <- {ins.operand}; MBR <- AC ({ac}); WR (D-Cache)")

    def _addd(self, ins):
        val = self._read_data(ins.operand)
        self.regs["AC"] = self.regs["AC"] + val
        self._t(f"[ADDD] AC <- AC + MBR ({self.regs['AC']})")

    def _subd(self, ins):
        val = self._read_data(ins.operand)
        self.regs["AC"] = self.regs["AC"] - val
        self._t(f"[SUBD] AC <- AC - MBR ({self.regs['AC']})")

    def _branch(self, name, take, addr, why):
        if take:
            self.regs["PC"] = addr
            self._t(f"[{name}] {why}. PC <- {addr}")
        else:
            self._t(f"[{name}] Salto ignorado.")

    def _jpos(self, ins):
        self._branch("JPOS", to_signed(self.regs["AC"]) >= 0, ins.operand, "AC >= 0")

    def _jzer(self, ins):
        self._branch("JZER", self.regs["AC"] == 0, ins.operand, "AC == 0")

    def _jump(self, ins):
        self.regs["PC"] = ins.operand
        self._t(f"[JUMP] PC <- {ins.operand}")

    def _loco(self, ins):
        # Constante de 12 bits, sem extensao de sinal
        self.regs["AC"] = ins.operand
        self._t(f"[LOCO] AC <- {ins.operand}")

    def _local(self, off):
        return mask16(self.regs["SP"] + off)

    def _lodl(self, ins):
        self.regs["AC"] = self._read_data(self._local(ins.operand))
        self._t(f"[LODL] MAR <- SP + {ins.operand}; RD; AC <- MBR")

    def _stol(self, ins):
        self._write_data(self._local(ins.operand), self.regs["AC"])
        self._t(f"[STOL] MAR <- SP + {ins.operand}; MBR <- AC; WR")

    def _addl(self, ins):
        val = self._read_data(self._local(ins.operand))
        self.regs["AC"] = self.regs["AC"] + val
        self._t(f"[ADDL] AC <- AC + Mem[SP+{ins.operand}]")

    def _subl(self, ins):
        val = self._read_data(self._local(ins.operand))
        self.regs["AC"] = self.regs["AC"] - val
        self._t(f"[SUBL] AC <- AC - Mem[SP+{ins.operand}]")

    def _jneg(self, ins):
        self._branch("JNEG", to_signed(self.regs["AC"]) < 0, ins.operand, "AC < 0")

    def _jnze(self, ins):
        self._branch("JNZE", self.regs["AC"] != 0, ins.operand, "AC != 0")

    def _call(self, ins):
        # Chamada de funcao: Salva PC na pilha e pula
        self._push_word(self.regs["PC"])
        self.regs["PC"] = ins.operand
        self._t(f"[CALL] SP <- SP - 1; Mem[SP] <- PC; PC <- {ins.operand}")

    def _ext(self, ins):
        fn = self._ext_ops.get(ins.ext)
        if fn is None:
            # Nao eh fatal: registra e segue pro proximo
            self._t(f"Instrucao desconhecida: {fmt_hex(ins.word)}")
            log.warning("Instrucao estendida desconhecida %s", fmt_hex(ins.word))
            return
        fn(ins)

    def _insp(self, ins):
        self.regs["SP"] = self.regs["SP"] + ins.operand
        self._t(f"[INSP] SP <- SP + {ins.operand}")

    def _desp(self, ins):
        self.regs["SP"] = self.regs["SP"] - ins.operand
        self._t(f"[DESP] SP <- SP - {ins.operand}")

    def _pshi(self, ins):
        # Push Indireto (Mem[AC] -> Pilha)
        addr = self.regs["AC"]
        val = self._read_data(addr)
        self._push_word(val)
        self._t(f"[PSHI] SP <- SP - 1; Mem[SP] <- Mem[AC:{addr}] ({val})")

    def _popi(self, ins):
        # Pop Indireto (Pilha -> Mem[AC])
        sp = self.regs["SP"]
        val = self._read_data(sp)
        addr = self.regs["AC"]
        self._write_data(addr, val)
        self.regs["SP"] = mask16(sp + 1)
        self._t(f"[POPI] Mem[AC:{addr}] <- Mem[SP] ({val}); SP <- SP + 1")

    def _push(self, ins):
        self._push_word(self.regs["AC"])
        self._t("[PUSH] SP <- SP - 1; Mem[SP] <- AC")

    def _pop(self, ins):
        self.regs["AC"] = self._pop_word()
        self._t("[POP] AC <- Mem[SP]; SP <- SP + 1")

    def _retn(self, ins):
        # Retorno de funcao (Recupera PC da pilha)
        self.regs["PC"] = self._pop_word()
        self._t(f"[RETN] PC <- Mem[SP] ({self.regs['PC']}); SP <- SP + 1")

    def _swap(self, ins):
        self.regs["AC"], self.regs["SP"] = self.regs["SP"], self.regs["AC"]
        self._t("[SWAP] AC <-> SP")

    def _halt(self, ins):
        self.halted = True
        self.d_cache.flush_all()
        self.i_cache.flush_all()
        self._t("[HALT] Execucao finalizada. Caches sincronizadas.")
        log.info("HALT no ciclo %d", self.cycle + 1)
