import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from mic1.common.constants import MASK_8BIT, MASK_12BIT, MASK_16BIT
from mic1.common.errors import AssemblyError
from mic1.common.opcodes import OPCODE_MAP, needs_operand

log = logging.getLogger(__name__)

COMMENT = ';'
LABEL_SEP = ':'
INT_RE = re.compile(r'([+-]?)(?:0[xX]([0-9a-fA-F]+)|0[bB]([01]+)|([0-9]+))', re.ASCII)


@dataclass
class AssemblyResult:
    binary: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self):
        if self.errors:
            raise AssemblyError(self.errors)


def parse_int(tok: str) -> Optional[int]:
    # Suporta Hex (0x), Binario (0b) ou Decimal, com um sinal opcional. So ASCII
    m = INT_RE.fullmatch(tok.strip())
    if m is None:
        return None
    sign, hexa, binario, dec = m.groups()
    if hexa:
        val = int(hexa, 16)
    elif binario:
        val = int(binario, 2)
    else:
        val = int(dec, 10)
    return -val if sign == '-' else val


def clean_lines(src):
    # Remove comentarios e linhas vazias pra facilitar
    cleaned = []
    for line in src.splitlines():
        raw = line.split(COMMENT)[0].strip()
        if raw:
            cleaned.append(raw)
    return cleaned


def collect_labels(lines, result):
    """Passada 1: tabela de simbolos e lista de instrucoes (na ordem)"""
    curr = 0
    instrs = []
    for line in lines:
        # "Label: INSTR op" -> label no endereco atual, resto vira instrucao
        if LABEL_SEP in line:
            parts = line.split(LABEL_SEP)
            label = parts[0].strip()
            if label in result.labels:
                msg = f"Label '{label}' redefinido: {result.labels[label]} -> {curr}"
                result.warnings.append(msg)
                log.warning(msg)
            result.labels[label] = curr
            line = parts[1].strip()

        if line:
            instrs.append(line)
            curr += 1
    return instrs


def encode(line, labels):
    """Passada 2 pra uma linha. Retorna (palavra, None) ou (None, erro)"""
    parts = line.split()
    mnemonic = parts[0].upper()

    if mnemonic not in OPCODE_MAP:
        # Nao eh instrucao: tenta como dado cru, depois como label solto
        val = parse_int(parts[0])
        if val is not None:
            return val & MASK_16BIT, None
        if parts[0] in labels:
            return labels[parts[0]], None
        return None, f"Comando desconhecido '{parts[0]}'"

    opcode = OPCODE_MAP[mnemonic]
    if not needs_operand(mnemonic):
        return opcode, None

    if len(parts) < 2:
        return None, f"'{mnemonic}' requer um valor ou label."

    op = parts[1]
    if op in labels:
        val = labels[op]
    else:
        val = parse_int(op)
        if val is None:
            return None, f"Label ou valor invalido '{op}'."

    # INSP/DESP so tem 8 bits de imediato, o resto usa 12
    mask = MASK_8BIT if mnemonic in ('INSP', 'DESP') else MASK_12BIT
    return opcode | (val & mask), None


def assemble(src_code: str) -> AssemblyResult:
    """Monta o codigo fonte em duas passadas.

    Linhas com erro nao geram palavra; os erros sao coletados com o numero
    da instrucao (1-based, sem contar comentarios/linhas vazias) e a montagem
    segue. Quem chama nao deve carregar ``binary`` se ``errors`` nao estiver vazio.
    """
    result = AssemblyResult()
    instrs = collect_labels(clean_lines(src_code), result)

    for lno, line in enumerate(instrs, start=1):
        word, err = encode(line, result.labels)
        if err:
            msg = f"Erro linha {lno}: {err}"
            result.errors.append(msg)
            log.debug(msg)
            continue
        result.binary.append(word)

    log.info("Montagem: %d palavras, %d erros, %d labels",
             len(result.binary), len(result.errors), len(result.labels))
    return result
