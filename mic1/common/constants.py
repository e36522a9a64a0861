# Tamanho da memoria principal (palavras de 16 bits)
MEM_SIZE = 4096
SP_INIT = MEM_SIZE - 1  # Pilha comeca no topo e cresce pra baixo

# Geometria padrao das caches L1 (mapeamento direto)
CACHE_LINES = 8
BLOCK_SIZE = 4

# Mascaras de bits para facilitar operacoes
MASK_16BIT = 0xFFFF  # Para garantir que fique em 16 bits
MASK_12BIT = 0xFFF   # Enderecos e operandos
MASK_8BIT = 0xFF     # Imediato do INSP/DESP
SIGN_BIT = 0x8000

REGISTER_NAMES = (
    "PC", "AC", "SP", "IR", "TIR", "MAR", "MBR",
    "A", "B", "C", "D", "E", "F",
)
