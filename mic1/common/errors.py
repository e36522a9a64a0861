class Mic1Error(Exception):
    """Erro base do simulador"""


class AssemblyError(Mic1Error):
    """Montagem falhou; guarda a lista de mensagens coletadas"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors) or "Erro de montagem")
