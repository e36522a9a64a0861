"""
Testes da camada de interface que nao precisam de display.

Usa objetos falsos no lugar dos widgets Tk; so o import do tkinter
eh necessario.

Uso:
  python -m pytest tests/test_ui.py -v
"""

from types import SimpleNamespace

import pytest

pytest.importorskip("tkinter")

from mic1.hardware.cpu import Mic1CPU
from mic1.ui import app
from mic1.ui.widgets import token_tag


class FakeRoot:
    def __init__(self):
        self.cancelled = []

    def after_cancel(self, job):
        self.cancelled.append(job)


class FakeLabel:
    def __init__(self):
        self.text = None

    def config(self, text=None, **kw):
        self.text = text


def fake_gui(src, running=True):
    gui = SimpleNamespace(
        root=FakeRoot(), running=running, job="after#7" if running else None,
        lbl_phase=FakeLabel(), cpu=Mic1CPU(), logged=[],
        editor=SimpleNamespace(get_src=lambda: src),
    )
    gui.log_micro = lambda *lines: gui.logged.extend(lines)
    gui.do_stop = lambda: app.Mic1GUI.do_stop(gui)
    gui.update_ui = lambda full=False: None
    return gui


# =============================================================================
#  MONTAGEM PELA GUI
# =============================================================================

def test_failed_assemble_stops_run_loop(monkeypatch):
    shown = []
    monkeypatch.setattr(app.messagebox, "showerror", lambda title, msg: shown.append(msg))
    gui = fake_gui("LODD nada")
    app.Mic1GUI.do_assemble(gui)
    assert not gui.running
    assert gui.root.cancelled == ["after#7"]
    assert gui.job is None
    assert "Erro linha 1" in shown[0]
    assert gui.cpu.mem.get(0) == 0


def test_assemble_loads_program():
    gui = fake_gui("LOCO 5\nHALT", running=False)
    app.Mic1GUI.do_assemble(gui)
    assert gui.cpu.mem.get(0) == 0x7005
    assert gui.cpu.mem.get(1) == 0xFFFF
    assert gui.lbl_phase.text == "PRONTO"
    assert gui.logged[0].startswith("Programa carregado. (2 palavras)")


def test_sample_program_assembles():
    from mic1.assembler.core import assemble
    assert assemble(app.SAMPLE_SRC).ok


# =============================================================================
#  REALCE DE SINTAXE
# =============================================================================

@pytest.mark.parametrize("word, nxt, tag", [
    ("LODD", " ", "kw"),
    ("halt", "", "kw"),
    ("0x1F", "", "num"),
    ("-3", "", "num"),
    ("Loop", ":", "lbl"),
    ("Loop", "", None),
    ("1_0", "", None),
])
def test_token_tag(word, nxt, tag):
    assert token_tag(word, nxt) == tag
