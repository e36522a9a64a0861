import argparse
import logging
import sys
from pathlib import Path

from mic1.assembler.core import assemble
from mic1.common.constants import REGISTER_NAMES
from mic1.common.errors import AssemblyError
from mic1.common.fmt import fmt_hex, fmt_signed
from mic1.hardware.cpu import Mic1CPU

log = logging.getLogger("mic1")


def build_parser():
    p = argparse.ArgumentParser(description="Simulador MIC-1 (CPU + cache + assembler)")
    p.add_argument("source", nargs="?", help="arquivo .asm pra montar")
    p.add_argument("--headless", action="store_true", help="roda sem interface e imprime o estado final")
    p.add_argument("--max-steps", type=int, default=10000, help="limite de passos no modo headless")
    p.add_argument("--speed", type=int, default=500, help="delay entre passos na GUI (ms)")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def run_headless(src, max_steps, out=None):
    if out is None:
        out = sys.stdout
    res = assemble(src)
    res.raise_for_errors()
    for w in res.warnings:
        print(f"[AVISO] {w}", file=out)

    cpu = Mic1CPU()
    cpu.load_program(res.binary)
    steps = cpu.run(max_steps)

    print(f"Passos: {steps} | HALT: {cpu.halted}", file=out)
    for name in REGISTER_NAMES:
        v = cpu.regs[name]
        print(f"  {name:<3} {fmt_hex(v)} {fmt_signed(v):>6}", file=out)
    for c in (cpu.i_cache, cpu.d_cache):
        print(f"  {c.name}: {c.hits} hits, {c.misses} misses ({c.hit_rate:.0%})", file=out)
    return cpu


def run_gui(src, speed):
    # Import tardio: o modo headless nao precisa de Tk instalado
    import tkinter as tk
    from mic1.ui.app import Mic1GUI

    root = tk.Tk()
    app = Mic1GUI(root, speed=speed)
    if src is not None:
        app.editor.set_src(src)
    root.mainloop()


# Ponto de entrada do simulador
def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    src = None
    if args.source:
        try:
            src = Path(args.source).read_text(encoding="utf-8")
        except OSError as e:
            log.error("Nao consegui ler %s: %s", args.source, e)
            return 2

    if args.headless:
        if src is None:
            log.error("--headless precisa de um arquivo fonte")
            return 2
        try:
            cpu = run_headless(src, args.max_steps)
        except AssemblyError as e:
            print("Erros de Compilacao:", file=sys.stderr)
            for msg in e.errors:
                print(f"  {msg}", file=sys.stderr)
            return 1
        return 0 if cpu.halted else 3

    try:
        run_gui(src, args.speed)
    except KeyboardInterrupt:
        # Fecha sem erro feio no terminal se der Ctrl+C
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
