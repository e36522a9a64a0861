import logging
import tkinter as tk
from tkinter import ttk, messagebox

from mic1.assembler.core import assemble
from mic1.common.constants import REGISTER_NAMES
from mic1.common.fmt import fmt_bin, fmt_dec, fmt_hex, fmt_signed
from mic1.common.opcodes import disassemble
from mic1.hardware.cpu import Mic1CPU
from mic1.ui.widgets import CodeEditor

log = logging.getLogger(__name__)

SAMPLE_SRC = """; Soma 5 + 4 + 3 + 2 + 1 usando a pilha
        LOCO 5
        STOD 400    ; contador
        LOCO 0
        STOD 401    ; acumulado

Loop:   LODD 401
        ADDD 400
        STOD 401
        LODD 400
        SUBD Um
        STOD 400
        JNZE Loop

        LODD 401
        PUSH        ; resultado no topo da pilha
        CALL Dobra
        HALT

Dobra:  LODL 1      ; SP+0 eh o endereco de retorno
        ADDL 1
        STOL 1
        RETN

Um:     1
"""

MIN_DELAY, MAX_DELAY = 10, 1000


class Mic1GUI:
    """Interface Principal do Simulador.

    So consome o nucleo: assemble(), load_program(), step(), reset() e
    leitura de registradores/RAM/caches. O laco de execucao eh um
    ``root.after`` chamando ``step()`` uma vez por tick.
    """
    def __init__(self, root, cpu=None, speed=500):
        self.root = root
        self.root.title("Simulador MIC-1")
        self.root.geometry("1300x820")

        self.cpu = cpu or Mic1CPU()
        self.running = False
        self.hex_mode = True
        self.speed = speed
        self.job = None
        self.cache_view = tk.StringVar(value="D")
        self.follow_pc = tk.BooleanVar(value=True)
        self.last_pc = -1
        self.last_sp = -1

        style = ttk.Style()
        style.theme_use('clam')

        self._init_layout()
        self.init_mem_ui()
        self.update_ui(full=True)

    def _init_layout(self):
        panes = ttk.PanedWindow(self.root, orient=tk.HORIZONTAL)
        panes.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        # --- ESQUERDA: EDITOR ---
        lhs = ttk.Frame(panes, width=380)
        panes.add(lhs, weight=1)
        ttk.Label(lhs, text="Codigo Fonte (Assembly)", font=("Arial", 9, "bold")).pack(pady=5)
        self.editor = CodeEditor(lhs)
        self.editor.pack(fill=tk.BOTH, expand=True, padx=2)
        self.editor.set_src(SAMPLE_SRC)
        ttk.Button(lhs, text="Montar (Assemble)", command=self.do_assemble).pack(fill=tk.X, pady=5)

        # --- CENTRO: REGISTRADORES E LOG ---
        center = ttk.Frame(panes, width=480)
        panes.add(center, weight=2)

        reg_fr = ttk.LabelFrame(center, text="Registradores")
        reg_fr.pack(fill=tk.X, padx=5, pady=5)
        cols = ("Reg", "Hex", "Dec", "Sinal", "Bin")
        self.reg_tree = ttk.Treeview(reg_fr, columns=cols, show="headings", height=len(REGISTER_NAMES))
        for c in cols:
            self.reg_tree.heading(c, text=c)
            self.reg_tree.column(c, width=140 if c == "Bin" else 60, anchor="center")
        self.reg_tree.pack(fill=tk.X)
        for name in REGISTER_NAMES:
            self.reg_tree.insert("", "end", iid=name, values=(name, "", "", "", ""))

        log_fr = ttk.LabelFrame(center, text="Micro-operacoes")
        log_fr.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)
        self.log_txt = tk.Text(log_fr, font=("Consolas", 9), height=12, state='disabled', wrap="none")
        lsb = ttk.Scrollbar(log_fr, orient="vertical", command=self.log_txt.yview)
        self.log_txt['yscrollcommand'] = lsb.set
        lsb.pack(side=tk.RIGHT, fill=tk.Y)
        self.log_txt.pack(fill=tk.BOTH, expand=True)

        # --- DIREITA: CONTROLES, CACHE, RAM ---
        rhs = ttk.Frame(panes, width=380)
        panes.add(rhs, weight=1)

        ctrl = ttk.LabelFrame(rhs, text="Painel de Controle")
        ctrl.pack(fill=tk.X, padx=5, pady=5)

        btns = ttk.Frame(ctrl)
        btns.pack(fill=tk.X)
        ttk.Button(btns, text="Run", command=self.toggle_run).pack(side=tk.LEFT, padx=2)
        ttk.Button(btns, text="Step", command=self.do_step).pack(side=tk.LEFT, padx=2)
        ttk.Button(btns, text="Stop", command=self.do_stop).pack(side=tk.LEFT, padx=2)
        ttk.Button(btns, text="Reset", command=self.do_reset).pack(side=tk.LEFT, padx=2)
        self.btn_hex = ttk.Button(btns, text="Ver: HEX", command=self.toggle_hex)
        self.btn_hex.pack(side=tk.RIGHT, padx=2)

        s_fr = ttk.Frame(ctrl)
        s_fr.pack(fill=tk.X, pady=2)
        ttk.Label(s_fr, text="Delay (ms):").pack(side=tk.LEFT)
        self.scale = ttk.Scale(s_fr, from_=MIN_DELAY, to=MAX_DELAY, value=self.speed, command=self.set_speed)
        self.scale.pack(side=tk.LEFT, fill=tk.X, expand=True, padx=5)

        self.lbl_stats = ttk.Label(ctrl, text="Ciclos: 0")
        self.lbl_stats.pack(side=tk.LEFT, padx=5)
        self.lbl_phase = ttk.Label(ctrl, text="PARADO", foreground="red")
        self.lbl_phase.pack(side=tk.RIGHT, padx=5)

        # Caches (uma tabela, troca entre I e D)
        c_fr = ttk.LabelFrame(rhs, text="L1 Cache")
        c_fr.pack(fill=tk.X, padx=5, pady=5)
        sel = ttk.Frame(c_fr)
        sel.pack(fill=tk.X)
        ttk.Radiobutton(sel, text="D-Cache", value="D", variable=self.cache_view,
                        command=self.update_cache).pack(side=tk.LEFT)
        ttk.Radiobutton(sel, text="I-Cache", value="I", variable=self.cache_view,
                        command=self.update_cache).pack(side=tk.LEFT)
        headers = ("L", "V", "Tag", "D", "Bloco")
        self.c_tree = ttk.Treeview(c_fr, columns=headers, show="headings", height=8)
        for h in headers:
            self.c_tree.heading(h, text=h)
            self.c_tree.column(h, width=220 if h == "Bloco" else 30, anchor="center")
        self.c_tree.pack(fill=tk.BOTH, expand=True)
        self.lbl_cache = ttk.Label(c_fr, text="Status: --", foreground="blue")
        self.lbl_cache.pack()

        # RAM
        mem_fr = ttk.LabelFrame(rhs, text="Memoria RAM")
        mem_fr.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        self.lbl_next = tk.Label(mem_fr, text="PC: 0000", bg="#eee", fg="#333", font=("Consolas", 10))
        self.lbl_next.pack(fill=tk.X, padx=2, pady=2)
        tk.Checkbutton(mem_fr, text="Seguir PC", variable=self.follow_pc).pack(anchor=tk.W)

        sb = ttk.Scrollbar(mem_fr, orient="vertical")
        sb.pack(side=tk.RIGHT, fill=tk.Y)
        self.mem_list = tk.Listbox(mem_fr, font=("Consolas", 10), yscrollcommand=sb.set)
        self.mem_list.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        sb.config(command=self.mem_list.yview)

    # --- Logica da GUI ---

    def set_speed(self, val): self.speed = int(float(val))

    def fval(self, val):
        # Formata o valor pra Hex ou Decimal com sinal
        return fmt_hex(val) if self.hex_mode else fmt_signed(val)

    def toggle_hex(self):
        pos = self.mem_list.yview()
        self.hex_mode = not self.hex_mode
        self.btn_hex.config(text="Ver: HEX" if self.hex_mode else "Ver: DEC")
        self.update_ui(full=True)
        self.mem_list.yview_moveto(pos[0])

    def log_micro(self, *lines):
        self.log_txt.config(state='normal')
        for msg in lines:
            self.log_txt.insert(tk.END, msg + "\n")
        self.log_txt.config(state='disabled')
        self.log_txt.see(tk.END)

    def mem_row(self, idx):
        return f"[{idx:03X}]: {self.fval(self.cpu.mem[idx])}"

    def init_mem_ui(self):
        self.mem_list.delete(0, tk.END)
        for i in range(len(self.cpu.mem)):
            self.mem_list.insert(tk.END, self.mem_row(i))

    def update_mem_row(self, idx, pc=False, sp=False):
        if not (0 <= idx < len(self.cpu.mem)): return
        txt = self.mem_row(idx)
        if self.mem_list.get(idx) != txt:
            self.mem_list.delete(idx)
            self.mem_list.insert(idx, txt)
        # Cores de fundo pra indicar PC e SP
        c = "#bbdefb" if pc else "#ffcdd2" if sp else "white"
        self.mem_list.itemconfig(idx, {'bg': c})

    def update_cache(self):
        cache = self.cpu.d_cache if self.cache_view.get() == "D" else self.cpu.i_cache
        for x in self.c_tree.get_children(): self.c_tree.delete(x)
        for i, l in enumerate(cache.lines):
            blk = " ".join(self.fval(w) for w in l.block)
            self.c_tree.insert("", "end", values=(i, int(l.valid), l.tag, int(l.dirty), blk))
        ic, dc = self.cpu.i_cache, self.cpu.d_cache
        self.lbl_cache.config(
            text=f"I: {ic.last_status} H={ic.hits} M={ic.misses} | "
                 f"D: {dc.last_status} H={dc.hits} M={dc.misses}")

    def update_ui(self, full=False):
        regs = self.cpu.regs
        for name in REGISTER_NAMES:
            v = regs[name]
            self.reg_tree.item(name, values=(name, fmt_hex(v), fmt_dec(v), fmt_signed(v), fmt_bin(v)))

        cpc, csp = regs["PC"], regs["SP"]
        if 0 <= cpc < len(self.cpu.mem):
            self.lbl_next.config(text=f"PC [{cpc:03X}]: {disassemble(self.cpu.mem[cpc])}")
        else:
            self.lbl_next.config(text=f"PC [{cpc:04X}]: fora da memoria")

        if full:
            self.init_mem_ui()
            rows = {cpc, csp}
        else:
            # So redesenha o que pode ter mudado
            rows = {cpc, csp, self.last_pc, self.last_sp, regs["MAR"]}
        for x in rows: self.update_mem_row(x, x == cpc, x == csp)

        if self.follow_pc.get() and 0 <= cpc < len(self.cpu.mem):
            self.mem_list.see(cpc)
        self.last_pc, self.last_sp = cpc, csp

        self.update_cache()
        self.lbl_stats.config(text=f"Ciclos: {self.cpu.cycle}")
        if self.cpu.halted:
            self.lbl_phase.config(text="HALT")

    def do_assemble(self):
        # Para o laco antes de montar, mesmo que a montagem falhe
        self.do_stop()
        res = assemble(self.editor.get_src())
        if not res.ok:
            log.info("Montagem falhou com %d erros, programa nao carregado", len(res.errors))
            messagebox.showerror("Erro no Assembler", "\n".join(res.errors))
            return
        self.cpu.load_program(res.binary)
        self.update_ui(full=True)
        msgs = [f"Programa carregado. ({len(res.binary)} palavras)"] + res.warnings
        self.log_micro(*msgs)
        self.lbl_phase.config(text="PRONTO")

    def tick(self):
        trace = self.cpu.step()
        if trace: self.log_micro(*trace)
        self.update_ui()

    def do_step(self):
        if self.running: self.do_stop()
        if self.cpu.halted:
            self.log_micro("CPU parada (HALT). Reinicie para continuar.")
            return
        self.tick()

    def toggle_run(self):
        if self.running: return
        if self.cpu.halted:
            self.log_micro("A CPU esta em HALT. Resete para rodar novamente.")
            return
        self.running = True
        self.lbl_phase.config(text="RODANDO")
        self.loop()

    def loop(self):
        self.job = None
        if not self.running: return
        self.tick()
        if self.cpu.halted:
            self.running = False
            self.log_micro("=== FIM DA EXECUCAO (HALT) ===")
            return
        self.job = self.root.after(max(self.speed, MIN_DELAY), self.loop)

    def do_stop(self):
        if self.job:
            self.root.after_cancel(self.job)
            self.job = None
        if self.running:
            self.running = False
            self.lbl_phase.config(text="PAUSA")
            self.log_micro("Execucao pausada.")

    def do_reset(self):
        self.do_stop()
        self.cpu.reset()
        self.last_pc = -1
        self.last_sp = -1
        self.lbl_phase.config(text="IDLE")
        self.log_micro("--- Sistema Reiniciado ---")
        self.update_ui(full=True)
