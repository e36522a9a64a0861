import tkinter as tk
from tkinter import ttk

from mic1.assembler.core import COMMENT, LABEL_SEP, parse_int
from mic1.common.opcodes import OPCODE_MAP

FONT = ("Consolas", 10)
TAG_STYLES = {
    "kw":  {"foreground": "blue", "font": FONT + ("bold",)},
    "num": {"foreground": "#c00000"},
    "com": {"foreground": "#008000"},
    "lbl": {"foreground": "#800080", "font": FONT + ("bold",)},
}


def token_tag(word, next_char=""):
    """Tag de cor pra uma palavra do fonte (None = sem cor)"""
    if word.upper() in OPCODE_MAP:
        return "kw"
    if parse_int(word) is not None:
        return "num"
    if next_char == LABEL_SEP:
        return "lbl"
    return None


class CodeEditor(tk.Frame):
    """Editor do assembly: gutter com numero de linha e realce de sintaxe"""
    def __init__(self, master, **kwargs):
        super().__init__(master, **kwargs)

        self.linenum = tk.Text(self, width=4, padx=4, takefocus=0, border=0,
                               background='#f0f0f0', state='disabled', font=FONT)
        self.linenum.pack(side=tk.LEFT, fill=tk.Y)

        # Barras antes do texto, senao a horizontal some quando a janela encolhe
        self.vsb = ttk.Scrollbar(self, orient="vertical", command=self.sync_scroll)
        self.vsb.pack(side=tk.RIGHT, fill=tk.Y)
        self.area = tk.Text(self, font=FONT, undo=True, wrap="none")
        self.hsb = ttk.Scrollbar(self, orient="horizontal", command=self.area.xview)
        self.hsb.pack(side=tk.BOTTOM, fill=tk.X)
        self.area.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.area['xscrollcommand'] = self.hsb.set
        self.area['yscrollcommand'] = self.on_scroll

        for tag, style in TAG_STYLES.items():
            self.area.tag_configure(tag, **style)

        self.area.bind("<KeyRelease>", self.on_change)

        self.last_lines = -1
        self.update_gutter()

    def sync_scroll(self, *args):
        self.area.yview(*args)
        self.linenum.yview(*args)

    def on_scroll(self, *args):
        self.vsb.set(*args)
        self.linenum.yview_moveto(args[0])

    def on_change(self, event=None):
        self.update_gutter()
        self.highlight()

    def update_gutter(self):
        lines = int(self.area.index('end-1c').split('.')[0])
        if lines != self.last_lines:
            self.linenum.config(state='normal')
            self.linenum.delete('1.0', tk.END)
            self.linenum.insert('1.0', "\n".join(map(str, range(1, lines + 1))))
            self.linenum.config(state='disabled')
            self.last_lines = lines
        self.linenum.yview_moveto(self.area.yview()[0])

    def highlight(self):
        for tag in TAG_STYLES:
            self.area.tag_remove(tag, "1.0", tk.END)

        # Linha por linha: o que vem depois do ';' eh comentario, o resto vira token
        nlines = int(self.area.index('end-1c').split('.')[0])
        for row in range(1, nlines + 1):
            text = self.area.get(f"{row}.0", f"{row}.end")
            code, sep, _ = text.partition(COMMENT)
            if sep:
                self.area.tag_add("com", f"{row}.{len(code)}", f"{row}.end")

            col = 0
            for word in code.replace(LABEL_SEP, f" {LABEL_SEP} ").split():
                if word == LABEL_SEP:
                    continue
                col = code.index(word, col)
                end = col + len(word)
                tag = token_tag(word, code[end:end + 1])
                if tag == "lbl":
                    self.area.tag_add(tag, f"{row}.{col}", f"{row}.{end + 1}")
                elif tag:
                    self.area.tag_add(tag, f"{row}.{col}", f"{row}.{end}")
                col = end

    def get_src(self): return self.area.get("1.0", "end-1c")
    def set_src(self, text):
        self.area.delete("1.0", tk.END)
        self.area.insert("1.0", text)
        self.on_change()
