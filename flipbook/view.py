# view.py
import tkinter as tk
from tkinter import ttk
from PIL import Image, ImageTk
import ctypes

from flipbook.config import THEMES


class View(tk.Tk):
    """
    The View class responsible for the entire GUI of the page turning viewer.
    """
    def __init__(self):
        super().__init__()

        self.theme = THEMES["dark"]
        self.page_count = 0
        self.current_page = 0
        self.error_message = None

        self._setup_window()
        self._setup_styles()
        self._create_widgets()
        self._bind_ui_events()

    def _setup_window(self):
        self.title("Flipbook")
        self.geometry("900x1000")
        self.configure(bg=self.theme["bg"])
        try:
            ctypes.windll.shcore.SetProcessDpiAwareness(1)
            gui_scaling_factor = ctypes.windll.shcore.GetScaleFactorForDevice(0) / 100.0
            self.tk.call('tk', 'scaling', gui_scaling_factor)
        except (AttributeError, OSError):
            pass

    def _setup_styles(self):
        self.style = ttk.Style()
        try:
            self.style.theme_use('clam')
        except tk.TclError:
            pass
        self.style.configure('TButton', background=self.theme['btn_bg'], foreground=self.theme['fg'], borderwidth=1,
                             focusthickness=3, focuscolor='none')
        self.style.map('TButton', background=[('active', '#5A5A5A')])
        self.style.configure('TFrame', background=self.theme['bg'])
        self.style.configure('TLabel', background=self.theme['bg'], foreground=self.theme['fg'])
        self.style.configure('TSeparator', background=self.theme['canvas_bg'])

    def _create_widgets(self):
        self.placeholder = ImageTk.PhotoImage(Image.new("RGBA", (16, 16), (0, 0, 0, 0)))
        self.frame_image = None

        self._create_toolbar()
        self._create_main_content()
        self._create_statusbar()

    def _create_toolbar(self):
        toolbar = ttk.Frame(self, style='TFrame', padding=5)
        toolbar.pack(side=tk.TOP, fill=tk.X)

        ttk.Button(toolbar, text="Open", command=self.open_pdf).pack(side=tk.LEFT, padx=5)
        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, padx=5, fill='y')

        self.btn_prev = ttk.Button(toolbar, text="◀", command=self.prev_page, width=3)
        self.btn_prev.pack(side=tk.LEFT, padx=(5, 0))
        self.btn_next = ttk.Button(toolbar, text="▶", command=self.next_page, width=3)
        self.btn_next.pack(side=tk.LEFT, padx=(2, 5))

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, padx=5, fill='y')
        self.btn_retry = ttk.Button(toolbar, text="Retry", command=self.retry_page, state=tk.DISABLED)
        self.btn_retry.pack(side=tk.LEFT, padx=5)

    def _create_main_content(self):
        main_frame = ttk.Frame(self, style='TFrame')
        main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)
        self.canvas = tk.Canvas(main_frame, bg=self.theme["canvas_bg"], highlightthickness=0)
        self.canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.canvas_item = self.canvas.create_image(0, 0, anchor="nw", image=self.placeholder)

    def _create_statusbar(self):
        statusbar = ttk.Frame(self, style='TFrame', padding=(5, 2))
        statusbar.pack(side=tk.BOTTOM, fill=tk.X)
        self.info_lbl_left = ttk.Label(statusbar, text="No file open", anchor="w")
        self.info_lbl_left.pack(side=tk.LEFT, padx=10)
        self.info_lbl_right = ttk.Label(statusbar, text="Page: -/-", anchor="e")
        self.info_lbl_right.pack(side=tk.RIGHT, padx=10)

    def _bind_ui_events(self):
        self.bind("<Left>", lambda e: self.prev_page())
        self.bind("<Right>", lambda e: self.next_page())
        self.bind("<Prior>", lambda e: self.prev_page())
        self.bind("<Next>", lambda e: self.next_page())
        self.bind("<r>", lambda e: self.retry_page())
        self.canvas.bind("<Configure>", self._on_resize)

    def show_frame(self, img: Image.Image):
        # keep a reference, Tk does not
        self.frame_image = ImageTk.PhotoImage(img)
        self.canvas.itemconfig(self.canvas_item, image=self.frame_image)

    def show_error(self, message: str):
        self.error_message = message
        self.canvas.itemconfig(self.canvas_item, image=self.placeholder)
        self.info_lbl_left.config(text=message)
        self.info_lbl_right.config(text="Page: -/-")
        self.title("Flipbook")

    def update_statusbar(self, filename: str = None, failed: bool = False):
        if not self.page_count:
            if not self.error_message:
                self.info_lbl_left.config(text="No file open")
            self.info_lbl_right.config(text="Page: -/-")
            self.title("Flipbook")
            return

        self.info_lbl_left.config(text=filename or "")
        self.info_lbl_right.config(text=f"Page: {self.current_page + 1}/{self.page_count}")
        self.btn_retry.config(state=tk.NORMAL if failed else tk.DISABLED)
        self.title(f"{filename} - Page {self.current_page + 1} of {self.page_count}")
