#!/usr/bin/env python3
# halfblock_view/ui/app.py
"""Compose the prompt_toolkit application for the half-block image viewer."""

from typing import Optional, Sequence

from prompt_toolkit.application import Application
from prompt_toolkit.layout import Layout, HSplit, Window
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear_title, set_title

from halfblock_view.config import Config
from halfblock_view.pipeline.controller import PipelineController
from halfblock_view.styles import make_style
from halfblock_view.ui.state import ViewerState
from halfblock_view.ui.image_control import ImageControl
from halfblock_view.ui.statusbar import StatusBar
from halfblock_view.ui.helppane import HelpPane

KEYS = (
    ("n / →", "Next image"),
    ("p / ←", "Previous image"),
    ("r", "Reload"),
    ("h", "Toggle this help"),
    ("q", "Quit"),
)


class ImageViewerApp:
    def __init__(
        self,
        cfg: Config,
        sources: Sequence[str],
        controller: Optional[PipelineController] = None,
    ):
        self.cfg = cfg
        self.state = ViewerState(list(sources))
        self.controller = controller or PipelineController.from_config(cfg)
        self.image_control = ImageControl(cfg, self.state, self.controller)
        self.status = StatusBar(self.state, self.controller)
        self.help_pane = HelpPane(KEYS)

        self.image_window = Window(
            content=self.image_control,
            dont_extend_width=False,
            wrap_lines=False,
        )
        self.root = HSplit([
            self.image_window,
            self.status,
            self.help_pane,     # hidden until toggled
        ])

        self.kb = self._build_key_bindings()
        self.app = Application(
            layout=Layout(self.root, focused_element=self.image_window),
            key_bindings=self.kb,
            full_screen=True,
            style=make_style(cfg),
            mouse_support=bool(cfg["ui"].get("mouse", False)),
        )

    def _build_key_bindings(self):
        kb = KeyBindings()

        @kb.add("q")
        @kb.add("c-c")
        def _(event):
            event.app.exit()

        @kb.add("n")
        @kb.add("right")
        def _(event):
            self.image_control.show(+1)

        @kb.add("p")
        @kb.add("left")
        def _(event):
            self.image_control.show(-1)

        @kb.add("r")
        def _(event):
            self.image_control.reload()

        @kb.add("h")
        def _(event):
            self.help_pane.toggle()
            event.app.invalidate()

        return kb

    def run(self):
        set_title(self.cfg["app"]["title"])
        try:
            self.app.run()
        finally:
            clear_title()
            self.image_control.close()
            self.controller.shutdown(float(self.cfg["app"]["shutdown_timeout_s"]))
