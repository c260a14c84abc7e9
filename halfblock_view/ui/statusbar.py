#!/usr/bin/env python3
# halfblock_view/ui/statusbar.py

from __future__ import annotations
from prompt_toolkit.widgets import Label

from halfblock_view.pipeline.controller import PipelineController
from halfblock_view.ui.state import ViewerState


class StatusBar:
    def __init__(self, state: ViewerState, controller: PipelineController):
        self.state = state
        self.controller = controller
        # Callable text: prompt_toolkit re-evaluates it on every redraw.
        self.label = Label(self.text, style="class:status")

    def __pt_container__(self):
        return self.label

    def text(self) -> str:
        # Plain text: paths may contain markup characters.
        source = self.state.current or "-"
        return (
            f" [{self.state.position}] {source}  "
            f"{self.controller.state.name}  {self.state.info}"
        )
