#!/usr/bin/env python3
# halfblock_view/ui/image_control.py
"""prompt_toolkit UIControl that draws the pipeline's current RenderState."""

from __future__ import annotations

from typing import List, Optional, Tuple

from prompt_toolkit.application import get_app_or_none
from prompt_toolkit.layout.controls import UIContent, UIControl

from halfblock_view.config import Config
from halfblock_view.pipeline.controller import PipelineController
from halfblock_view.pipeline.model import Failed, Loading, Ready, RenderState, ViewportBounds
from halfblock_view.rendering.halfblock import LineFrag, row_fragments
from halfblock_view.ui.state import ViewerState


def state_lines(state: RenderState) -> List[LineFrag]:
    """Lines for one render state: a header, then the glyph rows when ready."""
    if isinstance(state, Loading):
        return [[("class:loading", "Loading image...")]]
    if isinstance(state, Failed):
        return [[("class:error", f"Error: {state.message}")]]
    if isinstance(state, Ready):
        lines: List[LineFrag] = [[("class:info", state.info_text)], [("", "")]]
        lines.extend(row_fragments(row) for row in state.rows)
        return lines
    return [[("class:info", "No image selected")]]


class ImageControl(UIControl):
    """Render the selected image and re-request it when the window size changes."""

    def __init__(self, cfg: Config, state: ViewerState, controller: PipelineController):
        self.cfg = cfg
        self.state = state
        self.controller = controller

        # Last (source, bounds) handed to the controller. A resize only takes
        # effect through a new request; in-flight runs keep their bounds.
        self._requested: Optional[Tuple[str, ViewportBounds]] = None
        self._last_bounds = ViewportBounds(1, 1)
        self._unsubscribe = controller.subscribe(self._on_state)

    # -------- UIControl interface --------

    def is_focusable(self) -> bool:
        return True

    def preferred_width(self, max_available_width: int) -> int:
        return max_available_width

    def preferred_height(
        self,
        width: int,
        max_available_height: int,
        wrap_lines: bool,
        get_line_prefix,
    ) -> int:
        return max_available_height

    def create_content(self, width: int, height: int) -> UIContent:
        width = max(1, int(width))
        height = max(1, int(height))
        bounds = self.bounds_for(width, height)
        self._last_bounds = bounds

        source = self.state.current
        if source is not None and self._requested != (source, bounds):
            self._request(source, bounds)

        lines = state_lines(self.controller.state)
        return UIContent(
            get_line=lambda i: lines[i] if 0 <= i < len(lines) else [("", "")],
            line_count=len(lines),
        )

    # -------- sizing --------

    def bounds_for(self, width: int, height: int) -> ViewportBounds:
        return ViewportBounds.for_terminal(width, height, self.cfg["viewport"])

    # -------- actions --------

    def _request(self, source: str, bounds: ViewportBounds) -> None:
        self._requested = (source, bounds)
        self.controller.request(source, bounds)

    def show(self, delta: int) -> None:
        """Select the next/previous image and render it right away."""
        source = self.state.step(delta)
        if source is not None:
            self.state.set_info(f"Opened {source}")
            self._request(source, self._last_bounds)

    def reload(self) -> None:
        source = self.state.current
        if source is not None:
            self.state.set_info("Reloaded")
            self._request(source, self._last_bounds)

    def _on_state(self, _state: RenderState) -> None:
        # Called from render workers; prompt_toolkit redraws on its own loop.
        app = get_app_or_none()
        if app:
            app.invalidate()

    def close(self) -> None:
        self._unsubscribe()
