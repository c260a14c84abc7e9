#!/usr/bin/env python3
# halfblock_view/ui/helppane.py

from __future__ import annotations

from typing import Sequence, Tuple

from prompt_toolkit.layout import ConditionalContainer
from prompt_toolkit.filters import Condition
from prompt_toolkit.widgets import Frame, TextArea

_FOOTER = (
    "\n"
    "Each cell shows two pixels: top half and bottom half.\n"
    "Switching images abandons the render still in progress.\n"
)


def help_text(keys: Sequence[Tuple[str, str]]) -> str:
    width = max((len(k) for k, _ in keys), default=0) + 3
    lines = ["Key Bindings:"]
    lines.extend(f"  {k.ljust(width)}{desc}" for k, desc in keys)
    return "\n".join(lines) + "\n" + _FOOTER


class HelpPane:
    """Framed key reference, hidden until toggled."""

    def __init__(self, keys: Sequence[Tuple[str, str]]):
        self.visible = False
        self.text_area = TextArea(
            text=help_text(keys),
            style="class:help",
            read_only=True,
            focusable=False,
        )
        self.container = ConditionalContainer(
            Frame(self.text_area, title="Help", style="class:help"),
            filter=Condition(lambda: self.visible),
        )

    def __pt_container__(self):
        return self.container

    def toggle(self) -> None:
        self.visible = not self.visible
