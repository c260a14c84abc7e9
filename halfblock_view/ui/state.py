#!/usr/bin/env python3
# halfblock_view/ui/state.py
"""Mutable runtime state for the viewer UI: which image is selected."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ViewerState:
    sources: List[str] = field(default_factory=list)
    index: int = 0

    # UI hints
    info_msg: str = ""

    # Internal lock for multi-thread updates
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        self.sources = [s for s in self.sources if s]
        self.index = max(0, min(self.index, len(self.sources) - 1))

    @property
    def current(self) -> Optional[str]:
        with self._lock:
            if not self.sources:
                return None
            return self.sources[self.index]

    @property
    def position(self) -> str:
        with self._lock:
            if not self.sources:
                return "0/0"
            return f"{self.index + 1}/{len(self.sources)}"

    # ------------- navigation -------------

    def step(self, delta: int) -> Optional[str]:
        """Move the selection by delta, wrapping around. Returns the new source."""
        with self._lock:
            if not self.sources:
                return None
            self.index = (self.index + int(delta)) % len(self.sources)
            return self.sources[self.index]

    # ------------- info -------------

    def set_info(self, msg: str) -> None:
        with self._lock:
            self.info_msg = msg

    @property
    def info(self) -> str:
        with self._lock:
            return self.info_msg
