#!/usr/bin/env python3
# halfblock_view/pipeline/controller.py
"""
Pipeline controller: source -> decode -> fit -> rasterize -> RenderState.

request() bumps an epoch, publishes Loading before returning and hands the job
to a worker thread. A run publishes its Ready/Failed result only if its epoch
is still the newest one; the comparison and the state swap happen under the
same lock, so a slow superseded run can never overwrite a newer state.
Superseded jobs that have not started yet are discarded from the queue.

Listeners are called with each new state while the lock is held, in epoch
order. Keep them short (the UI just invalidates).
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Tuple

from halfblock_view.pipeline.decoder import DecodedImage, PipelineError, decode_image
from halfblock_view.pipeline.fitter import fit, info_text
from halfblock_view.pipeline.model import (
    RGB,
    Failed,
    Idle,
    Loading,
    Ready,
    RenderState,
    ViewportBounds,
)
from halfblock_view.pipeline.rasterizer import rasterize
from halfblock_view.pipeline.source import SourceReader

__all__ = ["PipelineController", "render_image"]

log = logging.getLogger(__name__)

Listener = Callable[[RenderState], None]
Decoder = Callable[[bytes], DecodedImage]
Job = Tuple[int, str, ViewportBounds]


def render_image(
    source_id: str,
    image: DecodedImage,
    bounds: ViewportBounds,
    background: Optional[RGB] = None,
    resample: str = "lanczos",
) -> Ready:
    """Fit, resize and rasterize a decoded image. Synchronous, no epoch checks."""
    src_w = max(1, image.width)
    src_h = max(1, image.height)
    dims = fit(src_w, src_h, bounds)
    scaled = image.resized(dims.target_width_px, dims.target_height_px, resample)
    rows = rasterize(scaled, background)
    return Ready(source_id, info_text(src_w, src_h, dims), tuple(rows))


class PipelineController:
    """Owns the published RenderState and the render workers."""

    def __init__(
        self,
        reader: Optional[SourceReader] = None,
        decoder: Decoder = decode_image,
        workers: int = 1,
        background: Optional[RGB] = (0, 0, 0),
        resample: str = "lanczos",
    ):
        self.reader = reader if reader is not None else SourceReader()
        self.decoder = decoder
        self.background = background
        self.resample = resample

        self._lock = threading.RLock()
        self._settled = threading.Condition(self._lock)
        self._epoch = 0
        self._state: RenderState = Idle()
        self._listeners: List[Listener] = []

        self._req_q: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._threads = [
            threading.Thread(target=self._render_worker, name=f"render-{i}", daemon=True)
            for i in range(max(1, int(workers)))
        ]
        for t in self._threads:
            t.start()

    @classmethod
    def from_config(
        cls,
        cfg,
        reader: Optional[SourceReader] = None,
        decoder: Decoder = decode_image,
    ) -> "PipelineController":
        return cls(
            reader=reader if reader is not None else SourceReader.from_config(cfg),
            decoder=decoder,
            workers=cfg.workers,
            background=cfg.background_rgb,
            resample=cfg["render"]["resample"],
        )

    # -------- state / observers --------

    @property
    def state(self) -> RenderState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def wait(self, timeout: Optional[float] = None) -> RenderState:
        """Block until the current request has settled (or timeout)."""
        with self._settled:
            self._settled.wait_for(lambda: not isinstance(self._state, Loading), timeout)
            return self._state

    # -------- requests --------

    def request(self, source_id: str, bounds: ViewportBounds) -> None:
        """Start rendering source_id into bounds, superseding any earlier request."""
        snapshot = ViewportBounds.clamped(bounds.max_width_cells, bounds.max_height_cells)
        with self._lock:
            self._epoch += 1
            epoch = self._epoch
            self._set_state(Loading(source_id))
            self._enqueue((epoch, source_id, snapshot))
        log.debug("epoch %d: requested %s in %dx%d cells", epoch, source_id,
                  snapshot.max_width_cells, snapshot.max_height_cells)

    def _enqueue(self, job: Job) -> None:
        with self._req_q.mutex:
            self._req_q.queue.clear()
        self._req_q.put_nowait(job)

    def _is_current(self, epoch: int) -> bool:
        with self._lock:
            return epoch == self._epoch

    def _publish(self, epoch: int, state: RenderState) -> bool:
        with self._lock:
            if epoch != self._epoch:
                log.debug("epoch %d: dropping stale %s (current %d)", epoch, state.name, self._epoch)
                return False
            self._set_state(state)
            return True

    def _set_state(self, state: RenderState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception("render listener failed")
        self._settled.notify_all()

    # -------- worker logic --------

    def _render_worker(self) -> None:
        while not self._stop.is_set():
            try:
                job = self._req_q.get(timeout=0.2)
            except queue.Empty:
                continue

            if job is None or self._stop.is_set():
                break

            self._run(*job)

    def _run(self, epoch: int, source_id: str, bounds: ViewportBounds) -> None:
        t0 = time.perf_counter()
        try:
            data = self.reader.read(source_id)
            image = self.decoder(data)
        except PipelineError as exc:
            log.info("epoch %d: %s failed: %s", epoch, source_id, exc)
            self._publish(epoch, Failed(source_id, str(exc) or type(exc).__name__))
            return
        except Exception as exc:
            log.exception("epoch %d: unexpected error loading %s", epoch, source_id)
            self._publish(epoch, Failed(source_id, f"{type(exc).__name__}: {exc}"))
            return

        if not self._is_current(epoch):
            log.debug("epoch %d: superseded after decode", epoch)
            return

        try:
            ready = render_image(source_id, image, bounds, self.background, self.resample)
        except Exception as exc:
            log.exception("epoch %d: rasterizing %s failed", epoch, source_id)
            self._publish(epoch, Failed(source_id, f"{type(exc).__name__}: {exc}"))
            return

        if self._publish(epoch, ready):
            log.info("epoch %d: %s %s in %.1fms", epoch, source_id, ready.info_text,
                     (time.perf_counter() - t0) * 1000.0)

    # -------- lifecycle --------

    def shutdown(self, timeout: float = 0.5) -> None:
        self._stop.set()
        with self._req_q.mutex:
            self._req_q.queue.clear()
        for _ in self._threads:
            self._req_q.put_nowait(None)
        for t in self._threads:
            t.join(timeout=timeout)
        self.reader.close()
