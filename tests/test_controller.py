import threading

import pytest

from halfblock_view.pipeline.controller import PipelineController, render_image
from halfblock_view.pipeline.decoder import DecodedImage
from halfblock_view.pipeline.model import Failed, Idle, Loading, Ready, ViewportBounds
from PIL import Image

BOUNDS = ViewportBounds(60, 20)


@pytest.fixture
def make_controller(fake_reader_cls, gated_decoder_cls):
    created = []

    def make(blobs=None, results=None, workers=1, background=(0, 0, 0)):
        decoder = gated_decoder_cls(results)
        ctl = PipelineController(
            reader=fake_reader_cls(blobs),
            decoder=decoder,
            workers=workers,
            background=background,
        )
        states = []
        ctl.subscribe(states.append)
        created.append(ctl)
        return ctl, decoder, states

    yield make
    for ctl in created:
        ctl.shutdown(timeout=5)


def test_initial_state_is_idle(make_controller):
    ctl, _, states = make_controller()
    assert ctl.state == Idle()
    assert states == []


def test_loading_is_published_before_request_returns(make_controller, solid_image):
    ctl, decoder, states = make_controller({"a": b"a"}, {b"a": solid_image(4, 4)})
    release = decoder.gate(b"a")
    ctl.request("a", BOUNDS)
    assert ctl.state == Loading("a")
    assert states == [Loading("a")]
    release.set()
    assert isinstance(ctl.wait(5), Ready)


def test_scaled_image_ready(make_controller, solid_image):
    ctl, _, states = make_controller({"big": b"big"}, {b"big": solid_image(800, 600)})
    ctl.request("big", BOUNDS)
    state = ctl.wait(5)
    assert isinstance(state, Ready)
    assert state.info_text == "800x600px → 53x20 cells"
    assert len(state.rows) == 20
    assert all(len(row.cells) == 53 for row in state.rows)
    assert state.rows[0].cells[0].fg == (10, 20, 30)
    assert [s.name for s in states] == ["loading", "ready"]


def test_small_image_ready_unscaled(make_controller, solid_image):
    ctl, _, _ = make_controller({"s": b"s"}, {b"s": solid_image(10, 10)})
    ctl.request("s", BOUNDS)
    state = ctl.wait(5)
    assert state.info_text == "10x5 cells"
    assert len(state.rows) == 5


def test_corrupted_bytes_fail(make_controller):
    ctl, _, states = make_controller({"bad": b"not an image at all"})
    ctl.request("bad", BOUNDS)
    state = ctl.wait(5)
    assert isinstance(state, Failed)
    assert state.source_id == "bad"
    assert state.message
    assert [s.name for s in states] == ["loading", "failed"]


def test_missing_source_fails_then_recovers(make_controller, solid_image):
    ctl, _, _ = make_controller({"ok": b"ok"}, {b"ok": solid_image(2, 2)})
    ctl.request("missing", BOUNDS)
    failed = ctl.wait(5)
    assert isinstance(failed, Failed)
    assert "no such file" in failed.message

    ctl.request("ok", BOUNDS)
    assert isinstance(ctl.wait(5), Ready)


def test_unexpected_decoder_error_becomes_failed(make_controller):
    ctl, _, _ = make_controller({"x": b"x"}, {b"x": RuntimeError("boom")})
    ctl.request("x", BOUNDS)
    state = ctl.wait(5)
    assert state == Failed("x", "RuntimeError: boom")


def test_superseded_request_is_never_published(make_controller, solid_image):
    ctl, decoder, states = make_controller(
        {"a": b"a", "b": b"b"},
        {b"a": solid_image(4, 4, (1, 1, 1)), b"b": solid_image(4, 4, (2, 2, 2))},
    )
    release_a = decoder.gate(b"a")
    ctl.request("a", BOUNDS)
    assert decoder.started[b"a"].wait(5)

    ctl.request("b", BOUNDS)
    release_a.set()
    state = ctl.wait(5)

    assert isinstance(state, Ready) and state.source_id == "b"
    assert states == [Loading("a"), Loading("b"), state]


def test_older_run_finishing_last_is_dropped(make_controller, solid_image):
    ctl, decoder, states = make_controller(
        {"a": b"a", "b": b"b"},
        {b"a": solid_image(4, 4, (1, 1, 1)), b"b": solid_image(4, 4, (2, 2, 2))},
        workers=2,
    )
    release_a = decoder.gate(b"a")
    ctl.request("a", BOUNDS)
    assert decoder.started[b"a"].wait(5)

    ctl.request("b", BOUNDS)
    ready_b = ctl.wait(5)
    assert isinstance(ready_b, Ready) and ready_b.source_id == "b"

    # a completes after b; shutdown joins the worker that was holding it
    release_a.set()
    ctl.shutdown(timeout=5)
    assert ctl.state is ready_b
    assert [(s.name, s.source_id) for s in states] == [
        ("loading", "a"), ("loading", "b"), ("ready", "b"),
    ]


def test_pending_jobs_are_skipped(make_controller, solid_image):
    ctl, decoder, states = make_controller(
        {k: k.encode() for k in "abc"},
        {k.encode(): solid_image(2, 2) for k in "abc"},
    )
    release_a = decoder.gate(b"a")
    decoder.started[b"b"] = threading.Event()
    ctl.request("a", BOUNDS)
    assert decoder.started[b"a"].wait(5)
    ctl.request("b", BOUNDS)
    ctl.request("c", BOUNDS)
    release_a.set()
    assert ctl.wait(5).source_id == "c"
    assert not decoder.started[b"b"].is_set()


def test_bounds_are_clamped(make_controller, solid_image):
    ctl, _, _ = make_controller({"a": b"a"}, {b"a": solid_image(10, 10)})
    ctl.request("a", ViewportBounds(0, 0))
    state = ctl.wait(5)
    assert state.info_text == "10x10px → 1x1 cells"
    assert len(state.rows) == 1 and len(state.rows[0].cells) == 1


def test_zero_sized_image_is_clamped(make_controller):
    empty = DecodedImage(Image.new("RGBA", (0, 5)))
    ctl, _, _ = make_controller({"e": b"e"}, {b"e": empty})
    ctl.request("e", BOUNDS)
    state = ctl.wait(5)
    assert isinstance(state, Ready)
    assert state.info_text == "1x3 cells"


def test_listener_errors_do_not_break_pipeline(make_controller, solid_image):
    ctl, _, states = make_controller({"a": b"a"}, {b"a": solid_image(2, 2)})

    def broken(state):
        raise ValueError("listener bug")

    ctl.subscribe(broken)
    ctl.request("a", BOUNDS)
    assert isinstance(ctl.wait(5), Ready)
    assert len(states) == 2


def test_unsubscribe(make_controller, solid_image):
    ctl, _, _ = make_controller({"a": b"a"}, {b"a": solid_image(2, 2)})
    seen = []
    unsubscribe = ctl.subscribe(seen.append)
    unsubscribe()
    ctl.request("a", BOUNDS)
    ctl.wait(5)
    assert seen == []


def test_transparent_pixels_use_background(make_controller):
    clear = DecodedImage(Image.new("RGBA", (1, 1), (255, 255, 255, 0)))
    ctl, _, _ = make_controller({"t": b"t"}, {b"t": clear}, background=(0, 0, 64))
    ctl.request("t", BOUNDS)
    assert ctl.wait(5).rows[0].cells[0].fg == (0, 0, 64)


def test_render_image_is_deterministic(solid_image):
    img = solid_image(33, 17, (90, 80, 70))
    assert render_image("x", img, BOUNDS) == render_image("x", img, BOUNDS)


def test_shutdown_closes_reader(fake_reader_cls):
    reader = fake_reader_cls()
    ctl = PipelineController(reader=reader, workers=2)
    ctl.shutdown(timeout=5)
    assert reader.closed
