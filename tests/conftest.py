import io
import threading

import pytest
from PIL import Image

from halfblock_view.pipeline.decoder import DecodedImage, decode_image
from halfblock_view.pipeline.source import SourceError


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


class FakeReader:
    """Serves bytes from a dict; unknown ids behave like missing files."""

    def __init__(self, blobs=None):
        self.blobs = dict(blobs or {})
        self.closed = False

    def read(self, source_id):
        if source_id not in self.blobs:
            raise SourceError(f"no such file: {source_id}")
        return self.blobs[source_id]

    def close(self):
        self.closed = True


class GatedDecoder:
    """
    Decoder whose results are keyed by the raw bytes.

    gate(key) makes decoding of that key block until the returned event is set;
    started[key] is set once a worker has entered the decoder for it.
    """

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.gates = {}
        self.started = {}
        self.lock = threading.Lock()

    def gate(self, key):
        ev = threading.Event()
        self.gates[key] = ev
        self.started[key] = threading.Event()
        return ev

    def __call__(self, data):
        if data in self.started:
            self.started[data].set()
        if data in self.gates:
            assert self.gates[data].wait(5), "gate never released"
        result = self.results.get(data)
        if result is None:
            return decode_image(data)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def png_bytes():
    def make(w, h, color=(255, 0, 0), mode="RGB"):
        return encode_png(Image.new(mode, (w, h), color))
    return make


@pytest.fixture
def solid_image():
    def make(w, h, color=(10, 20, 30)):
        return DecodedImage(Image.new("RGB", (w, h), color))
    return make


@pytest.fixture
def fake_reader_cls():
    return FakeReader


@pytest.fixture
def gated_decoder_cls():
    return GatedDecoder


@pytest.fixture
def tmp_config(tmp_path):
    from halfblock_view.config import Config
    return Config.load(str(tmp_path / "halfblock_view.json"))
