#!/usr/bin/env python3
# halfblock_view/pipeline/source.py
"""
Byte sources for the pipeline.

A source id is either a local path (``~`` expanded, ``file://`` accepted) or
an ``http(s)://`` URL. URLs are fetched through a shared requests session
with urllib3 retry on transient statuses.
"""

from __future__ import annotations

import logging
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from halfblock_view.pipeline.decoder import PipelineError

__all__ = ["SourceError", "SourceReader", "is_url"]

log = logging.getLogger(__name__)


class SourceError(PipelineError):
    """The bytes behind a source id could not be read."""


def is_url(source_id: str) -> bool:
    s = source_id.lower()
    return s.startswith("http://") or s.startswith("https://")


class SourceReader:
    """
    Reads raw bytes for a source id.
    Thread-safe for concurrent reads from pipeline workers.
    """

    def __init__(
        self,
        user_agent: str = "halfblock-view/1.0",
        connect_timeout: float = 5.0,
        read_timeout: float = 15.0,
        retries: int = 3,
        max_bytes: int = 64 * 1024 * 1024,
        pool_size: int = 4,
    ):
        self.timeout = (connect_timeout, read_timeout)
        self.max_bytes = max_bytes

        self.session = requests.Session()
        self.session.headers["User-Agent"] = user_agent
        retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            backoff_factor=0.3,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=pool_size, pool_maxsize=pool_size)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_config(cls, cfg) -> "SourceReader":
        n = cfg["network"]
        return cls(
            user_agent=n["user_agent"],
            connect_timeout=float(n["connect_timeout_s"]),
            read_timeout=float(n["read_timeout_s"]),
            retries=int(n["retries"]),
            max_bytes=int(n["max_bytes"]),
            pool_size=max(1, int(cfg["pipeline"]["workers"])),
        )

    def read(self, source_id: str) -> bytes:
        if not source_id:
            raise SourceError("no image selected")
        if is_url(source_id):
            return self._read_url(source_id)
        return self._read_file(source_id)

    def _read_file(self, source_id: str) -> bytes:
        if source_id.startswith("file://"):
            source_id = source_id[len("file://"):]
        p = Path(source_id).expanduser()
        try:
            size = p.stat().st_size
            if size > self.max_bytes:
                raise SourceError(f"{p.name}: file is {size} bytes, limit is {self.max_bytes}")
            return p.read_bytes()
        except FileNotFoundError:
            raise SourceError(f"no such file: {source_id}") from None
        except IsADirectoryError:
            raise SourceError(f"is a directory: {source_id}") from None
        except PermissionError:
            raise SourceError(f"permission denied: {source_id}") from None
        except OSError as exc:
            raise SourceError(f"{source_id}: {exc.strerror or exc}") from exc

    def _read_url(self, url: str) -> bytes:
        log.debug("GET %s", url)
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as r:
                if not r.ok:
                    raise SourceError(f"HTTP {r.status_code} for {url}")
                buf = bytearray()
                for chunk in r.iter_content(chunk_size=64 * 1024):
                    buf.extend(chunk)
                    if len(buf) > self.max_bytes:
                        raise SourceError(f"{url}: response exceeds {self.max_bytes} bytes")
                return bytes(buf)
        except requests.RequestException as exc:
            raise SourceError(f"{url}: {exc}") from exc

    def close(self) -> None:
        self.session.close()
