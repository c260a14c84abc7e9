#!/usr/bin/env python3
# halfblock_view/config.py
"""
Config loader/saver and defaults for the half-block image viewer.

Goals:
- Single JSON file per user.
- Safe atomic writes.
- Deep-merge of user config over defaults.
- Basic validation with sane fallbacks.

Usage:
    from halfblock_view.config import Config, DEFAULT_CONFIG
    cfg = Config.load()                 # ~/.config/halfblock_view/halfblock_view.json
    mode = cfg["render"]["alpha_mode"]
    cfg["ui"]["theme"] = "dark"
    cfg.save()
"""

from __future__ import annotations

import json
import os
import platform
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# ----------------------------
# Defaults
# ----------------------------

DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {
        "title": "Half-block Viewer",
        "shutdown_timeout_s": 1.0,
    },
    "viewport": {
        "reserved_rows": 2,               # info line + blank margin above the image
        "reserved_cols": 0,
        "max_width_cells": 0,             # 0 = use terminal width
        "max_height_cells": 0,            # 0 = use terminal height
    },
    "render": {
        "alpha_mode": "composite",        # composite | drop
        "background": "#000000",          # composite target for transparent pixels
        "resample": "lanczos",            # lanczos | bicubic | bilinear | nearest
    },
    "network": {
        "user_agent": "halfblock-view/1.0 (+https://example.invalid)",
        "connect_timeout_s": 5.0,
        "read_timeout_s": 15.0,
        "retries": 3,
        "max_bytes": 64 * 1024 * 1024,
    },
    "pipeline": {
        "workers": 1,
    },
    "ui": {
        "theme": "auto",                  # auto | light | dark
        "mouse": False,
    },
    "logging": {
        "level": "INFO",
        "http_debug": False,
        "file": None,                     # path or None
        "rotate_bytes": 5 * 1024 * 1024,
        "rotate_keep": 3,
    },
}

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

# ----------------------------
# Helpers
# ----------------------------

def _os_config_home() -> str:
    """Return per-OS config base directory."""
    if platform.system() == "Windows":
        base = os.environ.get("APPDATA") or os.path.expanduser("~\\AppData\\Roaming")
        return os.path.join(base, "HalfblockView")
    if platform.system() == "Darwin":
        return os.path.join(os.path.expanduser("~/Library/Application Support"), "HalfblockView")
    return os.path.join(os.path.expanduser("~/.config"), "halfblock_view")

def _default_config_path() -> str:
    """Resolve default config path, honoring HALFBLOCK_VIEW_CONFIG env override."""
    env = os.environ.get("HALFBLOCK_VIEW_CONFIG")
    if env:
        return os.path.expanduser(env)
    return os.path.join(_os_config_home(), "halfblock_view.json")

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Return deep-merged copy of dicts: values in b override a."""
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out

def _atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_cfg_", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    except Exception:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise

def _coerce_num(v: Any, default: float, minmax: Optional[Tuple[float, float]] = None) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return float(default)
    if minmax:
        lo, hi = minmax
        if x < lo: x = lo
        if x > hi: x = hi
    return x

def _coerce_int(v: Any, default: int, minmax: Optional[Tuple[int, int]] = None) -> int:
    try:
        x = int(v)
    except (TypeError, ValueError):
        return int(default)
    if minmax:
        lo, hi = minmax
        if x < lo: x = lo
        if x > hi: x = hi
    return x

def _coerce_bool(v: Any, default: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "yes", "on"): return True
        if s in ("0", "false", "no", "off"): return False
    return default

def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """'#rrggbb' -> (r, g, b)."""
    if not _HEX_COLOR.match(value or ""):
        raise ValueError(f"not a #rrggbb color: {value!r}")
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)

# ----------------------------
# Validation
# ----------------------------

def _validate(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Return validated copy with fallbacks applied."""
    c = _deep_merge(DEFAULT_CONFIG, cfg or {})

    # app
    c["app"]["title"] = str(c["app"].get("title") or DEFAULT_CONFIG["app"]["title"])
    c["app"]["shutdown_timeout_s"] = _coerce_num(c["app"].get("shutdown_timeout_s"), 1.0, (0.1, 30.0))

    # viewport
    vp = c["viewport"]
    vp["reserved_rows"] = _coerce_int(vp.get("reserved_rows"), 2, (0, 20))
    vp["reserved_cols"] = _coerce_int(vp.get("reserved_cols"), 0, (0, 200))
    vp["max_width_cells"] = _coerce_int(vp.get("max_width_cells"), 0, (0, 10000))
    vp["max_height_cells"] = _coerce_int(vp.get("max_height_cells"), 0, (0, 10000))

    # render
    r = c["render"]
    if r.get("alpha_mode") not in ("composite", "drop"):
        r["alpha_mode"] = DEFAULT_CONFIG["render"]["alpha_mode"]
    if not _HEX_COLOR.match(str(r.get("background") or "")):
        r["background"] = DEFAULT_CONFIG["render"]["background"]
    if r.get("resample") not in ("lanczos", "bicubic", "bilinear", "nearest"):
        r["resample"] = DEFAULT_CONFIG["render"]["resample"]

    # network
    n = c["network"]
    n["user_agent"] = str(n.get("user_agent") or DEFAULT_CONFIG["network"]["user_agent"])
    n["connect_timeout_s"] = _coerce_num(n.get("connect_timeout_s"), 5.0, (0.2, 60.0))
    n["read_timeout_s"]    = _coerce_num(n.get("read_timeout_s"), 15.0, (0.5, 120.0))
    n["retries"]           = _coerce_int(n.get("retries"), 3, (0, 10))
    n["max_bytes"]         = _coerce_int(n.get("max_bytes"), DEFAULT_CONFIG["network"]["max_bytes"],
                                         (1024, 1024 * 1024 * 1024))

    # pipeline
    p = c["pipeline"]
    p["workers"] = _coerce_int(p.get("workers"), 1, (1, 8))

    # ui
    ui = c["ui"]
    if ui.get("theme") not in ("auto", "light", "dark"):
        ui["theme"] = DEFAULT_CONFIG["ui"]["theme"]
    ui["mouse"] = _coerce_bool(ui.get("mouse"), DEFAULT_CONFIG["ui"]["mouse"])

    # logging
    lg = c["logging"]
    if lg.get("level") not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"):
        lg["level"] = DEFAULT_CONFIG["logging"]["level"]
    lg["http_debug"] = _coerce_bool(lg.get("http_debug"), DEFAULT_CONFIG["logging"]["http_debug"])
    lf = lg.get("file")
    lg["file"] = str(lf) if lf else None
    lg["rotate_bytes"] = _coerce_int(lg.get("rotate_bytes"), DEFAULT_CONFIG["logging"]["rotate_bytes"], (256 * 1024, 50 * 1024 * 1024))
    lg["rotate_keep"]  = _coerce_int(lg.get("rotate_keep"), DEFAULT_CONFIG["logging"]["rotate_keep"], (0, 50))

    return c

# ----------------------------
# Public API
# ----------------------------

@dataclass
class Config:
    """Thin wrapper around a nested dict with load/save/merge."""
    data: Dict[str, Any] = field(default_factory=lambda: json.loads(json.dumps(DEFAULT_CONFIG)))
    path: str = field(default_factory=_default_config_path)

    # --- Mapping-style access
    def __getitem__(self, k: str) -> Any:
        return self.data[k]

    def __setitem__(self, k: str, v: Any) -> None:
        self.data[k] = v

    def get(self, k: str, default: Any = None) -> Any:
        return self.data.get(k, default)

    # --- Ops
    @classmethod
    def load(cls, path: Optional[str] = None, create_if_missing: bool = True) -> "Config":
        cfg_path = os.path.expanduser(path) if path else _default_config_path()
        if not os.path.exists(cfg_path):
            cfg = _validate(DEFAULT_CONFIG)
            if create_if_missing:
                _atomic_write_json(cfg_path, cfg)
            return cls(cfg, cfg_path)

        try:
            with open(cfg_path, "r", encoding="utf-8") as f:
                user_cfg = json.load(f)
            if not isinstance(user_cfg, dict):
                raise ValueError("config root must be an object")
        except (OSError, ValueError):
            # Corrupt file. Backup and regenerate.
            backup = cfg_path + ".corrupt.bak"
            try:
                shutil.copyfile(cfg_path, backup)
            except OSError:
                pass
            user_cfg = {}

        return cls(_validate(user_cfg), cfg_path)

    def save(self) -> None:
        """Persist to JSON atomically."""
        full = _validate(self.data)
        _atomic_write_json(self.path, full)
        self.data = full  # sync in-memory with normalized values

    def update(self, partial: Dict[str, Any]) -> None:
        """Deep-merge a partial config then validate."""
        merged = _deep_merge(self.data, partial)
        self.data = _validate(merged)

    # Convenience getters
    @property
    def background_rgb(self) -> Optional[Tuple[int, int, int]]:
        """Composite color for transparent pixels, None when alpha is dropped."""
        if self.data["render"]["alpha_mode"] != "composite":
            return None
        return parse_hex_color(self.data["render"]["background"])

    @property
    def workers(self) -> int:
        return self.data["pipeline"]["workers"]


__all__ = [
    "Config",
    "DEFAULT_CONFIG",
    "parse_hex_color",
    "_default_config_path",
]
