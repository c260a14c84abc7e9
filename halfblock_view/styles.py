#!/usr/bin/env python3
# halfblock_view/styles.py
"""
Style definitions for the viewer.
Provides light, dark, and auto themes for prompt_toolkit.
"""

import os

from prompt_toolkit.styles import Style
from halfblock_view.config import Config

def make_style(cfg: Config) -> Style:
    theme = cfg["ui"].get("theme", "auto")

    base_dark = {
        "status": "bg:#303030 #cccccc",
        "info": "#aaaaaa",
        "error": "#ff5f5f bold",
        "loading": "#888888 italic",
        "help": "bg:#202020 #dddddd",
    }
    base_light = {
        "status": "bg:#cccccc #000000",
        "info": "#444444",
        "error": "#aa0000 bold",
        "loading": "#666666 italic",
        "help": "bg:#eeeeee #000000",
    }

    if theme == "light":
        return Style.from_dict(base_light)
    if theme == "dark":
        return Style.from_dict(base_dark)

    # Auto-detect via environment
    if os.getenv("TERM_THEME", "").lower() == "light":
        return Style.from_dict(base_light)
    return Style.from_dict(base_dark)
