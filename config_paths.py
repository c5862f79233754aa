import json
import os

import structlog

from column_widths import ColumnWidthConfig
from style_rules import StyleConfig, StyleSet

logger = structlog.get_logger(__name__)

HOME = os.path.expanduser("~")
XDG_CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME")
CONFIG_HOME = XDG_CONFIG_HOME if XDG_CONFIG_HOME else os.path.join(HOME, ".config")
CONFIG_DIR = os.path.join(CONFIG_HOME, "tablescope")
CONFIG_JSON = os.path.join(CONFIG_DIR, "config.json")
LOG_PATH = os.path.join(CONFIG_DIR, "tablescope.log")

# default settings
FIND_CONTEXT_CHARS_DEFAULT = 20


def ensure_config_dirs():
    os.makedirs(CONFIG_DIR, exist_ok=True)


def _read_json(path):
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("config_unreadable", path=path, error=str(exc))
        return None


def load_config():
    cfg = {
        "THEME": StyleConfig(),
        "STYLE_SETS": [],
        "COLUMN_WIDTHS": ColumnWidthConfig(),
        "FIND_CONTEXT_CHARS": FIND_CONTEXT_CHARS_DEFAULT,
    }

    data = _read_json(CONFIG_JSON)
    if not isinstance(data, dict):
        return cfg

    theme = data.get("theme")
    if isinstance(theme, dict):
        try:
            cfg["THEME"] = StyleConfig.from_dict(theme)
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("config_theme_ignored", error=str(exc))

    style_sets = data.get("style_sets")
    if isinstance(style_sets, list):
        for entry in style_sets:
            if not isinstance(entry, dict):
                logger.warning("config_style_set_ignored", error="not an object")
                continue
            try:
                cfg["STYLE_SETS"].append(StyleSet.from_dict(entry))
            except (KeyError, ValueError, TypeError, AttributeError) as exc:
                logger.warning(
                    "config_style_set_ignored", name=entry.get("name"), error=str(exc)
                )

    widths = data.get("column_widths")
    if isinstance(widths, dict):
        try:
            cfg["COLUMN_WIDTHS"] = ColumnWidthConfig.from_dict(widths)
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("config_column_widths_ignored", error=str(exc))

    context = data.get("find_context_chars")
    if isinstance(context, int) and not isinstance(context, bool) and context >= 0:
        cfg["FIND_CONTEXT_CHARS"] = context
    elif context is not None:
        logger.warning("config_find_context_chars_ignored", value=context)

    return cfg
