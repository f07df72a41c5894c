import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    "jmap": {
        "session_url": "https://api.fastmail.com/jmap/session",
        "api_key_env": "FASTMAIL_AAR_KEY",
        "timeout_sec": None,
    },
    "folders": {
        "source": "_aar",
        "archive": "_aar_processed",
    },
    "screenshot": {
        "output_dir": "./screenshots",
        "width": 1280,
        "height": 800,
        "timeout_sec": 30,
        "settle_ms": 500,
        "format": "png",
        "quality": 90,
        "headless": True,
        "cdp_url": "",
    },
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return deep_merge(copy.deepcopy(DEFAULT_CONFIG), raw)


def resolve_output_dir(cfg: Dict[str, Any], config_path: Optional[Path]) -> Path:
    output_dir = Path(str(cfg["screenshot"]["output_dir"])).expanduser()
    if output_dir.is_absolute() or config_path is None:
        return output_dir
    return (config_path.resolve().parent / output_dir).resolve()


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(key)
    if val:
        return val
    return default
