from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from idphoto.imaging.segmentation import DEFAULT_MODEL, MODEL_SPECS

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"


@dataclass(frozen=True)
class Settings:
    """
    Preferences persisted across sessions.

    segmentation_model:
        Which U²-Net variant to load ("u2netp" is small and fast, "u2net" is
        larger and more accurate).
    """
    segmentation_model: str = DEFAULT_MODEL


def config_dir() -> Path:
    return Path(os.environ.get("IDPHOTO_CONFIG_DIR", Path.home() / ".config" / "idphoto"))


def settings_path(base_dir: Optional[Path] = None) -> Path:
    return Path(base_dir or config_dir()) / SETTINGS_FILENAME


def load_settings(base_dir: Optional[Path] = None) -> Settings:
    """Read saved settings; missing or unusable values fall back to defaults."""
    path = settings_path(base_dir)
    if not path.exists():
        return Settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return Settings()

    model = data.get("segmentation_model") if isinstance(data, dict) else None
    if model not in MODEL_SPECS:
        if model is not None:
            logger.warning(f"Unknown segmentation model '{model}' in {path}; using {DEFAULT_MODEL}")
        return Settings()
    return Settings(segmentation_model=model)


def save_settings(settings: Settings, base_dir: Optional[Path] = None) -> Path:
    if settings.segmentation_model not in MODEL_SPECS:
        raise ValueError(f"Unknown segmentation model '{settings.segmentation_model}'")
    path = settings_path(base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(settings), indent=2), encoding="utf-8")
    return path
