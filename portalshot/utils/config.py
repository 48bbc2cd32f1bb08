"""User configuration for Portalshot, stored as YAML."""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .paths import PortalshotPaths
from .screenshot import CaptureMode, OutputFormat

logger = logging.getLogger(__name__)


def _default_shortcuts() -> Dict[str, str]:
    return {"confirm": "space", "cancel": "Escape"}


@dataclass
class Config:
    default_mode: CaptureMode = CaptureMode.REGION
    default_format: OutputFormat = OutputFormat.PNG
    save_directory: str = PortalshotPaths.DEFAULT_SCREENSHOTS_DIR
    filename_template: str = "screenshot_%Y%m%d_%H%M%S"
    auto_copy_to_clipboard: bool = False
    delay_seconds: int = 0
    backend: str = "auto"
    capture_timeout_seconds: int = 60
    animation_duration_ms: int = 800
    shortcuts: Dict[str, str] = field(default_factory=_default_shortcuts)

    @property
    def save_path(self) -> str:
        return os.path.expanduser(self.save_directory)

    def generate_filename(self, now: Optional[datetime] = None) -> str:
        return (now or datetime.now()).strftime(self.filename_template)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key '{key}'")
                continue
            values[key] = value

        try:
            if "default_mode" in values:
                values["default_mode"] = CaptureMode.parse(str(values["default_mode"]))
            if "default_format" in values:
                values["default_format"] = OutputFormat.parse(str(values["default_format"]))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if "shortcuts" in values:
            if not isinstance(values["shortcuts"], dict):
                raise ConfigError("'shortcuts' must be a mapping")
            shortcuts = _default_shortcuts()
            shortcuts.update({str(k): str(v) for k, v in values["shortcuts"].items()})
            values["shortcuts"] = shortcuts

        for key in ("delay_seconds", "capture_timeout_seconds", "animation_duration_ms"):
            if key in values and not isinstance(values[key], int):
                raise ConfigError(f"'{key}' must be an integer, got {values[key]!r}")

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["default_mode"] = self.default_mode.value
        data["default_format"] = self.default_format.value
        return data

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load the config file, or defaults when it does not exist."""
        path = path or PortalshotPaths.get_config_file()
        if not os.path.isfile(path):
            logger.debug(f"No configuration file at {path}, using defaults")
            return cls()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        return cls.from_dict(data)

    def save(self, path: Optional[str] = None) -> str:
        path = path or PortalshotPaths.get_config_file()
        PortalshotPaths.ensure_directory(os.path.dirname(path))
        with open(path, "w") as f:
            f.write(self.to_yaml())
        logger.info(f"Configuration written to {path}")
        return path
