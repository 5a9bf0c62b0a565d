"""
Configuration management and loading.

Handles data directory resolution, report options and the optional
YAML settings file.
"""

import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from cc_usage.core.dates import validate_compact_date

CONFIG_DIR_ENV = "CLAUDE_CONFIG_DIR"
DEFAULT_DATA_PATH = Path.home() / ".claude"


class CostMode(Enum):
    """How a record's cost is determined."""
    AUTO = "auto"            # Pre-computed cost if present, otherwise calculate
    CALCULATE = "calculate"  # Always calculate from tokens
    DISPLAY = "display"      # Always use pre-computed cost (0 if absent)


class SortOrder(Enum):
    """Sort order for dated report rows."""
    ASC = "asc"
    DESC = "desc"


class DataDirectoryError(FileNotFoundError):
    """Raised when the usage data directory cannot be resolved."""


def get_default_data_path() -> Path:
    """Resolve the usage data root directory.

    The ``CLAUDE_CONFIG_DIR`` environment variable (trimmed) takes
    precedence over ``~/.claude``.

    Returns:
        Path to an existing directory

    Raises:
        DataDirectoryError: If the resolved path is not an existing directory
    """
    env_value = os.environ.get(CONFIG_DIR_ENV, "").strip()
    data_path = Path(env_value) if env_value else DEFAULT_DATA_PATH
    if not data_path.is_dir():
        raise DataDirectoryError(
            f"Claude data directory does not exist: {data_path}. "
            f"Please set {CONFIG_DIR_ENV} to a valid path, "
            f"or ensure {DEFAULT_DATA_PATH} exists."
        )
    return data_path


def _coerce_enum(enum_cls, value: Any, name: str):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ValueError(f"'{name}' must be a string")
    try:
        return enum_cls(value.lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"'{name}' must be one of: {valid}")


@dataclass(frozen=True)
class LoadOptions:
    """Options shared by all report loaders."""
    root_path: Optional[Path] = None
    mode: CostMode = CostMode.AUTO
    order: SortOrder = SortOrder.DESC
    offline: bool = False
    since: Optional[str] = None  # YYYYMMDD, inclusive
    until: Optional[str] = None  # YYYYMMDD, inclusive

    def __post_init__(self):
        """Normalize enum values and validate date filters."""
        object.__setattr__(self, "mode", _coerce_enum(CostMode, self.mode, "mode"))
        object.__setattr__(self, "order", _coerce_enum(SortOrder, self.order, "order"))
        if self.root_path is not None:
            object.__setattr__(self, "root_path", Path(self.root_path))
        validate_compact_date(self.since, "since")
        validate_compact_date(self.until, "until")

    def resolve_root(self) -> Path:
        """Return the explicit root path or the default data directory.

        Raises:
            DataDirectoryError: If the resolved path is not an existing directory
        """
        if self.root_path is not None:
            if not self.root_path.is_dir():
                raise DataDirectoryError(f"Claude data directory does not exist: {self.root_path}")
            return self.root_path
        return get_default_data_path()

    @property
    def projects_dir(self) -> Path:
        return self.resolve_root() / "projects"


@dataclass(frozen=True)
class Settings:
    """Defaults read from a YAML settings file."""
    data_path: Optional[Path] = None
    mode: CostMode = CostMode.AUTO
    order: SortOrder = SortOrder.DESC
    offline: bool = False
    session_limit: Optional[int] = None

    def __post_init__(self):
        """Validate session limit is positive."""
        if self.session_limit is not None and self.session_limit <= 0:
            raise ValueError("session_limit must be > 0")

    def to_load_options(self, **overrides: Any) -> LoadOptions:
        """Build LoadOptions from these settings; non-None overrides win."""
        options = LoadOptions(
            root_path=self.data_path,
            mode=self.mode,
            order=self.order,
            offline=self.offline,
        )
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(options, **changes) if changes else options


def load_settings(path: Union[str, Path]) -> Settings:
    """Load and validate report settings from a YAML file.

    Strict validation ensures a typo in the settings file is reported
    instead of silently falling back to defaults.

    Args:
        path: Path to YAML settings file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If settings file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If settings are invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in settings file {path}: {e}")

    if raw_config is None:
        return Settings()
    if not isinstance(raw_config, dict):
        raise ValueError("Settings file must contain a mapping")

    allowed_keys = {'data_path', 'mode', 'order', 'offline', 'session_limit'}
    unknown_keys = set(raw_config.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown settings keys: {unknown_keys}")

    values: Dict[str, Any] = {}

    if raw_config.get('data_path') is not None:
        data_path = raw_config['data_path']
        if not isinstance(data_path, str) or not data_path.strip():
            raise ValueError("'data_path' must be a non-empty string")
        values['data_path'] = Path(data_path.strip()).expanduser()

    if 'mode' in raw_config:
        values['mode'] = _coerce_enum(CostMode, raw_config['mode'], 'mode')

    if 'order' in raw_config:
        values['order'] = _coerce_enum(SortOrder, raw_config['order'], 'order')

    if 'offline' in raw_config:
        if not isinstance(raw_config['offline'], bool):
            raise ValueError("'offline' must be true or false")
        values['offline'] = raw_config['offline']

    if raw_config.get('session_limit') is not None:
        limit = raw_config['session_limit']
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError("'session_limit' must be a positive integer")
        values['session_limit'] = limit

    return Settings(**values)
