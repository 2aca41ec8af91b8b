"""
Configuration for the VR pointer recorder

Built-in settings live in class-level section dicts (POINTER, RECORDER,
LOGGING). Runtime and file overrides are kept separately and win over
the built-ins in get().

Environment variables:
    VRPOINTER_DATA_DIR            base directory (default ~/.vr_pointer)
    VRPOINTER_LOG_PATH            interaction log file
    VRPOINTER_LOG_DIR             application log directory
    VRPOINTER_POSITION_THRESHOLD  controller motion threshold
    VRPOINTER_RECORD_CLOSED       also record focus CLOSED transitions
    VRPOINTER_FSYNC               fsync the interaction log after each line
    VRPOINTER_MAX_READER_ERRORS   error limit when reading the log back
    LOG_LEVEL                     console/application log level
"""

import os
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Any, Optional, Union

SECTIONS = ('pointer', 'recorder', 'logging')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(Exception):
    """Invalid configuration value or unreadable config file"""
    pass


def _env_number(name: str, default, cast, min_val=None, max_val=None):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except (ValueError, TypeError):
        logging.getLogger(__name__).warning(f"Invalid {name}={raw!r}, using default {default}")
        return default
    if min_val is not None and value < min_val:
        value = min_val
    if max_val is not None and value > max_val:
        value = max_val
    return value


def _safe_int_env(name: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """Integer environment variable clamped to [min_val, max_val]."""
    return _env_number(name, default, int, min_val, max_val)


def _safe_float_env(name: str, default: float, min_val: float = None) -> float:
    """Float environment variable with an optional lower bound."""
    return _env_number(name, default, float, min_val)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() == 'true'


class Config:
    """
    Application configuration.

    Usage:
        from config import config

        threshold = config.get('pointer', 'position_change_threshold')
        config.set('recorder', 'fsync', False)
        log_path = config.FILES['log_path']
    """

    POINTER = {
        'ray_distance': 10.0,
        'position_change_threshold': _safe_float_env('VRPOINTER_POSITION_THRESHOLD', 0.5, 0.0),
        'record_focus_closed': _env_flag('VRPOINTER_RECORD_CLOSED', False),
        'controller_names': {
            'LeftHand': 'Left Controller',
            'RightHand': 'Right Controller',
        },
    }

    RECORDER = {
        'log_filename': 'ButtonClicks.csv',
        'fsync': _env_flag('VRPOINTER_FSYNC', True),
        'encoding': 'utf-8',
        'max_reader_errors': _safe_int_env('VRPOINTER_MAX_READER_ERRORS', 100, 1, 100000),
    }

    LOGGING = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'max_bytes': 5 * 1024 * 1024,
        'backup_count': 3,
        'console_output': True,
    }

    @classmethod
    def get_files_config(cls) -> dict:
        """Resolve file locations from the environment (read on every call)."""
        data_dir = Path(os.getenv('VRPOINTER_DATA_DIR', str(Path.home() / '.vr_pointer')))
        log_path = os.getenv('VRPOINTER_LOG_PATH')
        log_dir = os.getenv('VRPOINTER_LOG_DIR')
        return {
            'data_dir': data_dir,
            'log_path': Path(log_path) if log_path else data_dir / cls.RECORDER['log_filename'],
            'log_dir': Path(log_dir) if log_dir else data_dir / 'logs',
        }

    def __init__(
        self,
        config_file: Optional[str] = None,
        validate: bool = True,
        ensure_directories: bool = True,
    ):
        """
        Args:
            config_file: JSON file with per-section overrides
            validate: Run validate() after loading
            ensure_directories: Create the data and log directories
        """
        self._lock = threading.RLock()
        self._files: Optional[dict] = None
        self._overrides: Dict[str, Dict[str, Any]] = {}
        self._logger: Optional[logging.Logger] = None
        self._directory_status: Dict[str, bool] = {}
        self.config_file = config_file

        if ensure_directories:
            self.ensure_directories()
        if config_file:
            self.load_from_file(config_file)
        if validate:
            self.validate()

    @property
    def FILES(self) -> dict:
        """File locations, resolved once per instance"""
        with self._lock:
            if self._files is None:
                self._files = self.get_files_config()
            return self._files

    def _log(self, level: int, message: str):
        # Silent until set_logger() is called by setup_logging()
        if self._logger:
            self._logger.log(level, message)

    def ensure_directories(self) -> Dict[str, bool]:
        """Create data_dir, log_dir and the interaction log's parent."""
        files = self.FILES
        wanted = {
            'data_dir': files['data_dir'],
            'log_dir': files['log_dir'],
            'log_path': files['log_path'].parent,
        }
        status = {}
        for key, directory in wanted.items():
            try:
                directory.mkdir(parents=True, exist_ok=True)
                status[key] = directory.is_dir()
            except OSError as e:
                logging.getLogger(__name__).warning(f"Could not create {key} ({directory}): {e}")
                status[key] = False
        self._directory_status = status
        return status

    def validate(self):
        """
        Check the effective settings.

        Raises:
            ConfigError: Listing every invalid value
        """
        problems = []

        if self.get('pointer', 'ray_distance') <= 0:
            problems.append("ray_distance must be positive")
        if self.get('pointer', 'position_change_threshold') < 0:
            problems.append("position_change_threshold cannot be negative")

        log_filename = self.get('recorder', 'log_filename')
        if not log_filename or Path(log_filename).name != log_filename:
            problems.append(f"log_filename must be a bare file name, got {log_filename!r}")
        if self.get('recorder', 'max_reader_errors') < 1:
            problems.append("max_reader_errors must be at least 1")

        level = str(self.get('logging', 'level')).upper()
        if level not in LOG_LEVELS:
            problems.append(f"Unknown log level: {level}")

        if problems:
            raise ConfigError("Invalid configuration:\n  " + "\n  ".join(problems))

    def load_from_file(self, filepath: Union[str, Path]):
        """
        Replace the overrides with the sections of a JSON file.

        A missing file is ignored. Raises ConfigError for unreadable or
        malformed files.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            self._log(logging.WARNING, f"Config file not found: {filepath}")
            return

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._log(logging.ERROR, f"Invalid JSON in {filepath}: {e}")
            raise ConfigError(f"Invalid JSON in config file: {e}") from e
        except OSError as e:
            self._log(logging.ERROR, f"Cannot read {filepath}: {e}")
            raise ConfigError(f"Error loading config file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")

        with self._lock:
            self._overrides = {
                name.lower(): dict(values)
                for name, values in data.items()
                if isinstance(values, dict)
            }
        self._log(logging.INFO, f"Loaded configuration from {filepath}")

    def save_to_file(self, filepath: Union[str, Path]):
        """Write the effective settings (built-ins merged with overrides) as JSON."""
        filepath = Path(filepath)
        with self._lock:
            merged = {name: self.section(name) for name in SECTIONS}
            for name, values in self._overrides.items():
                merged.setdefault(name, {}).update(values)

        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(merged, f, indent=2, default=str)
        self._log(logging.INFO, f"Saved configuration to {filepath}")

    def section(self, name: str) -> Dict[str, Any]:
        """Effective settings of one section."""
        builtin = getattr(self, name.upper(), None)
        values = dict(builtin) if isinstance(builtin, dict) else {}
        with self._lock:
            values.update(self._overrides.get(name.lower(), {}))
        return values

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Override if set, else the built-in value, else default."""
        return self.section(section).get(key, default)

    def set(self, section: str, key: str, value: Any):
        """Runtime override of a single value."""
        with self._lock:
            self._overrides.setdefault(section.lower(), {})[key] = value

    def set_logger(self, logger):
        self._logger = logger

    def to_dict(self) -> dict:
        with self._lock:
            overrides = {name: dict(values) for name, values in self._overrides.items()}
        result: Dict[str, Any] = {name: dict(getattr(self, name.upper())) for name in SECTIONS}
        result['files'] = {k: str(v) for k, v in self.FILES.items()}
        result['custom'] = overrides
        return result


# Global instance. Side-effect free: directories are created and the
# settings validated by the application (or PointerContext.create callers).
config = Config(validate=False, ensure_directories=False)
