"""
Configuration for document session management.

Values load from DOCSESSION_* environment variables first, then command-line
flags override them. Unparseable environment values are ignored and the
default is kept.
"""

import argparse
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

ENV_PREFIX = "DOCSESSION_"


class ReleaseBehavior(str, Enum):
    """What happens to unsaved session changes when a session is released
    by idle eviction or server shutdown."""

    AUTO_SAVE = "auto_save"
    SAVE_TO_TEMP = "save_to_temp"
    DISCARD = "discard"


@dataclass
class SessionConfig:
    """Session store limits and lifecycle policy."""

    max_sessions: int = 10
    idle_timeout_minutes: int = 30  # 0 = never evict
    max_file_size_mb: int = 100
    temp_directory: str = field(default_factory=tempfile.gettempdir)
    temp_retention_hours: int = 24
    on_release: ReleaseBehavior = ReleaseBehavior.SAVE_TO_TEMP
    sweep_interval_seconds: int = 60
    auto_save_interval_minutes: int = 0  # 0 = no periodic temp checkpoints
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SessionConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read (defaults to os.environ)

        Returns:
            SessionConfig with defaults for unset or unparseable values
        """
        env = os.environ if environ is None else environ
        config = cls()

        for attr, var in _INT_VARS.items():
            value = _parse_int(env.get(ENV_PREFIX + var))
            if value is not None:
                setattr(config, attr, value)

        temp_dir = env.get(ENV_PREFIX + "TEMP_DIR")
        if temp_dir:
            config.temp_directory = temp_dir

        behavior = _parse_behavior(env.get(ENV_PREFIX + "ON_RELEASE"))
        if behavior is not None:
            config.on_release = behavior

        log_level = env.get(ENV_PREFIX + "LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        return config

    def apply_args(self, args: argparse.Namespace) -> "SessionConfig":
        """Override fields with flags that were given on the command line."""
        for attr in _INT_VARS:
            value = getattr(args, attr, None)
            if value is not None:
                setattr(self, attr, value)
        if getattr(args, "temp_directory", None):
            self.temp_directory = args.temp_directory
        if getattr(args, "on_release", None):
            self.on_release = ReleaseBehavior(args.on_release)
        if getattr(args, "log_level", None):
            self.log_level = args.log_level.upper()
        return self

    def validate(self) -> None:
        """Check limits are sane.

        Raises:
            ValueError: If any value is out of range
        """
        if self.max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        if self.idle_timeout_minutes < 0:
            raise ValueError("idle_timeout_minutes cannot be negative")
        if self.max_file_size_mb < 1:
            raise ValueError("max_file_size_mb must be at least 1")
        if self.temp_retention_hours < 1:
            raise ValueError("temp_retention_hours must be at least 1")
        if self.sweep_interval_seconds < 1:
            raise ValueError("sweep_interval_seconds must be at least 1")
        if self.auto_save_interval_minutes < 0:
            raise ValueError("auto_save_interval_minutes cannot be negative")
        if not self.temp_directory:
            raise ValueError("temp_directory cannot be empty")


# attribute -> environment variable suffix
_INT_VARS = {
    "max_sessions": "MAX_SESSIONS",
    "idle_timeout_minutes": "IDLE_TIMEOUT",
    "max_file_size_mb": "MAX_FILE_SIZE_MB",
    "temp_retention_hours": "TEMP_RETENTION_HOURS",
    "sweep_interval_seconds": "SWEEP_INTERVAL",
    "auto_save_interval_minutes": "AUTO_SAVE_INTERVAL",
}


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_behavior(raw: str | None) -> ReleaseBehavior | None:
    if not raw:
        return None
    try:
        return ReleaseBehavior(raw.strip().lower())
    except ValueError:
        return None


def build_arg_parser() -> argparse.ArgumentParser:
    """Argument parser for the server command line."""
    parser = argparse.ArgumentParser(
        prog="mcp-docsession",
        description="MCP server for path-based and session-based document editing",
    )
    parser.add_argument("--max-sessions", dest="max_sessions", type=int, help="Maximum concurrent sessions")
    parser.add_argument(
        "--idle-timeout",
        dest="idle_timeout_minutes",
        type=int,
        help="Evict sessions idle for this many minutes (0 disables)",
    )
    parser.add_argument(
        "--max-file-size-mb", dest="max_file_size_mb", type=int, help="Largest file a session may open"
    )
    parser.add_argument("--temp-dir", dest="temp_directory", type=str, help="Directory for session snapshots")
    parser.add_argument(
        "--temp-retention-hours",
        dest="temp_retention_hours",
        type=int,
        help="Delete snapshots older than this many hours",
    )
    parser.add_argument(
        "--on-release",
        dest="on_release",
        choices=[b.value for b in ReleaseBehavior],
        help="What to do with unsaved changes on eviction or shutdown",
    )
    parser.add_argument(
        "--sweep-interval", dest="sweep_interval_seconds", type=int, help="Idle sweep period in seconds"
    )
    parser.add_argument(
        "--auto-save-interval",
        dest="auto_save_interval_minutes",
        type=int,
        help="Checkpoint dirty sessions to the temp directory every N minutes (0 disables)",
    )
    parser.add_argument("--log-level", dest="log_level", type=str, help="Logging level (DEBUG, INFO, ...)")
    return parser


def load_config(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> SessionConfig:
    """Load config from environment, then command line, then validate."""
    args = build_arg_parser().parse_args(argv)
    config = SessionConfig.from_env(environ).apply_args(args)
    config.validate()
    return config
