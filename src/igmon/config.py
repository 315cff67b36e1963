from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from igmon.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_MONITOR_COMMAND,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PROBE_COMMAND,
    DEFAULT_READINESS_TIMEOUT,
    DEFAULT_TAIL_CHARS,
)
from igmon.exceptions import ConfigError
from igmon.logging import get_logger

__all__ = [
    "IgmonConfig",
    "MonitorConfig",
    "MonitorLogLevel",
    "NotificationConfig",
    "RunnerConfig",
    "load_config",
    "get_user_config_path",
    "PROJECT_CONFIG_NAME",
]

logger = get_logger(__name__)

PROJECT_CONFIG_NAME = "igmon.yaml"


class MonitorLogLevel(str, Enum):
    """Log levels understood by the external monitor."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class MonitorConfig(BaseModel):
    """Configuration of one monitor job.

    igmon never interprets these settings beyond notifications and naming;
    they are serialized with camelCase keys and forwarded verbatim to the
    external process. Field names accept both snake_case and camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Authentication & targets
    username: str = ""
    password: str = Field(default="", repr=False)
    targets: list[str] = Field(default_factory=lambda: ["instagram"])

    # Data fetching
    get_followers: bool = True
    get_following: bool = True
    skip_session: bool = False
    skip_followers: bool = False
    skip_followings: bool = False
    skip_getting_story_details: bool = False
    skip_getting_posts_details: bool = False
    get_more_post_details: bool = False

    # Downloads
    download_profile_pictures: bool = True
    download_stories: bool = True
    download_highlights: bool = False
    download_posts: bool = True
    max_posts_to_download: int = Field(default=20, ge=0)
    download_dir: str = "downloads/"

    # Output & logging
    new_followers_file: str = "output/{target}/new_followers.txt"
    new_following_file: str = "output/{target}/new_following.txt"
    unfollowed_by_file: str = "output/{target}/unfollowed_by.txt"
    unfollowed_you_file: str = "output/{target}/unfollowed_you.txt"
    not_following_you_back_file: str = "output/{target}/not_following_you_back.txt"
    mutual_following_file: str = "output/{target}/mutual_following.txt"
    database_file: str = "database.db"
    log_file: str = "instagram_monitor"
    log_level: MonitorLogLevel = MonitorLogLevel.INFO
    csv_file: str = ""
    dotenv_file: str = ""
    disable_logging: bool = False

    # Notifications
    status_notification: bool = False
    followers_notification: bool = False
    error_notification: bool = True

    # Intervals & delays
    insta_check_interval: int = Field(default=5400, ge=0)
    random_sleep_diff_low: int = Field(default=900, ge=0)
    random_sleep_diff_high: int = Field(default=180, ge=0)
    next_operation_delay: float = Field(default=0.7, ge=0.0)
    liveness_check_interval: int = Field(default=43200, ge=0)
    check_posts_in_hours_range: bool = False
    min_h1: int = Field(default=0, ge=0, le=23)
    max_h1: int = Field(default=4, ge=0, le=23)
    min_h2: int = Field(default=11, ge=0, le=23)
    max_h2: int = Field(default=23, ge=0, le=23)

    # Human simulation
    be_human: bool = False
    daily_human_hits: int = Field(default=5, ge=0)
    my_hashtags: list[str] = Field(default_factory=lambda: ["travel", "food", "nature"])
    be_human_verbose: bool = False

    # Advanced settings
    local_timezone: str = "Auto"
    detect_changed_profile_pic: bool = True
    profile_pic_file_empty: str = "instagram_profile_pic_empty.jpeg"
    imgcat_path: str = "imgcat"
    enable_jitter: bool = False
    jitter_verbose: bool = False
    user_agent: str = ""
    user_agent_mobile: str = ""
    check_internet_url: str = "https://www.instagram.com/"
    check_internet_timeout: int = Field(default=5, gt=0)

    def to_payload(self) -> dict[str, Any]:
        """Serialize the job configuration as the external process expects it."""
        return self.model_dump(mode="json", by_alias=True)


class RunnerConfig(BaseModel):
    """Settings for launching and observing the external monitor.

    Attributes:
        command: Command launching one monitor run.
        probe_command: Command proving the runtime is usable. Empty means
            the runtime is considered ready immediately.
        cwd: Working directory for the monitor (default: current directory).
        config_env_var: Environment variable carrying the job configuration.
        poll_interval: Seconds between two polls of the output.
        readiness_timeout: Seconds to wait for the runtime to become ready.
        heartbeat_interval: Seconds between "still working" messages while
            the runtime loads.
        tail_chars: Output characters kept in termination diagnostics.
        probe_retries: Extra attempts for a failing probe.
    """

    command: list[str] = Field(default_factory=lambda: list(DEFAULT_MONITOR_COMMAND))
    probe_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROBE_COMMAND)
    )
    cwd: Path | None = None
    config_env_var: str = CONFIG_ENV_VAR
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0.0, le=5.0)
    readiness_timeout: float = Field(default=DEFAULT_READINESS_TIMEOUT, gt=0.0)
    heartbeat_interval: float = Field(default=DEFAULT_HEARTBEAT_INTERVAL, gt=0.0)
    tail_chars: int = Field(default=DEFAULT_TAIL_CHARS, ge=0, le=100000)
    probe_retries: int = Field(default=1, ge=0, le=5)

    @model_validator(mode="after")
    def check_command_not_empty(self) -> Self:
        if not self.command:
            raise ValueError("runner.command must not be empty")
        return self


class NotificationConfig(BaseModel):
    """Settings for ntfy-based push notifications."""

    enabled: bool = False
    server: str = "https://ntfy.sh"
    topic: str | None = None

    @model_validator(mode="after")
    def check_topic_when_enabled(self) -> Self:
        if self.enabled and self.topic is None:
            logger.warning(
                "Notifications enabled but no topic specified. "
                "Notifications will not be sent."
            )
        return self


class YamlConfigSource(PydanticBaseSettingsSource):
    """Settings source reading one YAML file."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._config_data = _read_yaml(yaml_file) if yaml_file else {}

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        if field_name in self._config_data:
            return self._config_data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._config_data


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, returning {} for a missing or empty file.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if loaded is None:
        logger.warning(f"Config file {path} is empty, using defaults.")
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping",
            value=type(loaded).__name__,
        )
    return loaded


class IgmonConfig(BaseSettings):
    """Root configuration object containing all igmon settings."""

    model_config = SettingsConfigDict(
        env_prefix="IGMON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    verbosity: Literal["error", "warning", "info", "debug"] = "warning"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order the settings sources, highest priority first.

        1. Init settings (an explicit --config file)
        2. Environment variables (IGMON_*)
        3. Project YAML config (./igmon.yaml)
        4. User YAML config (~/.config/igmon/config.yaml)
        """
        return (
            init_settings,
            env_settings,
            YamlConfigSource(settings_cls, Path.cwd() / PROJECT_CONFIG_NAME),
            YamlConfigSource(settings_cls, get_user_config_path()),
        )


def get_user_config_path() -> Path:
    """Get the path to the user configuration file.

    Returns:
        Path to ~/.config/igmon/config.yaml
    """
    return Path.home() / ".config" / "igmon" / "config.yaml"


def load_config(config_path: Path | None = None) -> IgmonConfig:
    """Load configuration with hierarchy: defaults -> user -> project -> env.

    An explicit ``config_path`` is read on top of everything else, so a file
    passed with ``--config`` wins over environment variables.

    Args:
        config_path: Optional explicit config file.

    Returns:
        IgmonConfig instance with merged configuration.

    Raises:
        ConfigError: If configuration is invalid.
    """
    overrides: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                f"Config file not found: {config_path}", value=str(config_path)
            )
        overrides = _read_yaml(config_path)
    elif not (Path.cwd() / PROJECT_CONFIG_NAME).exists():
        logger.info("No project configuration found, using defaults.")

    try:
        return IgmonConfig(**overrides)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid configuration: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
