"""Configuration management for the navigation layer."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class CharacterConfig:
    """Per-actor settings."""

    # Radius of the pre-emptive threat clear while walking
    clear_path_dist: int = 7
    interact_with_shrines: bool = True
    interact_with_chests: bool = False
    # Only honoured when interact_with_chests is off
    interact_with_super_chests: bool = False
    can_teleport: bool = False
    # HP percentage at or below which navigation stops (0 = disabled)
    chicken_at: int = 0
    buff_on_new_area: bool = False


@dataclass
class NavigationConfig:
    """Navigation constants, budgets and delays (seconds)."""

    finish_distance: int = 4
    max_path_errors: int = 5
    # Consecutive monster blocks before ignored monsters are fought too, then twice that before giving up
    max_monster_blocks: int = 3
    walk_step: int = 8
    baby_step: int = 3
    teleport_step: int = 10
    town_step: int = 12
    shrine_scan_distance: int = 50
    loot_radius: int = 25
    safety_scan_min: int = 30
    entrance_finish_distance: int = 7
    max_area_sync_attempts: int = 10
    max_entrance_attempts: int = 3
    max_area_recursion: int = 3
    max_door_attempts: int = 5

    monster_handle_cooldown: float = 0.5
    area_sync_delay: float = 0.2
    nudge_delay: float = 0.2
    town_wait_delay: float = 0.1
    move_delay: float = 0.0
    interaction_delay: float = 0.1
    entrance_click_delay: float = 0.8
    entrance_retry_delay: float = 1.0

    # Maze-like areas where dead ends are routed through teleport pads
    teleport_pad_areas: list[str] = field(default_factory=lambda: ["arcane_sanctuary"])
    # Areas where shrine detours are never taken
    shrine_free_areas: list[str] = field(default_factory=lambda: ["tower_cellar_5"])
    # Extra (from_area, to_area) transition rows, see navigation.transitions
    transitions: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""

    character: CharacterConfig = field(default_factory=CharacterConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to config/default.yaml

    Returns:
        Populated Config dataclass
    """
    if config_path is None:
        candidates = [
            Path("config/default.yaml"),
            Path(__file__).parent.parent / "config" / "default.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                config_path = str(candidate)
                break

    config = Config()

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            data = yaml.safe_load(f)

        if data:
            if "character" in data:
                config.character = CharacterConfig(**data["character"])
            if "navigation" in data:
                config.navigation = NavigationConfig(**data["navigation"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])

    # Environment variable overrides
    if os.environ.get("WAYFARER_LOG_LEVEL"):
        config.logging.level = os.environ["WAYFARER_LOG_LEVEL"]
    if os.environ.get("WAYFARER_CAN_TELEPORT"):
        config.character.can_teleport = _env_bool(os.environ["WAYFARER_CAN_TELEPORT"])
    if os.environ.get("WAYFARER_CLEAR_PATH_DIST"):
        try:
            config.character.clear_path_dist = int(os.environ["WAYFARER_CLEAR_PATH_DIST"])
        except ValueError:
            logger.warning(
                f"Invalid WAYFARER_CLEAR_PATH_DIST '{os.environ['WAYFARER_CLEAR_PATH_DIST']}', "
                f"keeping {config.character.clear_path_dist}"
            )

    return config


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure logging based on configuration.

    Args:
        config: Logging configuration
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {config.level}")
