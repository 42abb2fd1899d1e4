"""Configuration system for spinwheel.

Pydantic models for every section of the YAML config, plus the tolerant
loader. A broken prize or feature section only disables that piece; the
loader raises ``ConfigError`` for the categories that must stop the process.
"""

from __future__ import annotations

import logging
import os
import re
from enum import IntEnum
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_COMMAND_PREFIX = "&"


class ExitCode(IntEnum):
    CONFIG_FILE_NOT_FOUND = 1
    CONFIG_FILE_MALFORMED = 2
    CONFIG_NO_FEATURES = 3
    BOT_TOKEN_NOT_PROVIDED = 4


class ConfigError(Exception):
    """Fatal configuration problem. Carries the process exit code."""

    def __init__(self, exit_code: ExitCode, message: str) -> None:
        super().__init__(message)
        self.exit_code = exit_code


# ═══════════════════════════════════════════════════════════════
#  Spin
# ═══════════════════════════════════════════════════════════════

class RoleRewardConfig(BaseModel):
    """Fields shared by prizes and the consolation prize."""

    description: str = Field(min_length=1)
    message: str = Field(min_length=1)
    role_id: int
    role_time_seconds: float = Field(default=0, ge=0, description="0 keeps the role forever")
    role_time_variation_seconds: float = Field(default=0, ge=0)
    is_silencing_role: bool = False
    move_user_back_after_silence: bool = False
    image_resource: str | None = None


class PrizeConfig(RoleRewardConfig):
    name: str = Field(min_length=1)
    type: Literal["role"] = "role"
    odds: int = Field(gt=0, description="Win chance is 1 in odds")

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class ConsolationConfig(RoleRewardConfig):
    enabled: bool = True


class SpinConfig(BaseModel):
    enabled: bool = True
    prizes: list[PrizeConfig] = Field(default_factory=list)
    consolation: ConsolationConfig | None = None
    penalty_reset_seconds: float | None = Field(default=None, gt=0)
    spins_before_penalty: int | None = Field(default=None, ge=0)

    @property
    def consolation_enabled(self) -> bool:
        return self.consolation is not None and self.consolation.enabled

    @property
    def penalty_enabled(self) -> bool:
        return self.penalty_reset_seconds is not None and self.spins_before_penalty is not None


# ═══════════════════════════════════════════════════════════════
#  Big Red Button
# ═══════════════════════════════════════════════════════════════

class ButtonConfig(BaseModel):
    enabled: bool = True
    role_id: int
    active_time_seconds: float = Field(gt=0)
    role_time_seconds: float = Field(default=0, ge=0, description="0 keeps the role forever")
    message: str = Field(min_length=1)
    is_silencing_role: bool = False
    move_user_back_after_silence: bool = False
    image_resource: str | None = "Resources/big-red-button.jpg"
    pressed_image_resource: str | None = "Resources/pressed.png"


# ═══════════════════════════════════════════════════════════════
#  Service
# ═══════════════════════════════════════════════════════════════

class MetricsConfig(BaseModel):
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 28290


class SpinWheelConfig(BaseModel):
    """Full bot config."""

    bot_token: str = Field(min_length=1)
    command_prefix: str = Field(default=DEFAULT_COMMAND_PREFIX, min_length=1)
    send_dms: bool = True
    spin: SpinConfig | None = None
    big_red_button: ButtonConfig | None = None
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @property
    def spin_enabled(self) -> bool:
        return self.spin is not None and self.spin.enabled and bool(self.spin.prizes)

    @property
    def button_enabled(self) -> bool:
        return self.big_red_button is not None and self.big_red_button.enabled


# ═══════════════════════════════════════════════════════════════
#  Config Loading
# ═══════════════════════════════════════════════════════════════

def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(obj, str):
        return re.sub(
            r"\$\{([^}:]+)(?::-(.*?))?\}",
            lambda m: os.environ.get(m.group(1), m.group(2) or ""),
            obj,
        )
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _parse_prizes(raw_prizes: Any, logger: logging.Logger) -> list[dict]:
    from .catalog import CONSOLATION_PRIZE_NAME

    if raw_prizes is None:
        return []
    if not isinstance(raw_prizes, list):
        logger.warning("spin.prizes must be a list; no prizes loaded")
        return []

    accepted: list[dict] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_prizes):
        try:
            prize = PrizeConfig.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Could not parse prize #%d: %s", index + 1, exc)
            continue
        if prize.name == CONSOLATION_PRIZE_NAME:
            logger.warning("Prize #%d uses the reserved name %r; skipped", index + 1, prize.name)
            continue
        if prize.name in seen:
            logger.warning("Duplicate prize name %r; skipped", prize.name)
            continue
        seen.add(prize.name)
        accepted.append(prize.model_dump())
        logger.debug("Successfully parsed prize %s", prize.name)
    return accepted


def _parse_spin(raw: Any, logger: logging.Logger) -> dict | None:
    if raw is None:
        logger.warning("No configuration for the spin function. It will not be enabled")
        return None
    if not isinstance(raw, dict):
        logger.warning("Configuration for the spin function is malformed. It will not be enabled.")
        return None

    section = dict(raw)

    consolation = section.get("consolation")
    if consolation is None:
        logger.warning("No consolation configuration. It will not be enabled")
    else:
        try:
            section["consolation"] = ConsolationConfig.model_validate(consolation).model_dump()
        except ValidationError as exc:
            logger.warning("Consolation configuration is malformed. It will not be enabled: %s", exc)
            section["consolation"] = None

    for key in ("penalty_reset_seconds", "spins_before_penalty"):
        try:
            SpinConfig.model_validate({key: section.get(key)})
        except ValidationError:
            logger.warning("%s is invalid; ignoring it", key)
            section[key] = None
        if section.get(key) is None:
            logger.info("Consecutive spin penalty will not be enabled.")

    section["prizes"] = _parse_prizes(section.get("prizes"), logger)
    if not section["prizes"]:
        logger.warning("No prizes configured. Spin function will not be enabled.")
        section["enabled"] = False

    try:
        return SpinConfig.model_validate(section).model_dump()
    except ValidationError as exc:
        logger.warning("Configuration for the spin function is malformed. It will not be enabled: %s", exc)
        return None


def _parse_button(raw: Any, logger: logging.Logger) -> dict | None:
    if raw is None:
        logger.warning("No configuration for the button. It will not be enabled")
        return None
    try:
        return ButtonConfig.model_validate(raw).model_dump()
    except ValidationError as exc:
        logger.warning("Configuration for the big red button is malformed. It will not be enabled: %s", exc)
        return None


def parse_config(raw: dict, logger: logging.Logger | None = None) -> SpinWheelConfig:
    """Validate an already-loaded config mapping, dropping broken sections."""
    logger = logger or logging.getLogger("spinwheel.config")

    token = raw.get("bot_token")
    if not token or not isinstance(token, str):
        raise ConfigError(ExitCode.BOT_TOKEN_NOT_PROVIDED, "Bot token not found in config")

    prefix = raw.get("command_prefix")
    if prefix is None:
        logger.warning("Command prefix not found in config! Defaulting to %s", DEFAULT_COMMAND_PREFIX)
        prefix = DEFAULT_COMMAND_PREFIX
    elif prefix == "":
        logger.warning("Command prefix entry has no value! Defaulting to %s", DEFAULT_COMMAND_PREFIX)
        prefix = DEFAULT_COMMAND_PREFIX

    try:
        cfg = SpinWheelConfig(
            bot_token=token,
            command_prefix=str(prefix),
            send_dms=raw.get("send_dms", True),
            spin=_parse_spin(raw.get("spin"), logger),
            big_red_button=_parse_button(raw.get("big_red_button"), logger),
            metrics=raw.get("metrics") or {},
        )
    except ValidationError as exc:
        raise ConfigError(ExitCode.CONFIG_FILE_MALFORMED, str(exc)) from exc

    if not cfg.spin_enabled and not cfg.button_enabled:
        raise ConfigError(ExitCode.CONFIG_NO_FEATURES, "No features enabled")

    logger.info(
        "Parsing complete! spin=%s button=%s prizes=%d",
        cfg.spin_enabled, cfg.button_enabled, len(cfg.spin.prizes) if cfg.spin else 0,
    )
    return cfg


def load_config(config_path: str, logger: logging.Logger | None = None) -> SpinWheelConfig:
    """Load and validate YAML config file into SpinWheelConfig."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(ExitCode.CONFIG_FILE_NOT_FOUND, f"Config file not found: {config_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(ExitCode.CONFIG_FILE_MALFORMED, f"Could not read {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(
            ExitCode.CONFIG_FILE_MALFORMED,
            "Config file must contain a YAML mapping at the top level.",
        )

    raw = _expand_env_vars(raw)
    return parse_config(raw, logger)
