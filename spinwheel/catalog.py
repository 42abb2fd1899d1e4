"""Prize catalog — the immutable prize list and the consolation prize.

Built once from ``SpinConfig``. Iteration order is the configured order,
which the draw engine relies on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from .config import ConsolationConfig, PrizeConfig, SpinConfig

CONSOLATION_PRIZE_NAME = "Consolation Prize"


class PrizeType(Enum):
    ROLE = "role"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Prize:
    name: str
    description: str
    message: str
    type: PrizeType = PrizeType.ROLE
    role_id: int = 0
    role_time: float = 0.0
    role_time_variation: float = 0.0
    is_silencing: bool = False
    move_back_after_silence: bool = False
    image_resource: str | None = None
    odds: int = 1

    @property
    def is_consolation(self) -> bool:
        return self.name == CONSOLATION_PRIZE_NAME

    @property
    def is_timed(self) -> bool:
        return self.role_time > 0

    @classmethod
    def from_config(cls, cfg: PrizeConfig) -> Prize:
        try:
            prize_type = PrizeType(cfg.type)
        except ValueError:
            prize_type = PrizeType.UNKNOWN
        return cls(
            name=cfg.name,
            description=cfg.description,
            message=cfg.message,
            type=prize_type,
            role_id=cfg.role_id,
            role_time=cfg.role_time_seconds,
            role_time_variation=cfg.role_time_variation_seconds,
            is_silencing=cfg.is_silencing_role,
            move_back_after_silence=cfg.move_user_back_after_silence,
            image_resource=cfg.image_resource,
            odds=cfg.odds,
        )

    @classmethod
    def consolation_from_config(cls, cfg: ConsolationConfig) -> Prize:
        return cls(
            name=CONSOLATION_PRIZE_NAME,
            description=cfg.description,
            message=cfg.message,
            role_id=cfg.role_id,
            role_time=cfg.role_time_seconds,
            role_time_variation=cfg.role_time_variation_seconds,
            is_silencing=cfg.is_silencing_role,
            move_back_after_silence=cfg.move_user_back_after_silence,
            image_resource=cfg.image_resource,
        )


class PrizeCatalog:
    """Ordered, read-only prize list plus the optional consolation prize."""

    def __init__(
        self,
        prizes: list[Prize],
        consolation: Prize | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._prizes: tuple[Prize, ...] = tuple(prizes)
        self._consolation = consolation
        self._logger = logger or logging.getLogger("spinwheel.catalog")

    @classmethod
    def from_config(cls, cfg: SpinConfig | None, logger: logging.Logger | None = None) -> PrizeCatalog:
        if cfg is None:
            return cls([], None, logger)
        prizes = [Prize.from_config(p) for p in cfg.prizes]
        consolation = (
            Prize.consolation_from_config(cfg.consolation)
            if cfg.consolation_enabled
            else None
        )
        return cls(prizes, consolation, logger)

    @property
    def prizes(self) -> tuple[Prize, ...]:
        return self._prizes

    @property
    def consolation(self) -> Prize | None:
        return self._consolation

    @property
    def names(self) -> list[str]:
        """Every prize name the ledger must know about, consolation included."""
        names = [p.name for p in self._prizes]
        if self._consolation is not None:
            names.append(self._consolation.name)
        return names

    def __iter__(self) -> Iterator[Prize]:
        return iter(self._prizes)

    def __len__(self) -> int:
        return len(self._prizes)

    def lookup(self, name: str) -> Prize | None:
        """Find a prize by exact name. Consolation is checked first."""
        self._logger.debug("Checking for prize %s", name)
        if self._consolation is not None and name == self._consolation.name:
            return self._consolation
        for prize in self._prizes:
            if prize.name == name:
                return prize
        self._logger.debug("No prize %s found", name)
        return None

    def describe(self) -> str:
        """Render the public prize list."""
        lines = ["The current prizes are:"]
        for prize in self._prizes:
            lines.append(f"> {prize.name} (1 in {prize.odds} chance): {prize.description}!")
        if self._consolation is not None:
            lines.append(f"> {self._consolation.name}: {self._consolation.description}!")
        return "\n".join(lines)
