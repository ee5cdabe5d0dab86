"""Core data models for the lottery operator."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from soy_operator.lottery.errors import ConfigError


class LotteryStatus(IntEnum):
    """Lottery states as defined in the SoyLottery contract."""

    PENDING = 0
    OPEN = 1
    CLOSE = 2
    CLAIMABLE = 3


@dataclass
class LotteryRound:
    """Snapshot of the on-chain `Lottery` struct returned by `viewLottery`."""

    lottery_id: int
    status: LotteryStatus
    start_time: int
    end_time: int
    price_ticket: int = 0
    discount_divisor: int = 0
    rewards_breakdown: Tuple[int, ...] = ()
    treasury_fee: int = 0
    amount_collected: int = 0
    final_number: int = 0

    def is_expired(self, now: int) -> bool:
        return self.end_time < now


@dataclass(frozen=True)
class LotteryConfig:
    """Static parameters passed to `startLottery` for every new round."""

    price_ticket_in_soy: int
    discount_divisor: int
    rewards_breakdown: Tuple[int, ...]
    treasury_fee: int
    align: int
    auto_injection: bool
    min_lead_seconds: int = 3600

    MAX_TREASURY_FEE = 3000

    def __post_init__(self) -> None:
        if self.align <= 0:
            raise ConfigError(f"lottery.align must be positive, got {self.align}")
        if self.min_lead_seconds < 0:
            raise ConfigError(f"lottery.min_lead_seconds must not be negative, got {self.min_lead_seconds}")
        if len(self.rewards_breakdown) != 6:
            raise ConfigError(f"lottery.rewards_breakdown needs 6 entries, got {len(self.rewards_breakdown)}")
        if sum(self.rewards_breakdown) != 10000:
            raise ConfigError(f"lottery.rewards_breakdown must sum to 10000, got {sum(self.rewards_breakdown)}")
        if not 0 <= self.treasury_fee <= self.MAX_TREASURY_FEE:
            raise ConfigError(f"lottery.treasury_fee out of range: {self.treasury_fee}")
        if self.price_ticket_in_soy <= 0:
            raise ConfigError("lottery.price_ticket_in_soy must be positive")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "LotteryConfig":
        """Build from the `lottery` section; values may be strings from the environment."""
        section = config.get("lottery", {})
        try:
            return cls(
                price_ticket_in_soy=int(section["price_ticket_in_soy"]),
                discount_divisor=int(section["discount_divisor"]),
                rewards_breakdown=_parse_int_list(section["rewards_breakdown"]),
                treasury_fee=int(section["treasury_fee"]),
                align=int(section["align"]),
                auto_injection=_parse_bool(section["auto_injection"]),
                min_lead_seconds=int(section.get("min_lead_seconds", 3600)),
            )
        except KeyError as exc:
            raise ConfigError(f"Missing lottery setting {exc}") from exc
        except ValueError as exc:
            raise ConfigError(f"Invalid lottery setting: {exc}") from exc


def _parse_int_list(value: Any) -> Tuple[int, ...]:
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("["):
            value = json.loads(value)
        else:
            value = [part for part in value.split(",") if part.strip()]
    return tuple(int(item) for item in value)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


class RevealStage(str, Enum):
    COMMITTED = "committed"
    REVEALED = "revealed"


@dataclass
class PendingReveal:
    """Secret committed for a closed round and not yet fully consumed."""

    lottery_id: int
    commit_block: int
    secret: bytes
    stage: RevealStage = RevealStage.COMMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lotteryId": self.lottery_id,
            "commitBlock": self.commit_block,
            "secret": "0x" + self.secret.hex(),
            "stage": self.stage.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingReveal":
        secret = str(data["secret"])
        if secret.startswith("0x"):
            secret = secret[2:]
        return cls(
            lottery_id=int(data["lotteryId"]),
            commit_block=int(data["commitBlock"]),
            secret=bytes.fromhex(secret),
            stage=RevealStage(data.get("stage", RevealStage.COMMITTED.value)),
        )


@dataclass
class TransactionReceipt:
    """Normalized subset of a mined transaction receipt."""

    tx_hash: str
    block_number: int
    gas_used: int
    status: int

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class Outcome(str, Enum):
    IDLE = "idle"
    COMPLETED = "completed"
    NOTICE = "notice"
    FAILED = "failed"


@dataclass
class OperationResult:
    """What one operator step did, and what the operator should be told."""

    action: str
    outcome: Outcome
    message: str = ""
    lottery_id: Optional[int] = None
    round_status: Optional[LotteryStatus] = None
    tx_hashes: List[str] = field(default_factory=list)
    pending: Optional[PendingReveal] = None
    alerts: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    @property
    def halts_cycle(self) -> bool:
        return self.outcome in (Outcome.FAILED, Outcome.NOTICE)
