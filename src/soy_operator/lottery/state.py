"""File-backed storage for the secret between commit and draw."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from soy_operator.lottery.models import PendingReveal, RevealStage
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)


class PendingRevealStore:
    """Keeps at most one PendingReveal in a small JSON file.

    The file holds an unrevealed secret, so it is written owner-readable only.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[PendingReveal]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return PendingReveal.from_dict(data)
        except (json.JSONDecodeError, KeyError, ValueError) as exc:
            logger.error("Ignoring unreadable pending reveal file %s: %s", self._path, exc)
            return None

    def load_for(self, lottery_id: int) -> Optional[PendingReveal]:
        pending = self.load()
        if pending is None:
            return None
        if pending.lottery_id != lottery_id:
            logger.warning(
                "Pending reveal in %s is for lottery %s, current lottery is %s",
                self._path,
                pending.lottery_id,
                lottery_id,
            )
            return None
        return pending

    def save(self, pending: PendingReveal) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(pending.to_dict()), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self._path)
        logger.info(
            "Saved pending reveal for lottery %s (commit block %s, stage %s)",
            pending.lottery_id,
            pending.commit_block,
            pending.stage.value,
        )

    def mark_revealed(self, pending: PendingReveal) -> PendingReveal:
        pending.stage = RevealStage.REVEALED
        self.save(pending)
        return pending

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
            logger.info("Cleared pending reveal file %s", self._path)
