import json
import os
import stat

from soy_operator.lottery.models import PendingReveal, RevealStage
from soy_operator.lottery.state import PendingRevealStore

SECRET = b"\x01" * 32


def test_missing_file_means_nothing_pending(tmp_path):
    store = PendingRevealStore(tmp_path / "state.json")

    assert store.load() is None
    store.clear()


def test_save_and_load(tmp_path):
    store = PendingRevealStore(tmp_path / "nested" / "state.json")
    pending = PendingReveal(lottery_id=3, commit_block=1234, secret=SECRET)

    store.save(pending)

    assert store.load() == pending
    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data == {"lotteryId": 3, "commitBlock": 1234, "secret": "0x" + "01" * 32, "stage": "committed"}
    if os.name == "posix":
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600


def test_mark_revealed_persists_stage(tmp_path):
    store = PendingRevealStore(tmp_path / "state.json")
    pending = PendingReveal(lottery_id=3, commit_block=1234, secret=SECRET)
    store.save(pending)

    store.mark_revealed(pending)

    assert store.load().stage is RevealStage.REVEALED


def test_load_for_ignores_other_lottery(tmp_path):
    store = PendingRevealStore(tmp_path / "state.json")
    store.save(PendingReveal(lottery_id=3, commit_block=1, secret=SECRET))

    assert store.load_for(4) is None
    assert store.load_for(3).lottery_id == 3


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    assert PendingRevealStore(path).load() is None


def test_clear_removes_file(tmp_path):
    store = PendingRevealStore(tmp_path / "state.json")
    store.save(PendingReveal(lottery_id=3, commit_block=1, secret=SECRET))

    store.clear()

    assert not store.path.exists()
