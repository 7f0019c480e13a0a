import pytest

from tickerdeck.hotkeys.session import HotkeyEffects


@pytest.fixture(autouse=True)
def _test_env(monkeypatch, tmp_path):
    """
    Ensure tests never write to the real trade history.
    """
    monkeypatch.setenv("DB_PATH", str(tmp_path / "tickerdeck-test.db"))
    monkeypatch.setenv("OPERATOR_ID", "tester")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    for name in ("BUY_KEYS", "SELL_KEYS", "CHANGE_KEYS", "CONFIRM_KEYS", "CANCEL_KEYS"):
        monkeypatch.delenv(name, raising=False)


class EffectRecorder:
    """Collects effect callbacks as tuples, in call order."""

    def __init__(self):
        self.calls = []

    def effects(self) -> HotkeyEffects:
        return HotkeyEffects(
            on_buy=lambda q: self.calls.append(("buy", q)),
            on_sell=lambda q: self.calls.append(("sell", q)),
            on_ticker_change=lambda i: self.calls.append(("ticker", i)),
            on_share_change=lambda a: self.calls.append(("shares", a)),
            on_disable_temporary=lambda: self.calls.append(("disable",)),
        )

    def of(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def recorder():
    return EffectRecorder()
