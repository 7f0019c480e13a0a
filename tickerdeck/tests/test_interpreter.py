from dataclasses import replace

import pytest

from tickerdeck.hotkeys.interpreter import InterpreterConfig, fire_timer, process_key
from tickerdeck.hotkeys.keys import KeyBindings
from tickerdeck.hotkeys.models import (
    CancelTimer,
    ChangeShares,
    DisableTemporary,
    ExecuteBuy,
    ExecuteSell,
    HotkeyState,
    ScheduleTimer,
    SelectTicker,
    TimerDomain,
    check_invariants,
    derive_mode,
    initial_state,
)


def _run(keys, total=12, state=None):
    st = state or initial_state()
    effects = []
    for k in keys:
        t = process_key(k, st, total)
        effects.extend(t.effects)
        st = t.state
    return st, effects


@pytest.mark.parametrize("key", ["b", "s", "c", "enter", "escape", "backspace", "7", "x"])
def test_disabled_state_is_untouched(key):
    s = replace(initial_state(), disabled=True, buy_count=2, number_buffer="4", number_buffer_timer=1)
    t = process_key(key, s, 12)
    assert t.state is s
    assert t.effects == ()
    assert t.timers == ()


def test_buy_key_schedules_flush():
    t = process_key("b", initial_state(), 5)
    assert t.state.buy_count == 1
    assert t.effects == ()
    assert t.timers == (CancelTimer(TimerDomain.BUY), ScheduleTimer(TimerDomain.BUY, 100))


def test_keys_are_case_insensitive():
    t = process_key("B", initial_state(), 5)
    assert t.state.buy_count == 1
    t = process_key("Enter", replace(initial_state(), is_changing_shares=True, share_change_buffer="5"), 5)
    assert t.effects == (ChangeShares(5),)


def test_buy_resets_sell_and_cancels_its_flush():
    s = replace(initial_state(), sell_count=3)
    t = process_key("b", s, 5)
    assert t.state.sell_count == 0
    assert t.state.buy_count == 1
    assert CancelTimer(TimerDomain.SELL) in t.timers


def test_sell_resets_buy():
    s = replace(initial_state(), buy_count=4)
    t = process_key("s", s, 5)
    assert t.state.buy_count == 0
    assert t.state.sell_count == 1
    assert CancelTimer(TimerDomain.BUY) in t.timers
    assert t.timers[-1] == ScheduleTimer(TimerDomain.SELL, 100)


def test_trade_key_clears_number_buffer():
    s = replace(initial_state(), number_buffer="3", number_buffer_timer=1, next_timer_token=2)
    t = process_key("b", s, 5)
    assert t.state.number_buffer == ""
    assert t.state.number_buffer_timer is None
    assert CancelTimer(TimerDomain.NUMBER_BUFFER) in t.timers


def test_trade_keys_inert_in_share_edit_mode():
    s = replace(initial_state(), is_changing_shares=True, share_change_buffer="1")
    for key in ("b", "s"):
        t = process_key(key, s, 5)
        assert t.state is s
        assert t.timers == ()


def test_change_key_enters_share_edit_mode():
    s = replace(initial_state(), buy_count=2, number_buffer="1", number_buffer_timer=3, next_timer_token=4)
    t = process_key("c", s, 5)
    assert t.state.is_changing_shares is True
    assert t.state.share_change_buffer == ""
    assert t.state.buy_count == 0 and t.state.sell_count == 0
    assert t.state.number_buffer == ""
    assert set(t.timers) == {CancelTimer(TimerDomain.BUY), CancelTimer(TimerDomain.NUMBER_BUFFER)}


def test_share_edit_round_trip():
    st, effects = _run(["c", "2", "5", "0", "enter"])
    assert effects == [ChangeShares(250)]
    assert st.is_changing_shares is False
    assert st.share_change_buffer == ""


def test_confirm_zero_share_amount_exits_without_effect():
    st, effects = _run(["c", "0", "enter"])
    assert effects == []
    assert st.is_changing_shares is False


def test_confirm_with_empty_share_buffer_stays_in_mode():
    st, effects = _run(["c", "enter"])
    assert effects == []
    assert st.is_changing_shares is True


def test_cancel_in_share_mode_drops_last_digit():
    st, _ = _run(["c", "2", "5", "backspace"])
    assert st.share_change_buffer == "2"
    assert st.is_changing_shares is True


def test_digits_append_to_share_buffer_even_without_tickers():
    st, effects = _run(["c", "4", "2"], total=0)
    assert st.share_change_buffer == "42"
    assert effects == []


def test_digit_selects_optimistically_and_arms_expiry():
    t = process_key("7", initial_state(), 20)
    assert t.effects == (SelectTicker(7),)
    assert t.state.number_buffer == "7"
    assert t.state.number_buffer_timer == 1
    assert t.timers == (ScheduleTimer(TimerDomain.NUMBER_BUFFER, 1500, 1),)


def test_cascading_selection_12():
    _, effects = _run(["1", "2", "3"], total=12)
    assert effects == [SelectTicker(1), SelectTicker(12), SelectTicker(3)]


def test_cascading_selection_99():
    _, effects = _run(["5", "9"], total=99)
    assert effects == [SelectTicker(5), SelectTicker(59)]


def test_every_new_digit_rearms_with_fresh_token():
    st, _ = _run(["1"], total=20)
    t = process_key("5", st, 20)
    assert t.state.number_buffer == "15"
    assert t.state.number_buffer_timer == 2
    assert t.timers == (
        CancelTimer(TimerDomain.NUMBER_BUFFER),
        ScheduleTimer(TimerDomain.NUMBER_BUFFER, 1500, 2),
    )


def test_invalid_digit_clears_buffer_without_selection():
    st, _ = _run(["3"], total=5)
    t = process_key("0", st, 5)
    assert t.effects == ()
    assert t.state.number_buffer == ""
    assert t.state.number_buffer_timer is None
    assert t.timers == (CancelTimer(TimerDomain.NUMBER_BUFFER),)


def test_digit_resets_trade_counters():
    s = replace(initial_state(), buy_count=3)
    t = process_key("2", s, 5)
    assert t.state.buy_count == 0
    assert CancelTimer(TimerDomain.BUY) in t.timers
    assert t.effects == (SelectTicker(2),)


def test_digit_is_noop_without_tickers():
    s = replace(initial_state(), buy_count=1)
    t = process_key("3", s, 0)
    assert t.state is s
    assert t.effects == ()


def test_confirm_reselects_and_clears_buffer():
    st, _ = _run(["1", "1"], total=12)
    t = process_key("enter", st, 12)
    assert t.effects == (SelectTicker(11),)
    assert t.state.number_buffer == ""
    assert t.timers == (CancelTimer(TimerDomain.NUMBER_BUFFER),)


def test_confirm_out_of_range_buffer_clears_silently():
    # ticker count shrank after the digits were accepted
    st, _ = _run(["9"], total=12)
    t = process_key("enter", st, 5)
    assert t.effects == ()
    assert t.state.number_buffer == ""


def test_confirm_when_idle_is_noop():
    s = initial_state()
    assert process_key("enter", s, 5).state is s


def test_cancel_in_ticker_mode_trims_and_rearms():
    st, _ = _run(["1", "5"], total=20)
    t = process_key("backspace", st, 20)
    assert t.state.number_buffer == "1"
    assert t.effects == ()
    assert t.timers[0] == CancelTimer(TimerDomain.NUMBER_BUFFER)
    assert t.timers[1] == ScheduleTimer(TimerDomain.NUMBER_BUFFER, 1500, t.state.number_buffer_timer)


def test_cancel_last_digit_leaves_buffer_cleared():
    st, _ = _run(["4"], total=20)
    t = process_key("escape", st, 20)
    assert t.state.number_buffer == ""
    assert t.state.number_buffer_timer is None
    assert t.timers == (CancelTimer(TimerDomain.NUMBER_BUFFER),)
    assert t.effects == ()


def test_cancel_when_idle_disables_temporarily():
    t = process_key("escape", initial_state(), 5)
    assert t.effects == (DisableTemporary(),)
    assert t.state.disabled is True
    assert ScheduleTimer(TimerDomain.DISABLE, 500) in t.timers


def test_unknown_key_is_noop():
    s = replace(initial_state(), buy_count=1)
    assert process_key("F5", s, 5).state is s
    assert process_key("", s, 5).state is s


def test_custom_bindings_and_timings():
    cfg = InterpreterConfig(
        bindings=KeyBindings(buy=("k",), sell=("l",)),
        trade_debounce_ms=40,
    )
    t = process_key("k", initial_state(), 5, cfg)
    assert t.state.buy_count == 1
    assert t.timers[-1] == ScheduleTimer(TimerDomain.BUY, 40)
    assert process_key("b", initial_state(), 5, cfg).state.buy_count == 0


# --------------------------- Timer fires ---------------------------


def test_buy_flush_emits_accumulated_quantity():
    s = replace(initial_state(), buy_count=5)
    t = fire_timer(TimerDomain.BUY, s)
    assert t.effects == (ExecuteBuy(5),)
    assert t.state.buy_count == 0


def test_sell_flush_emits_accumulated_quantity():
    t = fire_timer(TimerDomain.SELL, replace(initial_state(), sell_count=2))
    assert t.effects == (ExecuteSell(2),)


def test_flush_without_count_does_nothing():
    s = initial_state()
    assert fire_timer(TimerDomain.BUY, s).effects == ()
    assert fire_timer(TimerDomain.SELL, s).state is s


def test_buffer_expiry_clears_without_effect():
    st, _ = _run(["7"], total=20)
    t = fire_timer(TimerDomain.NUMBER_BUFFER, st, st.number_buffer_timer)
    assert t.effects == ()
    assert t.state.number_buffer == ""
    assert t.state.number_buffer_timer is None


def test_stale_buffer_expiry_is_ignored():
    st, _ = _run(["1", "5"], total=20)
    t = fire_timer(TimerDomain.NUMBER_BUFFER, st, 1)
    assert t.state is st


def test_disable_window_release_runs_while_disabled():
    s = replace(initial_state(), disabled=True)
    assert fire_timer(TimerDomain.DISABLE, s).state.disabled is False


# --------------------------- Invariants ---------------------------


def test_reachable_states_keep_invariants():
    keys = ["1", "2", "b", "b", "s", "3", "backspace", "c", "4", "backspace", "9",
            "enter", "1", "1", "enter", "escape", "7", "escape", "escape"]
    st = initial_state()
    for k in keys:
        st = process_key(k, st, 12).state
        assert check_invariants(st) == [], k
        if st.disabled:
            st = fire_timer(TimerDomain.DISABLE, st).state


def test_check_invariants_flags_inconsistent_state():
    bad = HotkeyState(buy_count=1, sell_count=1, number_buffer="", number_buffer_timer=3)
    violations = check_invariants(bad)
    assert "buy_count and sell_count are mutually exclusive" in violations
    assert "number_buffer_timer set without a number_buffer" in violations


def test_derive_mode():
    assert derive_mode(initial_state()) == "idle"
    assert derive_mode(HotkeyState(number_buffer="3", number_buffer_timer=1)) == "ticker"
    assert derive_mode(HotkeyState(is_changing_shares=True)) == "shares"
    assert derive_mode(HotkeyState(disabled=True, is_changing_shares=True)) == "disabled"
