# tests/test_greedy.py
import random

import pytest

from b2b_scheduler.domain.models import AFTERNOON, MORNING, UNSET, Buyer, PreferenceBook
from b2b_scheduler.domain.schedule import EMPTY
from b2b_scheduler.optimization.greedy import auto_schedule
from b2b_scheduler.validation.conflicts import conflicting_sessions, detect_conflicts


def _prefs(mapping):
    return PreferenceBook.from_mapping(mapping)


def _assert_constraints(result, buyers, sessions):
    sch = result.schedule
    block_of = {s.sid: s.block for s in sessions}
    for s in sessions:
        in_session = [sch.get(b.bid, s.sid) for b in buyers if sch.get(b.bid, s.sid) is not EMPTY]
        assert len(in_session) == len(set(in_session)), f"seller twice in {s.sid}"
    for b in buyers:
        assigned = sch.seller_ids_for_buyer(b.bid)
        assert len(assigned) == len(set(assigned)), f"buyer {b.bid} meets a seller twice"
        for sid, v in sch.row(b.bid).items():
            if v is not EMPTY:
                assert block_of[sid] == b.block


def test_occupied_seller_is_replaced_in_same_session(fixed_order, sessions):
    other = Buyer(bid="b0", name="Other", country="JP", block=MORNING)
    target = Buyer(bid="b1", name="Target", country="JP", block=MORNING)
    prefs = _prefs({"b0": ["S1"], "b1": ["S1", "S2"]})

    result = auto_schedule([other, target], sessions, prefs, rng=fixed_order)

    sch = result.schedule
    assert sch.get("b0", "M_s1") == "S1"
    # S1 は M_s1 で埋まっているので S2、M_s2 では S1 が空いている
    assert sch.get("b1", "M_s1") == "S2"
    assert sch.get("b1", "M_s2") == "S1"


def test_reversed_order_places_target_first(reversed_order, sessions):
    other = Buyer(bid="b0", name="Other", country="JP", block=MORNING)
    target = Buyer(bid="b1", name="Target", country="JP", block=MORNING)
    prefs = _prefs({"b0": ["S1"], "b1": ["S1", "S2"]})

    sch = auto_schedule([other, target], sessions, prefs, rng=reversed_order).schedule

    # b1 が先に M_s2 -> M_s1 の順で S2, S1 を取り、b0 は M_s2 に入る
    assert sch.get("b1", "M_s2") == "S2"
    assert sch.get("b1", "M_s1") == "S1"
    assert sch.get("b0", "M_s2") == "S1"
    assert sch.get("b0", "M_s1") is EMPTY


def test_target_never_left_empty_under_any_shuffle(sessions):
    other = Buyer(bid="b0", name="Other", country="JP", block=MORNING)
    target = Buyer(bid="b1", name="Target", country="JP", block=MORNING)
    prefs = _prefs({"b0": ["S1"], "b1": ["S1", "S2"]})
    buyers = [other, target]
    for seed in range(30):
        sch = auto_schedule(buyers, sessions, prefs, rng=random.Random(seed)).schedule
        assert sch.seller_ids_for_buyer("b0") == ["S1"]
        # バックトラックしないので2枠とも埋まるとは限らないが、両方空にはならない
        placed = sch.seller_ids_for_buyer("b1")
        assert placed
        assert set(placed) <= {"S1", "S2"}
        assert conflicting_sessions(detect_conflicts(sch, buyers, sessions)) == {}


def test_backup_fills_remaining_slots(fixed_order, sessions):
    b = Buyer(bid="b1", name="A", country="JP", block=MORNING)
    prefs = _prefs({"b1": ["S1", "", "", "", "", "", "S2", "S3"]})
    result = auto_schedule([b], sessions, prefs, rng=fixed_order)
    assert result.schedule.get("b1", "M_s1") == "S1"
    assert result.schedule.get("b1", "M_s2") == "S2"
    assert result.placed_count == 2


def test_primary_exhausted_before_backup(fixed_order, sessions):
    b = Buyer(bid="b1", name="A", country="JP", block=MORNING)
    prefs = _prefs({"b1": ["S1", "S2", "", "", "", "", "S3", "S4"]})
    sch = auto_schedule([b], sessions, prefs, rng=fixed_order).schedule
    assert sorted(sch.seller_ids_for_buyer("b1")) == ["S1", "S2"]


def test_only_own_block_is_filled(fixed_order, sessions):
    b = Buyer(bid="b3", name="C", country="TW", block=AFTERNOON)
    prefs = _prefs({"b3": ["S1", "S2", "S3"]})
    sch = auto_schedule([b], sessions, prefs, rng=fixed_order).schedule
    assert sch.get("b3", "M_s1") is EMPTY
    assert sch.get("b3", "M_s2") is EMPTY
    assert sch.get("b3", "A_s1") == "S1"
    assert sch.get("b3", "A_s2") == "S2"


@pytest.mark.parametrize("seed", range(25))
def test_constraints_hold_under_heavy_overlap(seed, sessions):
    # 全員が同じ少数のセラーを希望する
    buyers = [Buyer(bid=f"b{i}", name=f"B{i}", country="JP", block=MORNING if i % 3 else AFTERNOON)
              for i in range(12)]
    prefs = _prefs({b.bid: ["S1", "S2", "S3", UNSET, "S1", "S4", "S2", "S5"] for b in buyers})
    result = auto_schedule(buyers, sessions, prefs, rng=random.Random(seed))
    _assert_constraints(result, buyers, sessions)
    assert conflicting_sessions(detect_conflicts(result.schedule, buyers, sessions)) == {}


def test_buyer_without_preferences_is_skipped_with_warning(fixed_order, buyers, sessions):
    prefs = _prefs({"b1": ["S1"]})
    result = auto_schedule(buyers, sessions, prefs, rng=fixed_order)
    warned = {w.buyer_id for w in result.warnings}
    assert warned == {"b2", "b3"}
    assert result.schedule.seller_ids_for_buyer("b2") == []
    assert result.schedule.get("b1", "M_s1") == "S1"


def test_buyer_with_no_block_sessions_is_skipped(fixed_order, buyers, sessions):
    morning_only = [s for s in sessions if s.block == MORNING]
    prefs = _prefs({"b1": ["S1"], "b2": ["S2"], "b3": ["S3"]})
    result = auto_schedule(buyers, morning_only, prefs, rng=fixed_order)
    assert [w.buyer_id for w in result.warnings] == ["b3"]
    assert result.schedule.seller_ids_for_buyer("b3") == []


def test_empty_buyer_list_is_noop(sessions):
    result = auto_schedule([], sessions, _prefs({}))
    assert len(result.schedule) == 0
    assert result.warnings == []


def test_inputs_not_mutated(buyers, sessions):
    prefs = _prefs({"b1": ["S1", "S2"], "b2": ["S2", "S1"], "b3": ["S3"]})
    buyers_before = list(buyers)
    sessions_before = list(sessions)
    before = prefs.as_dict()
    auto_schedule(buyers, sessions, prefs, rng=random.Random(1))
    assert buyers == buyers_before
    assert sessions == sessions_before
    assert prefs.as_dict() == before


def test_unknown_sellers_ignored_when_roster_given(fixed_order, sessions):
    b = Buyer(bid="b1", name="A", country="JP", block=MORNING)
    prefs = _prefs({"b1": ["GONE", "S1"]})
    sch = auto_schedule([b], sessions, prefs, rng=fixed_order, known_seller_ids=["S1"]).schedule
    assert sch.seller_ids_for_buyer("b1") == ["S1"]


def test_same_seed_same_result(buyers, sessions):
    prefs = _prefs({"b1": ["S1", "S2", "S3"], "b2": ["S1", "S2", "S3"], "b3": ["S1", "S4"]})
    a = auto_schedule(buyers, sessions, prefs, rng=random.Random(7)).schedule
    b = auto_schedule(buyers, sessions, prefs, rng=random.Random(7)).schedule
    assert a == b
