# tests/conftest.py
from __future__ import annotations

from typing import List

import pytest

from b2b_scheduler.config import SessionSettings
from b2b_scheduler.domain.models import AFTERNOON, MORNING, Buyer, Seller
from b2b_scheduler.domain.timegrid import build_all_sessions


class FixedOrder:
    """shuffle しない（与えた順のまま）。割当結果を固定したいテスト用"""

    def shuffle(self, x: list) -> None:
        return None


class ReversedOrder:
    def shuffle(self, x: list) -> None:
        x.reverse()


@pytest.fixture
def fixed_order() -> FixedOrder:
    return FixedOrder()


@pytest.fixture
def reversed_order() -> ReversedOrder:
    return ReversedOrder()


@pytest.fixture
def two_session_settings() -> SessionSettings:
    return SessionSettings(count=2, duration_minutes=30, break_minutes=5,
                           morning_start="09:30", afternoon_start="13:30")


@pytest.fixture
def sessions(two_session_settings):
    return build_all_sessions(two_session_settings)


@pytest.fixture
def buyers() -> List[Buyer]:
    return [
        Buyer(bid="b1", name="Alpha", country="JP", block=MORNING),
        Buyer(bid="b2", name="Bravo", country="JP", block=MORNING),
        Buyer(bid="b3", name="Charlie", country="TW", block=AFTERNOON),
    ]


@pytest.fixture
def sellers() -> List[Seller]:
    return [Seller(sid=f"S{i}", name=f"Seller {i}") for i in range(1, 8)]
