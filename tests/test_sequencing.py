from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import UUID

from services.sequencing_service import rank_rolls, roll_sort_key


def roll(user, total, die1, second):
    return SimpleNamespace(
        user_id=user,
        total=total,
        die1=die1,
        die2=total - die1,
        rolled_at=datetime(2024, 3, 1, 12, 0, second, tzinfo=timezone.utc),
    )


def order(rolls):
    return [r.user_id for r in rank_rolls(rolls)]


def test_earlier_roll_wins_full_tie():
    a = roll("A", 15, 8, second=30)
    b = roll("B", 15, 8, second=10)
    c = roll("C", 12, 6, second=0)
    assert order([a, b, c]) == ["B", "A", "C"]


def test_higher_total_ranks_first():
    rolls = [roll("low", 5, 2, 0), roll("high", 19, 9, 5), roll("mid", 11, 4, 2)]
    assert order(rolls) == ["high", "mid", "low"]


def test_die1_breaks_equal_totals():
    a = roll("A", 14, 5, second=0)
    b = roll("B", 14, 9, second=20)
    assert order([a, b]) == ["B", "A"]


def test_order_is_independent_of_input_order():
    rolls = [
        roll("A", 10, 5, 3),
        roll("B", 10, 5, 1),
        roll("C", 20, 10, 9),
        roll("D", 10, 7, 8),
    ]
    expected = ["C", "D", "B", "A"]
    assert order(rolls) == expected
    assert order(list(reversed(rolls))) == expected


def test_identical_rolls_fall_back_to_user_id():
    first = UUID("00000000-0000-0000-0000-000000000001")
    second = UUID("00000000-0000-0000-0000-000000000002")
    x = roll(second, 12, 6, 0)
    y = roll(first, 12, 6, 0)
    assert order([x, y]) == [first, second]


def test_naive_timestamps_compare_as_utc():
    aware = roll("aware", 12, 6, second=5)
    naive = roll("naive", 12, 6, second=1)
    naive.rolled_at = naive.rolled_at.replace(tzinfo=None)
    assert order([aware, naive]) == ["naive", "aware"]
    assert roll_sort_key(naive)[2].tzinfo is not None
