"""Tests for the behavioral rules and streak counting."""

from datetime import date, timedelta

from recovery_engine.analysis.behavior import (
    BehavioralInput,
    is_balanced_training,
    is_recovery_compliant,
    is_sleep_target_met,
    max_consecutive_training_days,
    run_behavior_engine,
    run_streak_engine,
)
from recovery_engine.analysis.types import BehaviorRow

AS_OF = date(2024, 3, 10)


def row(offset, recovery=True, sleep=True, balance=True):
    return BehaviorRow(
        date=(AS_OF - timedelta(days=offset)).isoformat(),
        recovery_compliant=recovery,
        sleep_target_met=sleep,
        balanced_training=balance,
    )


class TestBehavioralRules:

    def test_recovery_compliance(self):
        assert is_recovery_compliant("rest", False)
        assert not is_recovery_compliant("rest", True)
        assert is_recovery_compliant("train", True)
        assert not is_recovery_compliant("train", False)
        assert not is_recovery_compliant("moderate", True)
        assert not is_recovery_compliant("moderate", False)

    def test_sleep_target(self):
        assert is_sleep_target_met(0)
        assert is_sleep_target_met(60)
        assert not is_sleep_target_met(61)

    def test_consecutive_days(self):
        dates = ["2024-03-01", "2024-03-02", "2024-03-02", "2024-03-03", "2024-03-05"]
        assert max_consecutive_training_days(dates) == 3
        assert max_consecutive_training_days([]) == 0

    def test_balanced_training(self):
        three = ["2024-03-01", "2024-03-02", "2024-03-03"]
        four = three + ["2024-03-04"]
        assert is_balanced_training(False, three)
        assert not is_balanced_training(False, four)
        assert not is_balanced_training(True, three)

    def test_run_behavior_engine(self):
        result = run_behavior_engine(BehavioralInput(
            recommendation="rest",
            workout_logged_today=False,
            sleep_debt_minutes=30,
            last_7_days_workout_dates=["2024-03-08"],
            overtraining_flag=False,
        ))
        assert result.recovery_compliant
        assert result.sleep_target_met
        assert result.balanced_training


class TestStreakEngine:

    def test_counts_until_missing_day(self):
        history = [row(0), row(1), row(2), row(4)]
        result = run_streak_engine(history, AS_OF)

        assert result.recovery_streak == 3
        assert result.sleep_streak == 3
        assert result.balance_streak == 3

    def test_false_value_stops_count(self):
        history = [row(0), row(1, recovery=False), row(2)]
        result = run_streak_engine(history, AS_OF)

        assert result.recovery_streak == 1
        assert result.sleep_streak == 3

    def test_no_row_today(self):
        assert run_streak_engine([row(1), row(2)], AS_OF).recovery_streak == 0

    def test_future_rows_ignored(self):
        history = [row(-1, recovery=False), row(0), row(1)]
        assert run_streak_engine(history, AS_OF).recovery_streak == 2

    def test_first_row_per_date_wins(self):
        history = [row(0), row(0, sleep=False), row(1)]
        assert run_streak_engine(history, AS_OF).sleep_streak == 2

    def test_lookback_limit(self):
        history = [row(i) for i in range(90)]
        assert run_streak_engine(history, AS_OF).balance_streak == 60
        assert run_streak_engine(history, AS_OF, max_lookback_days=10).balance_streak == 10

    def test_unparsable_as_of(self):
        result = run_streak_engine([row(0)], "garbage")
        assert (result.recovery_streak, result.sleep_streak, result.balance_streak) == (0, 0, 0)
