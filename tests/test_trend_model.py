"""Tests for the overtraining and deload detectors."""

from datetime import date, datetime, timedelta

from recovery_engine.analysis.trend_model import (
    TrendModel,
    is_declining,
    max_consecutive_training_days,
)
from recovery_engine.analysis.types import RecoverySnapshotInput, WorkoutInput

AS_OF = date(2024, 3, 10)


def day(offset):
    return (AS_OF - timedelta(days=offset)).isoformat()


def snapshots(scores_newest_first):
    return [
        RecoverySnapshotInput(snapshot_date=day(i), readiness_score=score)
        for i, score in enumerate(scores_newest_first)
    ]


def workouts(offsets):
    return [WorkoutInput(id=str(i), workout_date=day(i)) for i in offsets]


class TestTrendHelpers:

    def test_is_declining(self):
        assert is_declining([50, 60, 70])
        assert not is_declining([50, 50, 60])
        assert not is_declining([80, 70])
        assert not is_declining([50])

    def test_consecutive_training_days(self):
        times = [datetime(2024, 3, d) for d in (1, 2, 3, 5, 6)]
        assert max_consecutive_training_days(times) == 3

    def test_same_day_counts_once(self):
        times = [datetime(2024, 3, 1, 8), datetime(2024, 3, 1, 18), datetime(2024, 3, 2)]
        assert max_consecutive_training_days(times) == 2


class TestOvertraining:

    def setup_method(self):
        self.model = TrendModel()

    def test_declining_readiness(self):
        result = self.model.evaluate(snapshots([50, 60, 70, 80, 90]), [], 0, 100, as_of_date=AS_OF)
        assert result.overtraining_flag

    def test_rising_readiness_is_fine(self):
        result = self.model.evaluate(snapshots([90, 80, 70, 60, 50]), [], 0, 100, as_of_date=AS_OF)
        assert not result.overtraining_flag

    def test_needs_five_snapshots(self):
        result = self.model.evaluate(snapshots([50, 60, 70, 80]), [], 0, 100, as_of_date=AS_OF)
        assert not result.overtraining_flag

    def test_sleep_debt(self):
        assert self.model.evaluate([], [], 500, 100, as_of_date=AS_OF).overtraining_flag
        assert not self.model.evaluate([], [], 480, 100, as_of_date=AS_OF).overtraining_flag

    def test_training_streak(self):
        assert self.model.evaluate([], workouts(range(6)), 0, 100, as_of_date=AS_OF).overtraining_flag
        assert not self.model.evaluate([], workouts(range(5)), 0, 100, as_of_date=AS_OF).overtraining_flag

    def test_seven_days_straight(self):
        assert self.model.evaluate([], workouts(range(7)), 0, 100, as_of_date=AS_OF).overtraining_flag

    def test_old_training_streak_ignored(self):
        result = self.model.evaluate([], workouts(range(20, 27)), 0, 100, as_of_date=AS_OF)
        assert not result.overtraining_flag

    def test_future_workouts_ignored(self):
        future = [WorkoutInput(id=str(i), workout_date=(AS_OF + timedelta(days=i)).isoformat()) for i in range(1, 4)]
        result = self.model.evaluate([], workouts(range(3)) + future, 0, 100, as_of_date=AS_OF)
        assert not result.overtraining_flag


class TestDeload:

    def setup_method(self):
        self.model = TrendModel()
        # ten workouts spread over four ISO weeks, never back to back
        self.block = workouts(range(0, 28, 3))

    def test_consistent_load_with_declining_trend(self):
        result = self.model.evaluate(snapshots([60, 70, 80]), self.block, 0, 100, as_of_date=AS_OF)
        assert result.deload_flag
        assert not result.overtraining_flag

    def test_cns_suppression(self):
        result = self.model.evaluate(snapshots([80, 80, 80, 80, 80]), self.block, 0, 40, as_of_date=AS_OF)
        assert result.deload_flag

    def test_not_enough_history(self):
        result = self.model.evaluate(snapshots([60, 70, 80]), self.block[:5], 0, 100, as_of_date=AS_OF)
        assert not result.deload_flag

    def test_flat_trend(self):
        result = self.model.evaluate(snapshots([80, 80, 80]), self.block, 0, 100, as_of_date=AS_OF)
        assert not result.deload_flag

    def test_no_as_of_and_no_snapshots(self):
        result = self.model.evaluate([], self.block, 0, 10)
        assert not result.deload_flag

    def test_as_of_defaults_to_newest_snapshot(self):
        result = self.model.evaluate(snapshots([60, 70, 80]), self.block, 0, 100)
        assert result.deload_flag
