"""Tests for the deload periodization layer."""

from datetime import date, timedelta

from recovery_engine.analysis.periodization import (
    DeloadPhase,
    evaluate_deload_status,
    run_periodization_engine,
)
from recovery_engine.analysis.types import DeloadCycleState, DeloadSnapshotRow

AS_OF = date(2024, 3, 28)


def build_rows(days=28, sleep_debt=400, flagged=(1, 3), recent=60, earlier=80):
    """Rows oldest first; the last five days carry the lower readiness."""
    rows = []
    for i in reversed(range(days)):
        rows.append(DeloadSnapshotRow(
            snapshot_date=(AS_OF - timedelta(days=i)).isoformat(),
            readiness_score=recent if i < 5 else earlier,
            overtraining_flag=i in flagged,
            sleep_debt=sleep_debt,
        ))
    return rows


class TestPeriodizationEngine:

    def test_recommends_deload(self):
        result = run_periodization_engine(build_rows(), AS_OF)

        assert result.deload_recommended
        assert result.reason == "Accumulated fatigue trend detected"
        assert result.suggested_reduction_percent == 30

    def test_needs_28_days(self):
        assert not run_periodization_engine(build_rows(days=27), AS_OF).deload_recommended

    def test_sleep_debt_must_exceed_five_hours(self):
        assert not run_periodization_engine(build_rows(sleep_debt=300), AS_OF).deload_recommended

    def test_needs_two_overtraining_days(self):
        assert not run_periodization_engine(build_rows(flagged=(1,)), AS_OF).deload_recommended

    def test_needs_downward_trend(self):
        assert not run_periodization_engine(build_rows(recent=80), AS_OF).deload_recommended

    def test_rows_after_as_of_ignored(self):
        rows = build_rows()
        result = run_periodization_engine(rows, AS_OF - timedelta(days=1))
        assert not result.deload_recommended

    def test_duplicate_dates_count_once(self):
        rows = build_rows(days=27)
        rows.append(rows[-1])
        assert not run_periodization_engine(rows, AS_OF).deload_recommended

    def test_missing_values_use_defaults(self):
        rows = [
            DeloadSnapshotRow(snapshot_date=(AS_OF - timedelta(days=i)).isoformat())
            for i in range(28)
        ]
        assert not run_periodization_engine(rows, AS_OF).deload_recommended

    def test_unparsable_as_of(self):
        assert not run_periodization_engine(build_rows(), "someday").deload_recommended


class TestDeloadStatus:

    def test_active_cycle_skips_check(self):
        cycle = DeloadCycleState(start_date="2024-03-20", reason="manual", volume_reduction_pct=40)
        status = evaluate_deload_status(build_rows(), AS_OF, active_cycle=cycle)

        assert status.phase == DeloadPhase.ACTIVE
        assert not status.start_cycle
        assert status.volume_reduction_percent == 40
        assert status.in_deload

    def test_recommendation_starts_cycle(self):
        status = evaluate_deload_status(build_rows(), AS_OF)

        assert status.phase == DeloadPhase.RECOMMENDED
        assert status.start_cycle
        assert status.volume_reduction_percent == 30

    def test_ended_cycle_is_not_active(self):
        cycle = DeloadCycleState(start_date="2024-03-01", end_date="2024-03-08", volume_reduction_pct=30)
        status = evaluate_deload_status(build_rows(), AS_OF, active_cycle=cycle)
        assert status.phase == DeloadPhase.RECOMMENDED

    def test_normal(self):
        status = evaluate_deload_status(build_rows(sleep_debt=0), AS_OF)

        assert status.phase == DeloadPhase.NORMAL
        assert not status.in_deload
        assert status.reason is None
