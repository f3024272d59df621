"""Tests for the SQLAlchemy repository."""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from recovery_engine.analysis.behavior import BehavioralOutput
from recovery_engine.analysis.types import RecoveryEngineOutput
from recovery_engine.db.models import BehavioralMetric, RecoverySnapshot, SleepLog, utcnow
from recovery_engine.db.repository import RecoveryRepository

AS_OF = date(2024, 3, 10)


def make_output(**fields):
    return replace(RecoveryEngineOutput.empty(), **fields)


class TestRecoveryRepository:

    @pytest.fixture(autouse=True)
    def setup_repository(self, db):
        self.db = db
        self.repo = RecoveryRepository(db, user_id="athlete")

    def test_fetch_recovery_input_windows(self):
        self.repo.add_workout(AS_OF - timedelta(days=2), perceived_exertion=8, muscle_groups=["quads"],
                              exercises=[{"exercise_name": "Back squat", "sets": 5, "reps": 5}])
        self.repo.add_workout(AS_OF - timedelta(days=20), perceived_exertion=8)
        self.repo.add_workout(AS_OF - timedelta(days=30), perceived_exertion=8)
        self.repo.add_workout(AS_OF + timedelta(days=1), perceived_exertion=8)
        self.repo.add_sleep_log(AS_OF, total_minutes=420, quality=7, deep_sleep_minutes=80)
        self.repo.add_sleep_log(AS_OF - timedelta(days=9), total_minutes=300)
        self.repo.add_stress_log(AS_OF - timedelta(days=1), stress_level=4, hrv_ms=55)

        engine_input = self.repo.fetch_recovery_input(AS_OF, age_years=42)

        assert engine_input.as_of_date == "2024-03-10"
        assert engine_input.age_years == 42
        # 28 days of workouts so the deload detector can see four ISO weeks
        assert [w.workout_date for w in engine_input.workouts] == ["2024-03-08", "2024-02-19"]
        workout = engine_input.workouts[0]
        assert workout.workout_date == "2024-03-08"
        assert [m.muscle_group for m in workout.muscle_groups] == ["quads"]
        assert workout.exercises[0].exercise_name == "Back squat"
        assert len(engine_input.sleep_logs) == 1
        assert engine_input.sleep_logs[0].deep_sleep_minutes == 80
        assert engine_input.stress_logs[0].hrv_ms == 55

    def test_other_users_and_deleted_rows_hidden(self):
        other = RecoveryRepository(self.db, user_id="someone-else")
        other.add_workout(AS_OF, perceived_exertion=9)
        workout_id = self.repo.add_workout(AS_OF, perceived_exertion=9)
        assert self.repo.soft_delete_workout(workout_id)

        assert self.repo.fetch_recovery_input(AS_OF).workouts == []
        assert self.repo.fetch_workout_dates(AS_OF) == []

    def test_snapshot_upsert_is_idempotent(self):
        self.repo.save_snapshot(AS_OF, make_output(overall_score=70, muscle_breakdown={"quads": 50}))
        self.repo.save_snapshot(AS_OF, make_output(overall_score=82, cns_score=64))

        with self.db.get_session() as session:
            rows = session.query(RecoverySnapshot).filter_by(user_id="athlete").all()
            assert len(rows) == 1
            assert rows[0].readiness_score == 82
            assert rows[0].muscle_breakdown is None
        assert self.repo.snapshot_exists(AS_OF)
        assert not self.repo.snapshot_exists(AS_OF - timedelta(days=1))

        stored = self.repo.get_snapshot(AS_OF)
        assert stored.overall_score == 82
        assert stored.cns_score == 64

    def test_history_points(self):
        for i, score in enumerate((60, 70, 80)):
            self.repo.save_snapshot(
                AS_OF - timedelta(days=i),
                make_output(overall_score=score, muscular_score=score - 5, cns_score=score + 5, sleep_debt=30.0),
            )
        self.repo.save_snapshot(AS_OF - timedelta(days=40), make_output(overall_score=10))

        points = self.repo.fetch_history(7, AS_OF)

        assert [p.date for p in points] == ["2024-03-08", "2024-03-09", "2024-03-10"]
        assert [p.overall_score for p in points] == [80, 70, 60]
        assert points[-1].muscular_score == 55
        assert points[-1].cns_score == 65
        assert points[-1].sleep_debt == 30.0

    def test_recent_snapshots_in_engine_input(self):
        for i in range(35):
            self.repo.save_snapshot(AS_OF - timedelta(days=i), make_output(overall_score=50 + i))

        snapshots = self.repo.fetch_recovery_input(AS_OF).recent_snapshots

        assert len(snapshots) == 29
        assert snapshots[0].snapshot_date == "2024-03-10"
        assert snapshots[-1].snapshot_date == "2024-02-11"

    def test_deload_input_oldest_first(self):
        for i in range(35):
            self.repo.save_snapshot(AS_OF - timedelta(days=i),
                                    make_output(overall_score=70, overtraining_flag=i == 2, sleep_debt=120.0))

        rows = self.repo.fetch_deload_input(AS_OF)

        assert len(rows) == 29
        assert rows[0].snapshot_date == "2024-02-11"
        assert rows[-1].snapshot_date == "2024-03-10"
        assert sum(1 for r in rows if r.overtraining_flag) == 1

    def test_behavioral_metrics_upsert(self):
        self.repo.upsert_behavioral_metrics(AS_OF, BehavioralOutput(True, False, True))
        self.repo.upsert_behavioral_metrics(AS_OF, BehavioralOutput(False, True, True))
        self.repo.upsert_behavioral_metrics(AS_OF - timedelta(days=1), BehavioralOutput(True, True, True))

        with self.db.get_session() as session:
            assert session.query(BehavioralMetric).count() == 2

        history = self.repo.fetch_behavior_history(AS_OF)
        assert history[0].date == "2024-03-10"
        assert not history[0].recovery_compliant
        assert history[0].sleep_target_met

    def test_behavior_history_bounded_by_as_of(self):
        for i in range(90):
            self.repo.upsert_behavioral_metrics(AS_OF - timedelta(days=i), BehavioralOutput(True, True, True))

        history = self.repo.fetch_behavior_history(AS_OF - timedelta(days=30))

        assert len(history) == 60
        assert history[0].date == "2024-02-09"
        assert history[-1].date == "2023-12-12"

    def test_single_active_deload_cycle(self):
        assert self.repo.get_active_deload() is None
        assert self.repo.start_deload_cycle(AS_OF, "Accumulated fatigue trend detected", 30)
        assert not self.repo.start_deload_cycle(AS_OF + timedelta(days=1), "again", 30)

        active = self.repo.get_active_deload()
        assert active.start_date == "2024-03-10"
        assert active.volume_reduction_pct == 30

        assert self.repo.end_deload_cycle(AS_OF + timedelta(days=7))
        assert self.repo.get_active_deload() is None
        assert not self.repo.end_deload_cycle(AS_OF + timedelta(days=8))
        assert self.repo.start_deload_cycle(AS_OF + timedelta(days=30), "next block", 25)

    def test_soft_deleted_sleep_not_read(self):
        self.repo.add_sleep_log(AS_OF, total_minutes=300)
        with self.db.get_session() as session:
            session.query(SleepLog).update({SleepLog.deleted_at: utcnow()})
        assert self.repo.fetch_recovery_input(AS_OF).sleep_logs == []
