"""Tests for the recovery orchestrator."""

import pytest
from datetime import date, datetime, timedelta, timezone

from recovery_engine.analysis import run_recovery_engine
from recovery_engine.analysis.constants import MUSCLE_GROUPS, READINESS_WEIGHTS
from recovery_engine.analysis.recovery_engine import (
    RecoveryEngine,
    age_factor,
    overall_score,
    recommendation_for,
)
from recovery_engine.analysis.types import (
    MuscleGroupInput,
    Recommendation,
    RecoveryEngineInput,
    RecoveryEngineOutput,
    SleepLogInput,
    StressLogInput,
    WorkoutInput,
)

AS_OF = date(2024, 3, 10)
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def day(offset):
    return (AS_OF - timedelta(days=offset)).isoformat()


def nights(minutes, quality, count=7, deep=None):
    return [
        SleepLogInput(sleep_date=day(i), total_minutes=minutes, quality=quality, deep_sleep_minutes=deep)
        for i in range(count)
    ]


class TestReadinessWeighting:
    """One canonical variant: nine muscle groups, 0.4/0.3/0.2/0.1 weights."""

    def test_weights(self):
        assert READINESS_WEIGHTS == {"muscular": 0.4, "cns": 0.3, "sleep": 0.2, "stress": 0.1}
        assert overall_score(100, 0, 0, 0) == 40
        assert overall_score(0, 100, 0, 0) == 30
        assert overall_score(0, 0, 100, 0) == 20
        assert overall_score(0, 0, 0, 100) == 10
        assert overall_score(100, 100, 100, 100) == 100

    def test_nine_muscle_groups_reported(self):
        output = run_recovery_engine(RecoveryEngineInput(as_of_date=AS_OF.isoformat()), now=NOW)
        assert set(output.muscle_breakdown) == set(MUSCLE_GROUPS)
        assert len(MUSCLE_GROUPS) == 9

    def test_thresholds(self):
        assert recommendation_for(85) == Recommendation.TRAIN
        assert recommendation_for(84) == Recommendation.MODERATE
        assert recommendation_for(60) == Recommendation.MODERATE
        assert recommendation_for(59) == Recommendation.REST

    def test_age_factor(self):
        assert age_factor(40) == 0.95
        assert age_factor(39) == 1.0
        assert age_factor(None) == 1.0


class TestRecoveryEngine:

    def setup_method(self):
        self.engine = RecoveryEngine()

    def test_no_data(self):
        output = self.engine.run(RecoveryEngineInput(as_of_date=AS_OF.isoformat()), now=NOW)

        assert output.muscular_score == 100
        assert output.cns_score == 100
        assert output.sleep_score == 70
        assert output.stress_score == 56
        assert output.overall_score == 90
        assert output.recommendation == "train"
        assert output.projected_full_recovery is None
        assert not output.overtraining_flag
        assert not output.deload_flag
        assert output.generated_at == NOW

    def test_heavy_legs_and_poor_sleep(self):
        engine_input = RecoveryEngineInput(
            as_of_date=AS_OF.isoformat(),
            workouts=[WorkoutInput(
                id="legs",
                workout_date=day(1),
                perceived_exertion=9,
                duration_minutes=90,
                name="Heavy squats",
                muscle_groups=[MuscleGroupInput(g) for g in ("quads", "hamstrings", "glutes")],
            )],
            sleep_logs=nights(300, 4),
            stress_logs=[StressLogInput(log_date=day(i), stress_level=8) for i in range(7)],
        )
        output = self.engine.run(engine_input, now=NOW)

        assert output.muscle_breakdown["quads"] == 0
        assert output.muscle_breakdown["chest"] == 100
        assert output.cns_score < 20
        assert output.sleep_debt == 7 * 180
        assert output.overtraining_flag
        assert output.recommendation == "rest"
        assert output.projected_full_recovery > NOW
        assert output.stress_level == "very_high"

    def test_heavy_legs_and_two_short_nights(self):
        engine_input = RecoveryEngineInput(
            as_of_date=AS_OF.isoformat(),
            workouts=[WorkoutInput(
                id="legs",
                workout_date=day(1),
                perceived_exertion=9,
                duration_minutes=90,
                muscle_groups=[MuscleGroupInput(g) for g in ("quads", "hamstrings", "glutes")],
            )],
            sleep_logs=nights(280, 3, count=2),
        )
        output = self.engine.run(engine_input, now=NOW)

        assert output.sleep_score < 70
        assert output.overall_score < 70
        assert output.stress_score == 70
        assert output.sleep_debt == 2 * 200

    def test_moderate_session_and_good_sleep(self):
        engine_input = RecoveryEngineInput(
            as_of_date=AS_OF.isoformat(),
            workouts=[WorkoutInput(
                id="push",
                workout_date=day(4),
                perceived_exertion=6,
                duration_minutes=60,
                name="Bench session",
                muscle_groups=[MuscleGroupInput("chest")],
            )],
            sleep_logs=nights(480, 8),
            stress_logs=[StressLogInput(log_date=day(i), stress_level=3) for i in range(7)],
        )
        output = self.engine.run(engine_input, now=NOW)

        assert output.cns_score == 100
        assert output.sleep_score == 80
        assert output.stress_score == 78
        assert output.muscular_score >= 95
        assert output.recommendation == "train"
        assert output.sleep_debt == 0

    def test_idempotent(self):
        engine_input = RecoveryEngineInput(
            as_of_date=AS_OF.isoformat(),
            workouts=[WorkoutInput(id="w", workout_date=day(2), perceived_exertion=8)],
            sleep_logs=nights(420, 6),
        )
        assert self.engine.run(engine_input, now=NOW) == self.engine.run(engine_input, now=NOW)

    def test_scores_bounded(self):
        engine_input = RecoveryEngineInput(
            as_of_date=AS_OF.isoformat(),
            workouts=[WorkoutInput(id=str(i), workout_date=day(0), perceived_exertion=10,
                                   duration_minutes=300) for i in range(10)],
            sleep_logs=nights(0, 1),
            stress_logs=[StressLogInput(log_date=day(0), stress_level=10)],
        )
        output = self.engine.run(engine_input, now=NOW)
        for score in (output.muscular_score, output.cns_score, output.sleep_score,
                      output.stress_score, output.overall_score):
            assert 0 <= score <= 100

    def test_deep_sleep_from_previous_night(self):
        workouts = [WorkoutInput(id="w", workout_date=day(3), perceived_exertion=8)]
        rested = RecoveryEngineInput(as_of_date=AS_OF.isoformat(), workouts=workouts,
                                     sleep_logs=[SleepLogInput(sleep_date=day(1), total_minutes=480,
                                                               deep_sleep_minutes=90)])
        short = RecoveryEngineInput(as_of_date=AS_OF.isoformat(), workouts=workouts,
                                    sleep_logs=[SleepLogInput(sleep_date=day(1), total_minutes=480,
                                                              deep_sleep_minutes=30)])
        assert self.engine.run(short, now=NOW).cns_score < self.engine.run(rested, now=NOW).cns_score

    def test_hrv_derived_from_stress_logs(self):
        logs = [StressLogInput(log_date=day(i), hrv_ms=hrv) for i, hrv in enumerate((40, 60, 60, 60))]
        output = self.engine.run(RecoveryEngineInput(as_of_date=AS_OF.isoformat(), stress_logs=logs), now=NOW)
        # baseline 55, today 40
        assert output.hrv_deviation_percent == pytest.approx(-27.27, rel=1e-3)

    def test_explicit_hrv_wins(self):
        engine_input = RecoveryEngineInput(as_of_date=AS_OF.isoformat(), recent_hrv_ms=45, baseline_hrv_ms=50)
        assert self.engine.run(engine_input, now=NOW).hrv_deviation_percent == pytest.approx(-10)

    def test_unparsable_as_of_is_neutral(self):
        output = self.engine.run(RecoveryEngineInput(as_of_date="not-a-date"), now=NOW)

        assert output.muscular_score == 100
        assert output.cns_score == 100
        assert output.stress_score == 70


class TestOutputSerialization:

    def test_from_dict_camel_case(self):
        output = RecoveryEngineOutput.from_dict({
            "overallScore": 77,
            "cnsScore": 50,
            "muscleBreakdown": {"quads": 40},
            "recommendation": "moderate",
            "overtrainingFlag": True,
        })
        assert output.overall_score == 77
        assert output.cns_score == 50
        assert output.muscle_breakdown == {"quads": 40}
        assert output.recommendation == "moderate"
        assert output.overtraining_flag
        assert output.sleep_score == 0

    def test_from_dict_projected_timestamp_alias(self):
        output = RecoveryEngineOutput.from_dict({
            "overall_score": 60,
            "projected_full_recovery_timestamp": "2024-03-12T08:00:00Z",
        })
        assert output.projected_full_recovery == datetime(2024, 3, 12, 8, 0, tzinfo=timezone.utc)

    def test_from_dict_garbage(self):
        output = RecoveryEngineOutput.from_dict("nope")
        assert output.overall_score == 0
        assert output.recommendation == "rest"

    def test_to_dict_is_json_friendly(self):
        output = run_recovery_engine(RecoveryEngineInput(as_of_date=AS_OF.isoformat()), now=NOW)
        data = output.to_dict()
        assert data["generated_at"] == NOW.isoformat()
        assert data["overall_score"] == 90
        assert RecoveryEngineOutput.from_dict(data).overall_score == 90
