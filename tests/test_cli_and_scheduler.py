"""Tests for the rollup CLI command and the APScheduler wiring."""

from __future__ import annotations

from ascend.scheduler import ROLLUP_JOB_ID, create_scheduler


def test_rollup_command_reports_counts(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["ascend-rollup", "--date", "2025-03-01"])

    assert result.exit_code == 0
    assert "Rollup for 2025-03-01" in result.output
    assert "errors=0" in result.output


def test_rollup_command_rejects_bad_date(app):
    result = app.test_cli_runner().invoke(args=["ascend-rollup", "--date", "03/01/2025"])

    assert result.exit_code != 0


def test_scheduler_registers_daily_job(app):
    scheduler = create_scheduler(app)
    try:
        scheduler.start()
        job = scheduler.scheduler.get_job(ROLLUP_JOB_ID)

        assert job is not None
        fields = {field.name: str(field) for field in job.trigger.fields}
        assert fields["hour"] == str(app.config["ASCEND_CONFIG"].ROLLUP_HOUR)
        assert fields["minute"] == str(app.config["ASCEND_CONFIG"].ROLLUP_MINUTE)
    finally:
        scheduler.stop()

    assert scheduler.scheduler is None


def test_scheduled_job_runs_rollup(app, monkeypatch):
    calls = []

    def fake_rollup(session_factory, *, day=None):
        calls.append(day)
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("ascend.scheduler.run_daily_rollup", fake_rollup)

    create_scheduler(app)._run_rollup()

    assert calls == [None]
