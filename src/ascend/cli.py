"""Flask CLI commands for ASCEND."""

from __future__ import annotations

from datetime import date

import click


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("ascend-rollup")
    @click.option(
        "--date",
        "day",
        type=click.DateTime(formats=["%Y-%m-%d"]),
        default=None,
        help="Roll up through this date (defaults to yesterday).",
    )
    def ascend_rollup(day) -> None:
        """Fold checkins into habit metrics for every active habit."""

        from .extensions import get_session_factory
        from .services.rollup import run_daily_rollup

        target: date | None = day.date() if day else None
        report = run_daily_rollup(get_session_factory(app), day=target)
        click.echo(
            f"Rollup for {report.day.isoformat()}: processed={report.processed} "
            f"skipped={report.skipped} errors={report.errors}"
        )
        if report.errors:
            raise click.exceptions.Exit(1)

    @app.cli.command("ascend-scheduler")
    def ascend_scheduler() -> None:
        """Run the nightly rollup scheduler in the foreground."""

        from .scheduler import create_scheduler

        scheduler = create_scheduler(app, blocking=True)
        click.echo("Rollup scheduler running; press Ctrl+C to stop.")
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            scheduler.stop()
