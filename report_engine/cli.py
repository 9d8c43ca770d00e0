"""
Command-line interface for operating the report engine.
"""

import json
import sys
from typing import Optional

import click

from report_engine.bootstrap import build_engine, configure_logging
from report_engine.database import init_db
from report_engine.worker import build_worker


def _split_kinds(kinds: Optional[str]):
    if not kinds:
        return []
    return [k.strip() for k in kinds.split(",") if k.strip()]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """Report engine operations."""
    if ctx.obj is None:
        configure_logging("DEBUG" if verbose else None)
        engine = build_engine()
        ctx.call_on_close(engine.close)
        ctx.obj = engine


@main.command("process-queue")
@click.option("--limit", type=int, default=None, help="Maximum number of jobs to process")
@click.pass_obj
def process_queue(engine, limit: Optional[int]):
    """Process queued report generations."""
    summary = build_worker(engine).process(limit=limit)
    click.echo(
        f"Processed: {summary.processed}, failed: {summary.failed}, "
        f"skipped: {summary.skipped}, remaining: {summary.remaining}"
    )
    if summary.failed and not (summary.processed or summary.skipped):
        sys.exit(1)


@main.command("queue-status")
@click.pass_obj
def queue_status(engine):
    """Show the number of queued jobs."""
    click.echo(f"Queued report jobs: {engine.queue.count()}")


@main.command()
@click.argument("subject")
@click.option("--kinds", help="Comma-separated report kinds (default: all)")
@click.option("--sync", is_flag=True, help="Generate immediately instead of queueing")
@click.option("--delete", is_flag=True, help="Delete existing reports first")
@click.pass_obj
def regenerate(engine, subject: str, kinds: Optional[str], sync: bool, delete: bool):
    """Regenerate reports for SUBJECT."""
    kind_list = _split_kinds(kinds)

    if delete:
        deleted = engine.regenerator.delete(subject, kind_list)
        click.echo(f"Deleted {deleted} existing report(s)")

    result = engine.regenerator.regenerate(subject, kind_list, queue=not sync)

    verb = "Generated" if sync else "Queued"
    if result.success:
        click.echo(f"{verb}: {', '.join(result.success)}")
    for kind, reason in result.skipped.items():
        click.echo(f"Skipped {kind}: {reason}")
    for kind, reason in result.failed.items():
        click.echo(f"Failed {kind}: {reason}", err=True)

    if result.all_failed:
        sys.exit(1)


@main.command("user-stats")
@click.argument("subject")
@click.pass_obj
def user_stats(engine, subject: str):
    """Show report statistics for SUBJECT."""
    stats = engine.regenerator.statistics(subject)
    if not stats.has_reports:
        click.echo(f"No reports for subject {subject}")
        return

    click.echo(f"Total reports: {stats.total}")
    click.echo("By type:")
    for kind, count in sorted(stats.by_type.items()):
        click.echo(f"  {kind}: {count}")
    click.echo("By status:")
    for status, count in sorted(stats.by_status.items()):
        click.echo(f"  {status}: {count}")


@main.command()
@click.argument("subject")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write to a file")
@click.pass_obj
def export(engine, subject: str, output: Optional[str]):
    """Export the current reports of SUBJECT as JSON."""
    data = engine.orchestrator.export_reports(subject).model_dump(mode="json", by_alias=True)
    text = json.dumps(data, indent=2)
    if output:
        with open(output, "w") as f:
            f.write(text)
        click.echo(f"Exported {len(data['reports'])} report(s) to {output}")
    else:
        click.echo(text)


@main.command("init-db")
def init_db_command():
    """Create any missing tables (SQLite deployments; use alembic elsewhere)."""
    init_db()
    click.echo("Database tables created")


@main.command()
@click.pass_obj
def worker(engine):
    """Run the queue worker until interrupted."""
    build_worker(engine).run()


if __name__ == "__main__":
    main()
