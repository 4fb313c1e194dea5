"""CLI entrypoint for foia-submission."""

import logging
from pathlib import Path

import rich_click as click

from foia_submission import __version__
from foia_submission.submission.controllers import (
    EnqueueCommand,
    InspectRequestCommand,
    ListQueueCommand,
    ListRequestsCommand,
    SubmissionCliController,
    WorkerCommand,
)
from foia_submission.submission.models import (
    QueueItemStatus,
    RequestNotFoundError,
    RequestStatus,
)

click.rich_click.USE_MARKDOWN = True
SUBMISSION_CONTROLLER = SubmissionCliController()


@click.group()
@click.version_option(version=__version__, prog_name="foia-submission")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging level for worker output.",
)
def foia_submission(log_level: str) -> None:
    """FOIA request submission CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@foia_submission.group()
def queue() -> None:
    """Submission queue commands."""


@queue.command("enqueue")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--request-id", type=int, required=True, help="FOIA request id to deliver.")
def queue_enqueue(db_path: Path | None, request_id: int) -> None:
    """Queue one delivery of a FOIA request."""

    try:
        lines = SUBMISSION_CONTROLLER.enqueue(
            EnqueueCommand(db_path=db_path, request_id=request_id),
        )
    except RequestNotFoundError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@queue.command("worker")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--once", is_flag=True, default=False, help="Process at most one item.")
@click.option(
    "--max-items",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after processing this many items.",
)
@click.option(
    "--max-idle-polls",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Exit after this many consecutive empty polls.",
)
def queue_worker(
    db_path: Path | None,
    once: bool,
    max_items: int | None,
    max_idle_polls: int,
) -> None:
    """Deliver queued FOIA requests to their agency components."""

    try:
        lines = SUBMISSION_CONTROLLER.run_worker(
            WorkerCommand(
                db_path=db_path,
                once=once,
                max_items=max_items,
                max_idle_polls=max_idle_polls,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@queue.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--status",
    type=click.Choice([status.value for status in QueueItemStatus]),
    default=None,
    help="Optional queue item status filter.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of items to print.",
)
def queue_list(db_path: Path | None, status: str | None, limit: int) -> None:
    """List recent queue items."""

    _emit_lines(
        SUBMISSION_CONTROLLER.list_queue(
            ListQueueCommand(db_path=db_path, status=status, limit=limit),
        ),
    )


@foia_submission.group()
def requests() -> None:
    """FOIA request inspection commands."""


@requests.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--status",
    type=click.Choice([status.value for status in RequestStatus]),
    default=None,
    help="Optional request status filter.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of requests to print.",
)
def requests_list(db_path: Path | None, status: str | None, limit: int) -> None:
    """List recently updated FOIA requests."""

    _emit_lines(
        SUBMISSION_CONTROLLER.list_requests(
            ListRequestsCommand(db_path=db_path, status=status, limit=limit),
        ),
    )


@requests.command("inspect")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("request_id", type=int)
def requests_inspect(db_path: Path | None, request_id: int) -> None:
    """Show submission state of one FOIA request."""

    try:
        lines = SUBMISSION_CONTROLLER.inspect_request(
            InspectRequestCommand(db_path=db_path, request_id=request_id),
        )
    except RequestNotFoundError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    foia_submission()
