"""Background ingestion on Textual thread workers.

Each load runs as an exclusive thread worker in the ``ingest`` group. The app
keeps a reference to the latest worker only and reads its outcome once the
worker has finished. Starting a reload cancels and forgets the previous
worker; a cancelled thread may still run to completion, but nothing reads
its result.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from textual.app import App
from textual.worker import Worker, WorkerState


logger = logging.getLogger(__name__)

T = TypeVar("T")

INGEST_GROUP = "ingest"

SPINNER_FRAMES = ["|", "/", "-", "\\"]


@dataclass(frozen=True)
class LoadOutcome(Generic[T]):
    """Final result of one background run: a value or an error."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ChannelClosed(RuntimeError):
    """The worker ended without delivering a result."""

    def __init__(self) -> None:
        super().__init__("channel closed")


def loading_message(tick: int) -> str:
    frame = SPINNER_FRAMES[tick % len(SPINNER_FRAMES)]
    return f"{frame} loading GitLab data..."


def start_load_worker(app: App, job: Callable[[], T], generation: int) -> Worker[T]:
    """Run ``job`` in a thread worker, cancelling any earlier load."""
    return app.run_worker(
        job,
        name=f"ingest-{generation}",
        group=INGEST_GROUP,
        description="Load GitLab catalog",
        exit_on_error=False,
        exclusive=True,
        thread=True,
    )


def worker_outcome(worker: Worker[T]) -> Optional[LoadOutcome[T]]:
    """Outcome of a finished worker, or None while it is still running."""
    if worker.state == WorkerState.SUCCESS:
        return LoadOutcome(value=worker.result)
    if worker.state == WorkerState.ERROR:
        logger.error("Background load failed: %s", worker.error)
        return LoadOutcome(error=worker.error)
    if worker.state == WorkerState.CANCELLED:
        return LoadOutcome(error=ChannelClosed())
    return None
