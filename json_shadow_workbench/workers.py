"""Run long jobs off the owning thread and hand results back as messages.

The worker never touches a `Session`. It gets private snapshots, posts
`ProgressMessage` / `CompletedMessage` / `FailedMessage` objects onto a queue,
and the owner drains the queue and installs results itself.
"""

from __future__ import annotations

import itertools
import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from .corrections import CorrectionsResult, apply_corrections
from .pipeline import ProgressCallback, build_intermediate_product, report_progress
from .projection import project_final_product, validate_upload_shape
from .session import Session

logger = logging.getLogger(__name__)


@dataclass
class ProgressMessage:
    job_id: int
    fraction: float
    label: str


@dataclass
class CompletedMessage:
    job_id: int
    result: Any


@dataclass
class FailedMessage:
    job_id: int
    error: BaseException


class BackgroundWorker:
    """One background thread plus a message queue back to the owner."""

    def __init__(self, name: str = 'workbench'):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self.messages: 'queue.Queue' = queue.Queue()
        self._ids = itertools.count(1)
        self._backlog: List[Any] = []

    def submit(self, fn: Callable[..., Any], *args, with_progress: bool = True, **kwargs) -> int:
        """Queue `fn(*args, **kwargs)`; when `with_progress` it also gets a `progress` callback."""
        job_id = next(self._ids)
        self._executor.submit(self._run, job_id, fn, args, kwargs, with_progress)
        return job_id

    def _run(self, job_id, fn, args, kwargs, with_progress) -> None:
        def post_progress(fraction: float, label: str) -> None:
            self.messages.put(ProgressMessage(job_id, fraction, label))

        if with_progress:
            kwargs = dict(kwargs, progress=post_progress)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            logger.error("Background job %d failed: %s", job_id, e)
            self.messages.put(FailedMessage(job_id, e))
            return
        self.messages.put(CompletedMessage(job_id, result))

    def drain(self) -> List[Any]:
        """Every message posted so far, without blocking."""
        out, self._backlog = self._backlog, []
        while True:
            try:
                out.append(self.messages.get_nowait())
            except queue.Empty:
                return out

    def wait(self, job_id: int, on_progress: Optional[ProgressCallback] = None) -> Any:
        """Block until `job_id` finishes; forward its progress and return or raise its outcome.

        Messages of other jobs are kept for the next `drain()`.
        """
        pending = [m for m in self._backlog if m.job_id == job_id]
        self._backlog = [m for m in self._backlog if m.job_id != job_id]
        while True:
            if pending:
                msg = pending.pop(0)
            else:
                msg = self.messages.get()
                if msg.job_id != job_id:
                    self._backlog.append(msg)
                    continue
            if isinstance(msg, ProgressMessage):
                report_progress(on_progress, msg.fraction, msg.label)
            elif isinstance(msg, FailedMessage):
                raise msg.error
            else:
                return msg.result

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> 'BackgroundWorker':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


def run_intermediate(
    worker: BackgroundWorker,
    session: Session,
    filter_text: str,
    leaf_only: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """Build the intermediate product on the worker and record it on the owner."""
    if not filter_text or not filter_text.strip():
        return ''
    index, document = session.snapshot()
    job = worker.submit(build_intermediate_product, index, document, filter_text, leaf_only)
    product = worker.wait(job, on_progress)
    return session.record_intermediate(product)


def run_projection(worker: BackgroundWorker, session: Session) -> str:
    job = worker.submit(project_final_product, session.intermediate_text, with_progress=False)
    session.final_text = worker.wait(job)
    return session.final_text


def run_corrections(
    worker: BackgroundWorker,
    session: Session,
    corrections_text: str,
    on_progress: Optional[ProgressCallback] = None,
    write_back: bool = True,
) -> CorrectionsResult:
    """Apply corrections against a snapshot on the worker, then install on the owner.

    Readers of the session only ever see the old document or the fully merged one.
    The session stays locked from snapshot to install, so a concurrent `mutate`
    fails with `SessionBusy` instead of being overwritten.
    """
    validate_upload_shape(corrections_text, session.final_text)
    with session.exclusive('apply_corrections') as install:
        _, document = session.snapshot()
        job = worker.submit(
            apply_corrections, document, session.intermediate_text, corrections_text, copy_document=False,
        )
        result: CorrectionsResult = worker.wait(job, on_progress)
        install(result.document)
    if write_back and session.original_path:
        session.save()
    return result


def run_final_product(
    worker: BackgroundWorker,
    session: Session,
    filter_text: str,
    leaf_only: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> Tuple[str, str]:
    """Build the intermediate and then the final product in one go.

    Progress of the first stage is mapped into 10%..50% of the whole run.
    Returns `(intermediate_text, final_text)`; both are '' for an empty filter.
    """
    if not filter_text or not filter_text.strip():
        return '', ''

    def stage_one(fraction: float, label: str) -> None:
        report_progress(on_progress, 0.1 + fraction * 0.4, f"Stage 1: {label}")

    report_progress(on_progress, 0.1, 'Stage 1: building intermediate product...')
    intermediate_text = run_intermediate(worker, session, filter_text, leaf_only, stage_one)
    if not intermediate_text:
        return '', ''
    report_progress(on_progress, 0.5, 'Stage 2: converting to final product...')
    final_text = run_projection(worker, session)
    report_progress(on_progress, 1.0, 'Done')
    logger.info("Final product built in one run for filter %r", filter_text)
    return intermediate_text, final_text
