"""
Batch API endpoints.

A batch runs as a task on the server's event loop with its own
database session, so it outlives the request that started it.
Only one batch runs at a time. When a print unit fails the batch
pauses until a client posts a decision (continue or abort).
"""

import asyncio
import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, Request

from check_ledger.api.deps import get_print_adapter
from check_ledger.exceptions import (
    BatchError,
    LedgerNotFoundError,
    ProfileNotFoundError,
)
from check_ledger.schemas.batch import (
    BatchCreate,
    BatchProgress,
    BatchStatusResponse,
    DecisionRequest,
)
from check_ledger.services.batch_controller import BatchController, BatchHandle
from check_ledger.services.gl_codes import GLCodeService
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import PendingDecisionOracle, PrintAdapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batches", tags=["Batches"])


@dataclass
class BatchRun:
    handle: BatchHandle
    oracle: PendingDecisionOracle


class BatchRegistry:
    """
    Batches started by this process, keyed by batch id.

    Only the most recent keep_finished finished runs stay
    queryable; older ones are dropped when a new batch is added.
    """

    def __init__(self, keep_finished: int = 20):
        self.keep_finished = keep_finished
        self._runs: dict[str, BatchRun] = {}

    def add(self, run: BatchRun) -> None:
        if self.active() is not None:
            raise BatchError("A batch is already running")
        self._prune()
        self._runs[run.handle.id] = run

    def _prune(self) -> None:
        # Insertion order is start order
        finished = [
            batch_id for batch_id, run in self._runs.items()
            if run.handle.result is None or run.handle.result.done()
        ]
        excess = len(finished) - max(self.keep_finished - 1, 0)
        for batch_id in finished[:max(excess, 0)]:
            del self._runs[batch_id]

    def get(self, batch_id: str) -> BatchRun:
        run = self._runs.get(batch_id)
        if run is None:
            raise BatchError(f"Batch {batch_id} not found")
        return run

    def active(self) -> BatchRun | None:
        for run in self._runs.values():
            if run.handle.result is not None and not run.handle.result.done():
                return run
        return None


def get_registry(request: Request) -> BatchRegistry:
    return request.app.state.batches


def _status(run: BatchRun) -> BatchStatusResponse:
    handle = run.handle
    progress = handle.progress or BatchProgress(
        state=handle.state,
        current=0,
        total=len(handle.items),
        processed=0,
        failed=0,
    )

    error = None
    task = handle.result
    if task is not None and task.done() and not task.cancelled():
        exc = task.exception()
        if exc is not None:
            error = str(exc)

    return BatchStatusResponse(
        batch_id=handle.id,
        progress=progress,
        pending_failure=run.oracle.pending,
        summary=handle.summary,
        error=error,
    )


@router.post("", response_model=BatchStatusResponse, status_code=202)
async def start_batch(
    request: BatchCreate,
    http_request: Request,
    adapter: PrintAdapter = Depends(get_print_adapter),
    registry: BatchRegistry = Depends(get_registry),
):
    """
    Start printing a queue of checks.

    Returns immediately; poll GET /batches/{id} for progress.
    """
    if registry.active() is not None:
        raise HTTPException(status_code=409, detail="A batch is already running")

    db = http_request.app.state.session_factory()
    store = LedgerStore(db, gl_learner=GLCodeService(db))
    try:
        if request.profile_id is not None:
            store.get_profile(request.profile_id)
        default_ledger_id = request.default_ledger_id
        if default_ledger_id is not None:
            store.get_ledger(default_ledger_id)
        else:
            default_ledger_id = store.ensure_default_ledger().id
    except (LedgerNotFoundError, ProfileNotFoundError) as e:
        db.close()
        raise HTTPException(status_code=404, detail=str(e))

    oracle = PendingDecisionOracle()
    controller = BatchController(
        store,
        adapter,
        oracle,
        profile_id=request.profile_id,
        default_ledger_id=default_ledger_id,
    )
    handle = controller.enqueue_batch(request.items, request.options)
    handle.result.add_done_callback(lambda task: _finished(task, db))
    registry.add(BatchRun(handle=handle, oracle=oracle))
    return _status(registry.get(handle.id))


@router.get("/{batch_id}", response_model=BatchStatusResponse)
async def get_batch(
    batch_id: str, registry: BatchRegistry = Depends(get_registry)
):
    try:
        return _status(registry.get(batch_id))
    except BatchError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{batch_id}/cancel", response_model=BatchStatusResponse)
async def cancel_batch(
    batch_id: str, registry: BatchRegistry = Depends(get_registry)
):
    """
    Stop the batch before its next print unit.

    The unit being printed finishes; what printed so far is kept.
    A batch paused on a failure is answered with abort.
    """
    try:
        run = registry.get(batch_id)
    except BatchError as e:
        raise HTTPException(status_code=404, detail=str(e))

    run.handle.cancel()
    run.oracle.abandon()
    return _status(run)


@router.post("/{batch_id}/decision", response_model=BatchStatusResponse)
async def decide(
    batch_id: str,
    request: DecisionRequest,
    registry: BatchRegistry = Depends(get_registry),
):
    """Answer a paused batch: continue past the failure, or abort."""
    try:
        run = registry.get(batch_id)
    except BatchError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not run.oracle.resolve(request.decision):
        raise HTTPException(
            status_code=409, detail="Batch is not waiting for a decision"
        )
    # Let the batch pick up the decision before reporting
    await asyncio.sleep(0)
    return _status(run)


def _finished(task: asyncio.Task, db) -> None:
    db.close()
    if not task.cancelled() and task.exception() is not None:
        logger.error("Batch task failed: %s", task.exception())
