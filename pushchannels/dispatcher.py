"""Completion dispatcher: run calls on a worker pool, deliver each outcome exactly once.

Every logical call is tracked by a CallHandle (Created -> Dispatched ->
Completed). Delivery goes through a lock-guarded check, so whichever path
finishes first (worker, early cancel, shutdown) wins and the completion runs
once. Retry-eligible error statuses get a single-use RetryTicket; redeeming
it starts a new attempt from the same RequestDescriptor.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable

from pushchannels.classifier import classify
from pushchannels.models import (
    ErrorStatus,
    Operation,
    Outcome,
    RequestDescriptor,
    Status,
    StatusCategory,
)
from pushchannels.transport.base import CancellationToken, RawResult, Transport
from pushchannels.validation import mask_token

logger = logging.getLogger(__name__)

CompletionExecutor = Callable[[Callable[[], None]], Any]


class CallState(str, Enum):
    CREATED = "created"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"


class CallHandle:
    """Caller-side view of one attempt: cancel it, wait for it, read its outcome."""

    def __init__(
        self,
        operation: Operation,
        attempt: int = 1,
        on_early_cancel: Callable[[], None] | None = None,
    ) -> None:
        self.operation = operation
        self.attempt = attempt
        self.cancel_token = CancellationToken()
        self.state = CallState.CREATED
        self.outcome: Outcome | None = None
        self._future: Future | None = None
        self._on_early_cancel = on_early_cancel
        self._lock = threading.Lock()
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the completion has been invoked; False on timeout."""
        return self._done.wait(timeout)

    def cancel(self) -> bool:
        """Ask for cancellation; False if the call already completed."""
        if self.done:
            return False
        self.cancel_token.cancel()
        future = self._future
        if future is not None and future.cancel() and self._on_early_cancel is not None:
            # never reached a worker; nobody else will deliver
            self._on_early_cancel()
        return True

    def attach(self, future: Future) -> None:
        """Record the pool future running this attempt."""
        self._future = future

    def claim(self, outcome: Outcome) -> bool:
        """Mark completed with outcome; False if another path got there first."""
        with self._lock:
            if self.state is CallState.COMPLETED:
                return False
            self.state = CallState.COMPLETED
            self.outcome = outcome
            return True

    def finish(self) -> None:
        """Completion has run; release waiters."""
        self._done.set()


class RetryTicket:
    """Single-use permission to reissue a request with the original completion."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        request: RequestDescriptor,
        completion: Callable[..., Any],
        attempt: int,
    ) -> None:
        self._dispatcher = dispatcher
        self._request = request
        self._completion = completion
        self._attempt = attempt
        self._lock = threading.Lock()
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    def redeem(self) -> CallHandle | None:
        with self._lock:
            if self._used:
                logger.warning(
                    "retry ignored: %s status from attempt %s is stale (already retried)",
                    self._request.operation.value,
                    self._attempt,
                )
                return None
            self._used = True
        return self._dispatcher.reissue(self._request, self._completion, self._attempt + 1)


def _cancelled_outcome(operation: Operation, message: str) -> Outcome:
    return Outcome(
        status=ErrorStatus(operation=operation, category=StatusCategory.CANCELLED, message=message)
    )


class Dispatcher:
    """Runs requests through a transport on a thread pool.

    completion_executor, when given, receives a zero-argument callable for
    every delivery (e.g. ThreadPoolExecutor.submit or a GUI loop's
    call_soon_threadsafe); otherwise completions run on the worker thread.
    """

    def __init__(
        self,
        transport: Transport,
        max_workers: int = 4,
        auto_retries: int = 0,
        retry_delay: float = 0.0,
        completion_executor: CompletionExecutor | None = None,
    ) -> None:
        self.transport = transport
        self.auto_retries = auto_retries
        self.retry_delay = retry_delay
        self.completion_executor = completion_executor
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pushchannels")

    def dispatch(
        self,
        request: RequestDescriptor,
        completion: Callable[..., Any],
        attempt: int = 1,
    ) -> CallHandle:
        handle = CallHandle(
            request.operation,
            attempt,
            on_early_cancel=lambda: self._deliver(
                handle, request, _cancelled_outcome(request.operation, "request cancelled"), completion
            ),
        )
        logger.info(
            "push %s dispatch request_id=%s attempt=%s token=%s channels=%s",
            request.operation.value,
            request.request_id,
            attempt,
            mask_token(request.token),
            list(request.channels or ()),
        )
        handle.state = CallState.DISPATCHED
        try:
            handle.attach(self._executor.submit(self._run, handle, request, completion))
        except RuntimeError as e:
            logger.error("push %s not dispatched: %s", request.operation.value, e)
            self._deliver(handle, request, _cancelled_outcome(request.operation, "dispatcher is shut down"), completion)
        return handle

    def reissue(
        self,
        request: RequestDescriptor,
        completion: Callable[..., Any],
        attempt: int,
    ) -> CallHandle:
        """Run the same descriptor again as a new attempt."""
        logger.info(
            "push %s retry request_id=%s attempt=%s",
            request.operation.value,
            request.request_id,
            attempt,
        )
        return self.dispatch(request, completion, attempt)

    def deliver(
        self,
        operation: Operation,
        status: Status,
        completion: Callable[..., Any],
    ) -> CallHandle:
        """Deliver a status that needs no network call (e.g. validation failure)."""
        handle = CallHandle(operation)
        self._deliver(handle, None, Outcome(status=status), completion)
        return handle

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _execute(self, handle: CallHandle, request: RequestDescriptor) -> RawResult:
        try:
            raw = self.transport.execute(request, handle.cancel_token)
        except Exception as e:
            logger.exception("push %s transport raised: %s", request.operation.value, e)
            raw = RawResult.transport_failure("transport", str(e))
        if handle.cancel_token.cancelled and not raw.cancelled:
            raw = RawResult.cancellation()
        return raw

    def _run(self, handle: CallHandle, request: RequestDescriptor, completion: Callable[..., Any]) -> None:
        retries_left = self.auto_retries
        try:
            while True:
                outcome = classify(request, self._execute(handle, request))
                status = outcome.status
                if status.category is not StatusCategory.NETWORK or retries_left <= 0:
                    break
                retries_left -= 1
                logger.info(
                    "push %s network failure (%s), auto-retry in %.1fs (%s left)",
                    request.operation.value,
                    getattr(status, "message", ""),
                    self.retry_delay,
                    retries_left,
                )
                if handle.cancel_token.wait(self.retry_delay):
                    outcome = _cancelled_outcome(request.operation, "request cancelled")
                    break
        except Exception as e:
            logger.exception("push %s classification failed: %s", request.operation.value, e)
            outcome = Outcome(
                status=ErrorStatus(
                    operation=request.operation,
                    category=StatusCategory.MALFORMED_RESPONSE,
                    message=str(e),
                )
            )
        self._deliver(handle, request, outcome, completion)

    def _bind(
        self,
        handle: CallHandle,
        request: RequestDescriptor | None,
        outcome: Outcome,
        completion: Callable[..., Any],
    ) -> Outcome:
        status = outcome.status
        if not isinstance(status, ErrorStatus):
            return outcome
        ticket = None
        if status.retryable and request is not None:
            ticket = RetryTicket(self, request, completion, handle.attempt)
        status = dataclasses.replace(status, attempt=handle.attempt, _ticket=ticket)
        return dataclasses.replace(outcome, status=status)

    def _deliver(
        self,
        handle: CallHandle,
        request: RequestDescriptor | None,
        outcome: Outcome,
        completion: Callable[..., Any],
    ) -> None:
        outcome = self._bind(handle, request, outcome, completion)
        if not handle.claim(outcome):
            logger.debug("push %s outcome already delivered, dropping duplicate", handle.operation.value)
            return

        status = outcome.status
        if status.is_error:
            logger.warning(
                "push %s failed attempt=%s category=%s retryable=%s: %s",
                handle.operation.value,
                handle.attempt,
                status.category.value,
                status.retryable,
                getattr(status, "message", ""),
            )
        else:
            logger.info("push %s completed attempt=%s", handle.operation.value, handle.attempt)

        def invoke() -> None:
            try:
                if handle.operation is Operation.AUDIT:
                    completion(outcome.result, status)
                else:
                    completion(status)
            except Exception as e:
                logger.exception("push %s completion raised: %s", handle.operation.value, e)
            finally:
                handle.finish()

        if self.completion_executor is None:
            invoke()
            return
        try:
            self.completion_executor(invoke)
        except Exception as e:
            logger.exception("push %s completion executor rejected delivery: %s", handle.operation.value, e)
            invoke()
