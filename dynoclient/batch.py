"""
Batch execution of one command against many daemons.

Every host gets its own worker; all are dispatched before any is awaited
and all are awaited even when some fail. The first failure, in completion
order, becomes the batch's error once the last host is done.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from loguru import logger

from config import settings
from .commands.base import Command
from .endpoint import Endpoint, parse_hosts
from .errors import BatchError, DynoClientError
from .invoker import InvocationOutcome, invoke


class BatchState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    DONE = "done"


@dataclass
class HostOutcome:
    """Result slot of one host: an outcome or the error it failed with.

    Errors that are not DynoClientError are wrapped in one, with the
    original as ``__cause__``.
    """

    endpoint: Endpoint
    outcome: Optional[InvocationOutcome] = None
    error: Optional[DynoClientError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is not None


class BatchResult:
    """Per-host outcomes in submission order."""

    def __init__(self, endpoints: List[Endpoint]) -> None:
        self.hosts: List[HostOutcome] = [HostOutcome(ep) for ep in endpoints]
        self.first_error: Optional[DynoClientError] = None

    def __len__(self) -> int:
        return len(self.hosts)

    def __iter__(self):
        return iter(self.hosts)

    @property
    def failed(self) -> List[HostOutcome]:
        return [h for h in self.hosts if h.error is not None]

    @property
    def succeeded(self) -> List[HostOutcome]:
        return [h for h in self.hosts if h.ok]

    @property
    def ok(self) -> bool:
        return self.first_error is None


OutcomeCallback = Callable[[HostOutcome], None]


class BatchCoordinator:
    """Fan a command out to N hosts and join on all of them.

    ``max_workers`` bounds the thread pool; by default every host gets its
    own thread so all invocations run concurrently.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
        on_outcome: Optional[OutcomeCallback] = None,
        invoke_fn: Callable[..., InvocationOutcome] = invoke,
    ) -> None:
        if max_workers is None:
            max_workers = settings.batch_max_workers
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.max_workers = max_workers
        self.timeout = timeout
        self.on_outcome = on_outcome
        self._invoke = invoke_fn
        self._lock = threading.Lock()
        self.state = BatchState.IDLE
        self.dispatched = 0
        self.completed = 0

    def _set_state(self, state: BatchState) -> None:
        with self._lock:
            self.state = state
        logger.debug(f"Batch state -> {state.value}")

    def run(self, hosts: Iterable[Union[str, Endpoint]], command: Command) -> BatchResult:
        """Run ``command`` on every host; raise BatchError if any host failed."""
        endpoints = _normalize(hosts)
        if not endpoints:
            raise ValueError("No hosts given")

        result = BatchResult(endpoints)
        self.dispatched = 0
        self.completed = 0
        workers = self.max_workers or len(endpoints)
        logger.info(
            f"Batch {command.name}: {len(endpoints)} hosts, {min(workers, len(endpoints))} workers"
        )

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dyno-batch") as executor:
            self._set_state(BatchState.DISPATCHING)
            future_to_index = {}
            for i, endpoint in enumerate(endpoints):
                future = executor.submit(self._invoke, endpoint, command, self.timeout)
                future_to_index[future] = i
                self.dispatched += 1

            self._set_state(BatchState.AWAITING)
            for future in as_completed(future_to_index):
                slot = result.hosts[future_to_index[future]]
                try:
                    slot.outcome = future.result()
                except DynoClientError as e:
                    slot.error = e
                except Exception as e:
                    logger.exception(f"{slot.endpoint}: unexpected error in {command.name}")
                    slot.error = DynoClientError(f"Unexpected error: {e!r}", slot.endpoint)
                    slot.error.__cause__ = e
                if slot.error is not None and result.first_error is None:
                    result.first_error = slot.error
                self.completed += 1
                if self.on_outcome is not None:
                    try:
                        self.on_outcome(slot)
                    except Exception:
                        # Reporting one host must not stop the join on the others
                        logger.exception(f"{slot.endpoint}: outcome callback failed")

        self._set_state(BatchState.DONE)
        logger.info(
            f"Batch {command.name} done: {len(result.succeeded)} ok, {len(result.failed)} failed"
        )
        if result.first_error is not None:
            raise BatchError(result.first_error, result) from result.first_error
        return result


def _normalize(hosts) -> List[Endpoint]:
    """Parse every host spec up front so a typo dispatches nothing."""
    endpoints: List[Endpoint] = []
    for host in hosts:
        if isinstance(host, Endpoint):
            endpoints.append(host)
        else:
            endpoints.extend(parse_hosts([host]))
    return endpoints
