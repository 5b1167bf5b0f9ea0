"""Timeout-bounded execution of callables in a killable worker process."""

import multiprocessing
import pickle
import time
import traceback
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from typefuzz.fuzzer.base_interfaces import BaseExecutor, SandboxError
from typefuzz.utils.logger import get_logger

logger = get_logger(__name__)

# Seconds to wait for a worker to exit after a shutdown request
_SHUTDOWN_GRACE = 1.0


@dataclass
class ExecutionOutcome:
    """Outcome of one sandboxed call."""
    value: Any = None
    exception: bool = False
    exception_type: Optional[str] = None
    message: Optional[str] = None
    stack: Optional[str] = None
    timeout: bool = False
    elapsed_time: float = 0.0  # ms


def _worker_main(conn, target: Callable) -> None:
    """Worker loop: receive argument lists, call the target, send replies."""
    while True:
        try:
            args = conn.recv()
        except EOFError:
            break
        if args is None:
            break

        start = time.perf_counter()
        try:
            value = target(*args)
            reply = ("value", value, (time.perf_counter() - start) * 1000)
        except BaseException as e:  # the target may raise anything, SystemExit included
            reply = (
                "exception",
                type(e).__name__,
                str(e),
                traceback.format_exc(),
                (time.perf_counter() - start) * 1000,
            )

        try:
            conn.send(reply)
        except Exception as e:
            conn.send((
                "exception",
                type(e).__name__,
                f"Return value could not be transferred: {e}",
                traceback.format_exc(),
                reply[-1],
            ))


def _default_context():
    if "fork" in multiprocessing.get_all_start_methods():
        return multiprocessing.get_context("fork")
    return multiprocessing.get_context("spawn")


class ExecutionSandbox(BaseExecutor):
    """Runs a callable in a worker process with a hard per-call timeout.

    The worker is started lazily and reused across calls. When a call
    exceeds its budget the worker is killed and a fresh one replaces it on
    the next call. Errors raised by the callable are returned as outcomes
    and never propagate.
    """

    def __init__(self, target: Callable, timeout_ms: float, name: Optional[str] = None,
                 context: Optional[Any] = None):
        """Initialize the sandbox.

        Args:
            target: Callable to host
            timeout_ms: Wall-clock budget per call in milliseconds
            name: Name used in log messages
            context: multiprocessing context; fork where available, else spawn

        Raises:
            SandboxError: If the target cannot be hosted
        """
        if not callable(target):
            raise SandboxError(f"Cannot sandbox non-callable object: {target!r}")
        if timeout_ms is None or timeout_ms <= 0:
            raise SandboxError(f"Timeout must be positive, got {timeout_ms!r}")

        self.target = target
        self.timeout_ms = timeout_ms
        self.name = name or getattr(target, "__name__", repr(target))
        self._ctx = context or _default_context()

        if self._ctx.get_start_method() != "fork":
            try:
                pickle.dumps(target)
            except (pickle.PicklingError, TypeError, AttributeError) as e:
                raise SandboxError(f"Cannot sandbox {self.name}: {e}") from e

        self._process = None
        self._conn = None
        self.calls = 0
        self.timeouts = 0
        self.restarts = 0

    def __enter__(self) -> 'ExecutionSandbox':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------- workers

    def _ensure_worker(self) -> None:
        if self._process is not None and self._process.is_alive():
            return
        if self._process is not None:
            self._discard_worker()
        if self.calls:
            self.restarts += 1

        parent_conn, child_conn = self._ctx.Pipe()
        process = self._ctx.Process(
            target=_worker_main,
            args=(child_conn, self.target),
            name=f"typefuzz-{self.name}",
            daemon=True,
        )
        process.start()
        child_conn.close()

        self._process = process
        self._conn = parent_conn
        logger.debug(f"Started sandbox worker {process.pid} for {self.name}")

    def _discard_worker(self) -> Optional[int]:
        """Kill the current worker and return its exit code."""
        process, conn = self._process, self._conn
        self._process = None
        self._conn = None
        if conn is not None:
            conn.close()
        if process is None:
            return None
        if process.is_alive():
            process.kill()
        process.join()
        return process.exitcode

    # ----------------------------------------------------------------- calls

    def call(self, args: List[Any]) -> ExecutionOutcome:
        """Invoke the target with positional arguments under the timeout.

        Args:
            args: Argument values, already deep-copied by the caller

        Returns:
            ExecutionOutcome with the value, the exception, or the timeout flag
        """
        self._ensure_worker()
        self.calls += 1
        start = time.perf_counter()

        try:
            self._conn.send(list(args))
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            return ExecutionOutcome(
                exception=True,
                exception_type=type(e).__name__,
                message=f"Arguments could not be transferred: {e}",
                stack=traceback.format_exc(),
            )
        except OSError as e:
            exit_code = self._discard_worker()
            return ExecutionOutcome(
                exception=True,
                exception_type=type(e).__name__,
                message=f"Sandbox worker unavailable (exit code {exit_code}): {e}",
            )

        if not self._conn.poll(self.timeout_ms / 1000):
            elapsed = (time.perf_counter() - start) * 1000
            self._discard_worker()
            self.timeouts += 1
            logger.debug(f"{self.name} timed out after {elapsed:.1f}ms")
            return ExecutionOutcome(timeout=True, elapsed_time=elapsed)

        try:
            reply = self._conn.recv()
        except (EOFError, OSError):
            elapsed = (time.perf_counter() - start) * 1000
            exit_code = self._discard_worker()
            return ExecutionOutcome(
                exception=True,
                exception_type="WorkerExit",
                message=f"Sandbox worker exited unexpectedly (exit code {exit_code})",
                elapsed_time=elapsed,
            )
        except (pickle.UnpicklingError, AttributeError, ImportError) as e:
            return ExecutionOutcome(
                exception=True,
                exception_type=type(e).__name__,
                message=f"Return value could not be transferred: {e}",
                elapsed_time=(time.perf_counter() - start) * 1000,
            )

        if reply[0] == "value":
            _, value, elapsed = reply
            return ExecutionOutcome(value=value, elapsed_time=elapsed)

        _, exc_type, message, stack, elapsed = reply
        return ExecutionOutcome(
            exception=True,
            exception_type=exc_type,
            message=message,
            stack=stack,
            elapsed_time=elapsed,
        )

    def close(self) -> None:
        """Ask the worker to exit, killing it if it does not."""
        if self._process is None:
            return
        try:
            self._conn.send(None)
        except OSError:
            pass  # worker already gone
        self._process.join(_SHUTDOWN_GRACE)
        self._discard_worker()
