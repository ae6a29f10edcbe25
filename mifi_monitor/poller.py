"""
Polling Lifecycle for the MiFi Monitor
======================================

The Poller owns the two ways the device gets polled:

* auto-refresh: an in-process loop that lives as long as an interactive view
* service: a background loop that keeps running on its own and pushes a
  status summary to a notifier after every cycle

Both are the same PeriodicTask with a different per-cycle hook. At most one
of them runs at a time; starting the service preempts auto-refresh. Each
loop owns its own MifiClient, so Digest nonce-counts are never shared
between loops.

Example:
    >>> store = MetricsStore()
    >>> poller = Poller(store, client_factory=lambda: MifiClient(password="admin"))
    >>> poller.start_auto_refresh()
    >>> with store.subscribe() as updates:
    ...     for metrics in updates:
    ...         print(metrics.download_speed)

"""

import logging
import threading
from typing import Callable, Dict, Optional

from .client.main import MifiClient
from .exceptions import MifiConfigurationError
from .models import ERROR_KIND_CONNECTIVITY, Metrics, PollerMode, PollerState
from .notifier import CONNECTING_SUMMARY, LoggingNotifier, StatusNotifier, format_status_summary
from .store import MetricsStore
from .time_utils import epoch_millis

logger = logging.getLogger("mifi-monitor")

DEFAULT_INTERVAL = 1.0
JOIN_TIMEOUT = 25.0

ClientFactory = Callable[[], MifiClient]


class PeriodicTask:
    """
    Runs ``cycle`` on a daemon thread at a fixed interval until stopped.

    Cycles are strictly sequential: the next one starts ``interval`` seconds
    after the previous one finished writing. A cycle that is still in flight
    when the task is cancelled is allowed to finish, but its result is
    dropped; once ``stop`` returns the task never writes to the store again.

    Only the store write runs under the task's write lock. The ``on_cycle``
    hook runs after the lock is released, so it may call back into whatever
    owns the task, including asking it to stop.
    """

    def __init__(
        self,
        name: str,
        cycle: Callable[[], Metrics],
        store: MetricsStore,
        interval: float = DEFAULT_INTERVAL,
        on_cycle: Optional[Callable[[Metrics], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        self.name = name
        self.cycle = cycle
        self.store = store
        self.interval = interval
        self.on_cycle = on_cycle
        self.on_exit = on_exit
        self.cycles = 0
        self._stop_token = threading.Event()
        self._write_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop_token.is_set()

    def start(self) -> None:
        with self._state_lock:
            if self._thread is not None:
                return
            if self._stop_token.is_set():
                logger.debug(f"{self.name} loop was stopped before it started; not starting")
                return
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_token,),
                name=f"mifi-{self.name}",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"▶️ {self.name} loop started (interval {self.interval}s)")

    def cancel(self) -> bool:
        """
        Set the stop token without waiting for anything.

        Safe to call while holding other locks. Returns True for the call
        that actually cancelled the task.
        """
        with self._state_lock:
            if self._stop_token.is_set():
                return False
            self._stop_token.set()
        logger.info(f"⏹️ {self.name} loop stopped after {self.cycles} cycles")
        return True

    def stop(self, wait: bool = False, timeout: Optional[float] = JOIN_TIMEOUT) -> None:
        """
        Cancel the loop and wait out a store write already in progress.

        Args:
            wait: Also wait for an in-flight cycle to finish
            timeout: Upper bound for the wait
        """
        self.cancel()

        # A write that saw the token unset finishes before this returns
        with self._write_lock:
            pass

        if wait:
            self.join(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop thread to exit. Returns True if it has."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run(self, stop_token: threading.Event) -> None:
        try:
            while not stop_token.is_set():
                metrics = self._run_cycle()

                with self._write_lock:
                    if stop_token.is_set():
                        logger.debug(f"{self.name}: dropping result of cycle finished after stop")
                        break
                    self.store.update(metrics)
                    self.cycles += 1

                if self.on_cycle and not stop_token.is_set():
                    try:
                        self.on_cycle(metrics)
                    except Exception as e:
                        logger.error(f"{self.name}: cycle hook failed: {e}")

                # Returns early when stopped
                stop_token.wait(self.interval)
        finally:
            if self.on_exit:
                try:
                    self.on_exit()
                except Exception as e:
                    logger.error(f"{self.name}: cleanup failed: {e}")

    def _run_cycle(self) -> Metrics:
        try:
            return self.cycle()
        except Exception as e:
            # fetch_metrics does not raise; this guards custom cycles
            logger.exception(f"💥 {self.name}: cycle raised {type(e).__name__}")
            return Metrics.failure(f"Connection error: {e}", ERROR_KIND_CONNECTIVITY, timestamp_ms=epoch_millis())


class Poller:
    """
    Lifecycle manager for the auto-refresh and service polling loops.

    All operations return immediately; none waits for a network round trip.
    ``_lock`` guards only the task table: loops are cancelled while it is
    held, and waiting out their last store write happens after it is
    released. Notifiers and store listeners may therefore call back into
    the poller from a loop thread.
    """

    def __init__(
        self,
        store: MetricsStore,
        client_factory: ClientFactory = MifiClient,
        interval: float = DEFAULT_INTERVAL,
        notifier: Optional[StatusNotifier] = None,
    ) -> None:
        """
        Initialize the poller.

        Args:
            store: Store every loop writes into
            client_factory: Builds a fresh MifiClient for each loop
            interval: Seconds between the end of one cycle and the next
            notifier: Receives the status summary in service mode

        Raises:
            MifiConfigurationError: If interval is not positive
        """
        if interval <= 0:
            raise MifiConfigurationError(
                "Polling interval must be greater than 0",
                details={"parameter": "interval", "value": interval},
            )

        self.store = store
        self.client_factory = client_factory
        self.interval = interval
        self.notifier = notifier if notifier is not None else LoggingNotifier()

        self._lock = threading.RLock()
        self._tasks: Dict[PollerMode, PeriodicTask] = {}
        self._manual_client: Optional[MifiClient] = None
        self._manual_lock = threading.Lock()
        self._loading = 0
        self._loading_lock = threading.Lock()

    @property
    def state(self) -> PollerState:
        with self._lock:
            if self._is_running(PollerMode.BACKGROUND):
                return PollerState.RUNNING_BACKGROUND
            if self._is_running(PollerMode.IN_PROCESS):
                return PollerState.RUNNING_IN_PROCESS
            return PollerState.IDLE

    @property
    def is_loading(self) -> bool:
        """True while a manual refresh is in flight."""
        with self._loading_lock:
            return self._loading > 0

    def task(self, mode: PollerMode) -> Optional[PeriodicTask]:
        """The task currently registered for ``mode``, if any."""
        with self._lock:
            return self._tasks.get(mode)

    def start_auto_refresh(self) -> None:
        """Start the in-process loop unless a loop is already feeding the store."""
        with self._lock:
            if self._is_running(PollerMode.BACKGROUND):
                logger.info("Service is running; auto-refresh not started")
                return
            if self._is_running(PollerMode.IN_PROCESS):
                logger.debug("Auto-refresh already running")
                return
            self._start(PollerMode.IN_PROCESS)

    def stop_auto_refresh(self) -> None:
        """Stop the in-process loop. No-op when it is not running."""
        with self._lock:
            task = self._cancel(PollerMode.IN_PROCESS)
        if task is not None:
            task.stop()

    def start_service(self) -> None:
        """Start the background loop, preempting auto-refresh first."""
        preempted = None
        with self._lock:
            if self._is_running(PollerMode.BACKGROUND):
                logger.debug("Service already running")
                return
            if self._is_running(PollerMode.IN_PROCESS):
                logger.info("🔀 Service taking over from auto-refresh")
                preempted = self._cancel(PollerMode.IN_PROCESS)

            self._publish(CONNECTING_SUMMARY, None)
            self._start(PollerMode.BACKGROUND, on_cycle=self._notify)

        if preempted is not None:
            preempted.stop()

    def stop_service(self) -> None:
        """Stop the background loop and release the notifier. No-op when idle."""
        with self._lock:
            task = self._cancel(PollerMode.BACKGROUND)
        if task is None:
            return
        task.stop()

        close = getattr(self.notifier, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logger.error(f"Notifier cleanup failed: {e}")

    def load_metrics(self) -> threading.Thread:
        """
        Fetch once on a worker thread and store the result.

        Works in any state and does not change it. ``is_loading`` is True
        until the result has been stored.

        Returns:
            The worker thread, for callers that want to join it
        """
        with self._loading_lock:
            self._loading += 1
        worker = threading.Thread(target=self._load_in_background, name="mifi-refresh", daemon=True)
        worker.start()
        return worker

    def refresh_now(self) -> Metrics:
        """Fetch once on the calling thread, store and return the result."""
        with self._loading_lock:
            self._loading += 1
        try:
            return self._refresh()
        finally:
            self._loading_done()

    def close(self) -> None:
        """Stop every loop and close the manual-refresh client."""
        self.stop_auto_refresh()
        self.stop_service()

        with self._manual_lock:
            if self._manual_client is not None:
                self._manual_client.close()
                self._manual_client = None

    def __enter__(self) -> "Poller":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _load_in_background(self) -> None:
        try:
            self._refresh()
        except Exception as e:
            logger.exception(f"💥 Manual refresh failed: {e}")
        finally:
            self._loading_done()

    def _refresh(self) -> Metrics:
        with self._manual_lock:
            if self._manual_client is None:
                self._manual_client = self.client_factory()
            metrics = self._manual_client.fetch_metrics()

        self.store.update(metrics)
        return metrics

    def _loading_done(self) -> None:
        with self._loading_lock:
            self._loading -= 1

    def _is_running(self, mode: PollerMode) -> bool:
        task = self._tasks.get(mode)
        return task is not None and task.running

    def _start(self, mode: PollerMode, on_cycle: Optional[Callable[[Metrics], None]] = None) -> PeriodicTask:
        client = self.client_factory()
        task = PeriodicTask(
            name="service" if mode is PollerMode.BACKGROUND else "auto-refresh",
            cycle=client.fetch_metrics,
            store=self.store,
            interval=self.interval,
            on_cycle=on_cycle,
            on_exit=client.close,
        )
        self._tasks[mode] = task
        task.start()
        return task

    def _cancel(self, mode: PollerMode) -> Optional[PeriodicTask]:
        """Unregister and cancel the task for ``mode``. Returns it if it was running."""
        task = self._tasks.pop(mode, None)
        if task is None or not task.cancel():
            return None
        return task

    def _notify(self, metrics: Metrics) -> None:
        self._publish(format_status_summary(metrics), metrics)

    def _publish(self, summary: str, metrics: Optional[Metrics]) -> None:
        try:
            self.notifier(summary, metrics)
        except Exception as e:
            logger.error(f"Notifier failed: {e}")


__all__ = ["ClientFactory", "PeriodicTask", "Poller"]
