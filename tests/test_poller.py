"""Tests for the polling lifecycle."""

import logging
import threading
import time

import pytest

from mifi_monitor.exceptions import MifiConfigurationError
from mifi_monitor.models import Metrics, PollerMode, PollerState
from mifi_monitor.notifier import CONNECTING_SUMMARY, format_status_summary
from mifi_monitor.poller import PeriodicTask, Poller
from mifi_monitor.store import MetricsStore

INTERVAL = 0.01


def wait_for(predicate, timeout=3.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FakeClient:
    """Stands in for MifiClient; returns scripted snapshots."""

    def __init__(self, label="fake", results=None, gate=None):
        self.label = label
        self.results = list(results or [])
        self.gate = gate
        self.calls = 0
        self.closed = False

    def fetch_metrics(self):
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.results:
            return self.results.pop(0)
        return Metrics(is_connected=True, operator_name=self.label, battery_percent=self.calls)

    def close(self):
        self.closed = True


class FakeFactory:
    """Hands out prepared clients in order, then fresh default ones."""

    def __init__(self, *clients):
        self.pending = list(clients)
        self.created = []

    def __call__(self):
        client = self.pending.pop(0) if self.pending else FakeClient()
        self.created.append(client)
        return client


class RecordingNotifier:
    def __init__(self):
        self.summaries = []
        self.closed = 0

    def __call__(self, summary, metrics):
        self.summaries.append(summary)

    def close(self):
        self.closed += 1


@pytest.fixture
def store():
    return MetricsStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.mark.unit
@pytest.mark.poller
class TestPollerLifecycle:
    """Test state transitions and exclusivity of the two loops."""

    def test_initial_state_is_idle(self, store):
        poller = Poller(store, client_factory=FakeFactory(), interval=INTERVAL)

        assert poller.state is PollerState.IDLE
        assert poller.state.mode is None

    def test_invalid_interval(self, store):
        with pytest.raises(MifiConfigurationError):
            Poller(store, client_factory=FakeFactory(), interval=0)

    def test_auto_refresh_feeds_store(self, store, notifier):
        factory = FakeFactory(FakeClient("in-process"))
        with Poller(store, client_factory=factory, interval=INTERVAL, notifier=notifier) as poller:
            poller.start_auto_refresh()

            assert poller.state is PollerState.RUNNING_IN_PROCESS
            assert wait_for(lambda: store.update_count >= 3)
            assert store.current().operator_name == "in-process"

            poller.stop_auto_refresh()
            assert poller.state is PollerState.IDLE

        # The in-process loop never notifies
        assert notifier.summaries == []

    def test_start_auto_refresh_twice_keeps_one_loop(self, store):
        factory = FakeFactory()
        with Poller(store, client_factory=factory, interval=INTERVAL) as poller:
            poller.start_auto_refresh()
            poller.start_auto_refresh()

            assert len(factory.created) == 1

    def test_stop_when_idle_is_noop(self, store, notifier):
        poller = Poller(store, client_factory=FakeFactory(), interval=INTERVAL, notifier=notifier)

        poller.stop_auto_refresh()
        poller.stop_service()
        poller.stop_service()

        assert poller.state is PollerState.IDLE
        assert notifier.closed == 0

    def test_service_publishes_connecting_then_summaries(self, store, notifier):
        factory = FakeFactory(FakeClient("service"))
        with Poller(store, client_factory=factory, interval=INTERVAL, notifier=notifier) as poller:
            poller.start_service()

            assert poller.state is PollerState.RUNNING_BACKGROUND
            assert wait_for(lambda: len(notifier.summaries) >= 3)

            poller.stop_service()
            assert poller.state is PollerState.IDLE

        assert notifier.summaries[0] == CONNECTING_SUMMARY
        assert notifier.summaries[1].startswith("🔋 1%")
        assert notifier.closed == 1

    def test_service_preempts_auto_refresh_without_late_writes(self, store, notifier):
        """The preempted loop's in-flight cycle never reaches the store."""
        gate = threading.Event()
        in_process_client = FakeClient("in-process", gate=gate)
        factory = FakeFactory(in_process_client, FakeClient("service"))
        written = []
        store.add_listener(lambda metrics: written.append(metrics.operator_name))

        with Poller(store, client_factory=factory, interval=INTERVAL, notifier=notifier) as poller:
            poller.start_auto_refresh()
            in_process_task = poller.task(PollerMode.IN_PROCESS)
            assert wait_for(lambda: in_process_client.calls == 1)

            poller.start_service()
            assert poller.state is PollerState.RUNNING_BACKGROUND
            assert poller.task(PollerMode.IN_PROCESS) is None

            # Let the blocked cycle finish after it was cancelled
            gate.set()
            assert in_process_task.join(timeout=3)
            assert wait_for(lambda: "service" in written)

        assert "in-process" not in written
        assert in_process_task.cycles == 0
        assert in_process_client.closed is True

    def test_auto_refresh_not_started_while_service_runs(self, store):
        factory = FakeFactory()
        with Poller(store, client_factory=factory, interval=INTERVAL) as poller:
            poller.start_service()
            poller.start_auto_refresh()

            assert poller.state is PollerState.RUNNING_BACKGROUND
            assert poller.task(PollerMode.IN_PROCESS) is None
            assert len(factory.created) == 1

    def test_each_loop_gets_its_own_client(self, store):
        factory = FakeFactory()
        with Poller(store, client_factory=factory, interval=INTERVAL) as poller:
            poller.start_auto_refresh()
            poller.start_service()

        assert len(factory.created) == 2
        assert factory.created[0] is not factory.created[1]

    def test_failures_do_not_stop_the_loop(self, store, notifier):
        failing = FakeClient(
            "service",
            results=[
                Metrics.failure("Connection error: down", "connectivity"),
                Metrics.failure("Parsing error: bad", "parsing"),
            ],
        )
        factory = FakeFactory(failing)
        with Poller(store, client_factory=factory, interval=INTERVAL, notifier=notifier) as poller:
            poller.start_service()
            assert wait_for(lambda: store.update_count >= 3)

        assert notifier.summaries[1] == "Connection error: down"
        assert notifier.summaries[2] == "Parsing error: bad"
        assert failing.calls >= 3

    def test_stop_closes_loop_client(self, store):
        client = FakeClient()
        with Poller(store, client_factory=FakeFactory(client), interval=INTERVAL) as poller:
            poller.start_auto_refresh()
            task = poller.task(PollerMode.IN_PROCESS)
            poller.stop_auto_refresh()
            assert task.join(timeout=3)

        assert client.closed is True

    def test_notifier_can_stop_loops_while_service_is_stopping(self, store):
        """A notifier calling back into the poller does not block stop_service."""
        in_hook = threading.Event()
        holder = {}

        class StoppingNotifier(RecordingNotifier):
            def __call__(self, summary, metrics):
                super().__call__(summary, metrics)
                if metrics is not None and not in_hook.is_set():
                    in_hook.set()
                    time.sleep(0.3)
                    holder["poller"].stop_auto_refresh()

        notifier = StoppingNotifier()
        poller = Poller(store, client_factory=FakeFactory(), interval=INTERVAL, notifier=notifier)
        holder["poller"] = poller
        poller.start_service()
        assert in_hook.wait(3)

        done = threading.Event()

        def stop_service():
            poller.stop_service()
            done.set()

        threading.Thread(target=stop_service, daemon=True).start()

        assert done.wait(3)
        assert poller.state is PollerState.IDLE
        assert notifier.closed == 1
        poller.close()

    def test_store_listener_can_read_state_while_service_is_stopping(self, store, notifier):
        """Listeners run inside the store write and may still query the poller."""
        in_listener = threading.Event()
        seen = []
        holder = {}

        def listener(metrics):
            if not in_listener.is_set():
                in_listener.set()
                time.sleep(0.3)
                seen.append(holder["poller"].state)

        store.add_listener(listener)
        poller = Poller(store, client_factory=FakeFactory(), interval=INTERVAL, notifier=notifier)
        holder["poller"] = poller
        poller.start_service()
        assert in_listener.wait(3)

        done = threading.Event()

        def stop_service():
            poller.stop_service()
            done.set()

        threading.Thread(target=stop_service, daemon=True).start()

        assert done.wait(3)
        assert len(seen) == 1
        poller.close()


@pytest.mark.unit
@pytest.mark.poller
class TestManualRefresh:
    """Test one-off fetches outside the loops."""

    def test_load_metrics_when_idle(self, store):
        factory = FakeFactory(FakeClient("manual"))
        poller = Poller(store, client_factory=factory, interval=INTERVAL)

        worker = poller.load_metrics()
        worker.join(timeout=3)

        assert store.current().operator_name == "manual"
        assert poller.state is PollerState.IDLE
        poller.close()
        assert factory.created[0].closed is True

    def test_refresh_now_reuses_manual_client(self, store):
        factory = FakeFactory()
        with Poller(store, client_factory=factory, interval=INTERVAL) as poller:
            poller.refresh_now()
            metrics = poller.refresh_now()

        assert metrics.battery_percent == 2
        assert len(factory.created) == 1

    def test_load_metrics_does_not_change_running_state(self, store):
        with Poller(store, client_factory=FakeFactory(), interval=INTERVAL) as poller:
            poller.start_auto_refresh()
            poller.load_metrics().join(timeout=3)

            assert poller.state is PollerState.RUNNING_IN_PROCESS

    def test_is_loading_while_manual_refresh_runs(self, store):
        gate = threading.Event()
        client = FakeClient("manual", gate=gate)
        with Poller(store, client_factory=FakeFactory(client), interval=INTERVAL) as poller:
            assert poller.is_loading is False

            worker = poller.load_metrics()
            assert wait_for(lambda: client.calls == 1)
            assert poller.is_loading is True
            assert store.update_count == 0

            gate.set()
            worker.join(timeout=3)

            assert poller.is_loading is False
            assert store.current().operator_name == "manual"

    def test_is_loading_cleared_when_refresh_fails(self, store):
        def broken_factory():
            raise RuntimeError("no client")

        poller = Poller(store, client_factory=broken_factory, interval=INTERVAL)

        with pytest.raises(RuntimeError):
            poller.refresh_now()
        poller.load_metrics().join(timeout=3)

        assert poller.is_loading is False
        assert store.update_count == 0


@pytest.mark.unit
@pytest.mark.poller
class TestPeriodicTask:
    """Test the loop itself."""

    def test_interval_is_measured_after_the_cycle(self, store):
        """A slow cycle is not followed by an immediate one."""
        starts = []

        def slow_cycle():
            starts.append(time.time())
            time.sleep(0.05)
            return Metrics()

        task = PeriodicTask("slow", slow_cycle, store, interval=0.1)
        task.start()
        assert wait_for(lambda: len(starts) >= 2)
        task.stop(wait=True, timeout=3)

        assert starts[1] - starts[0] >= 0.14

    def test_raising_cycle_becomes_failure(self, store):
        def broken():
            raise RuntimeError("boom")

        task = PeriodicTask("broken", broken, store, interval=INTERVAL)
        task.start()
        assert wait_for(lambda: store.update_count >= 2)
        task.stop(wait=True, timeout=3)

        current = store.current()
        assert current.is_connected is False
        assert current.error_kind == "connectivity"
        assert "boom" in current.error

    def test_no_writes_after_stop_returns(self, store):
        task = PeriodicTask("busy", Metrics, store, interval=0.001)
        task.start()
        assert wait_for(lambda: store.update_count >= 5)

        task.stop()
        count_at_stop = store.update_count
        assert task.join(timeout=3)

        assert store.update_count == count_at_stop
        assert task.running is False

    def test_stop_is_idempotent(self, store):
        task = PeriodicTask("idle", Metrics, store, interval=INTERVAL)
        task.start()
        assert wait_for(lambda: store.update_count >= 1)

        task.stop(wait=True, timeout=3)
        task.stop(wait=True, timeout=3)

        assert task.running is False
        assert task.cancel() is False

    def test_start_after_stop_does_not_run(self, store, caplog):
        task = PeriodicTask("cancelled", Metrics, store, interval=INTERVAL)
        task.stop()

        with caplog.at_level(logging.DEBUG, logger="mifi-monitor"):
            task.start()
        time.sleep(0.05)

        assert task.running is False
        assert task.cycles == 0
        assert store.update_count == 0
        assert "not starting" in caplog.text
        assert "loop started" not in caplog.text

    def test_cycle_hook_skipped_once_cancelled(self, store):
        """A hook is not called for a write that raced with cancellation."""
        hooked = []
        task = PeriodicTask("hooked", Metrics, store, interval=INTERVAL, on_cycle=hooked.append)
        store.add_listener(lambda metrics: task.cancel())

        task.start()
        assert task.join(timeout=3)

        assert task.cycles == 1
        assert hooked == []

    def test_summary_format(self):
        connected = Metrics(is_connected=True, battery_percent=75, connected_devices=3,
                            download_speed="1.5 MB/s", upload_speed="200.0 KB/s")

        assert format_status_summary(connected) == "🔋 75%  👥 3  ↓1.5 MB/s ↑200.0 KB/s"
        assert format_status_summary(Metrics()) == "Offline"
        assert format_status_summary(Metrics.failure("Connection error: x", "connectivity")) == "Connection error: x"
