from enum import Enum
from typing import Callable, List, Optional

from wpt_diff.models.wpt_models import ResultsTable, SubtestResult


class ProxySessionState(Enum):
    """Lifecycle of the proxied browser session. Direct runs stay NOT_STARTED."""
    NOT_STARTED = "not_started"
    PROXY_BOOTSTRAPPED = "proxy_bootstrapped"
    READY = "ready"


class TestCompletion:
    """One-shot completion signal of the test currently in flight."""
    __test__ = False

    def __init__(self):
        self.done = False

    def set(self):
        self.done = True


class RunSession:
    """
    Mutable state of one run, owned by the test runner.

    Holds the results table and the single "current test" slot the collector
    attributes incoming results to. Only one test may be armed at a time.
    """

    def __init__(self, results: Optional[ResultsTable] = None):
        self.results: ResultsTable = results if results is not None else {}
        self.current_test_path: Optional[str] = None
        self._on_complete: Optional[Callable[[], None]] = None
        self.proxy_state = ProxySessionState.NOT_STARTED
        self.shutting_down = False

    @property
    def proxy_initialized(self) -> bool:
        return self.proxy_state is not ProxySessionState.NOT_STARTED

    def arm(self, test_path: str, on_complete: Callable[[], None]):
        if self._on_complete is not None:
            raise RuntimeError(
                f"Cannot start {test_path} while {self.current_test_path} is still waiting for results")
        self.current_test_path = test_path
        self._on_complete = on_complete

    def disarm(self):
        self.current_test_path = None
        self._on_complete = None

    def has_results(self, test_path: str) -> bool:
        return test_path in self.results

    def record(self, test_path: str, results: List[SubtestResult]) -> bool:
        """
        Stores the results of a test. The first write for a path wins.

        Returns:
            bool: False if the path already had results and nothing was written.
        """
        if test_path in self.results:
            return False
        self.results[test_path] = results
        return True

    def complete(self, test_path: str):
        """Fires and clears the completion callback if it belongs to test_path."""
        if self.current_test_path != test_path or self._on_complete is None:
            return
        on_complete = self._on_complete
        self._on_complete = None
        on_complete()
