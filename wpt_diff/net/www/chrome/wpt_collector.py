from typing import Any, Callable, List, Optional

from wpt_diff.data.config import BRIDGE_FUNCTION_NAME
from wpt_diff.models.wpt_models import SubtestResult, SubtestStatus
from wpt_diff.net.www.chrome.harness_injection import PARENT_MESSAGE_LISTENER, completion_callback_script
from wpt_diff.runner.run_session import RunSession


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def parse_subtests(tests: Any) -> List[SubtestResult]:
    """
    Converts the tests array handed to a harness completion callback into subtest results.

    Args:
        tests: The (deserialized) array of testharness.js Test objects.

    Returns:
        List[SubtestResult]: One entry per subtest, in harness order.
    """
    subtests = []
    for test in tests or []:
        if not isinstance(test, dict):
            continue
        status = test.get("status")
        subtests.append(SubtestResult(
            name=_optional_text(test.get("name")) or "",
            status=int(status) if isinstance(status, (int, float)) else int(SubtestStatus.NOTRUN),
            message=_optional_text(test.get("message")),
            stack=_optional_text(test.get("stack")),
        ))
    return subtests


class WptCollector:
    """
    Bridges results out of the tested page into the run session.

    Exposes a single function to every JS context of the page. Whatever calls it
    is attributed to the test currently armed in the session.
    """

    def __init__(self, page, session: RunSession, under_proxy: bool, logger):
        self.page = page
        self.session = session
        self.under_proxy = under_proxy
        self.log = logger
        self._started = False

    def start(self):
        """Registers the bridge (and, under a proxy, the parent message listener). Once per session."""
        if self._started:
            return
        self.log.info(f"Exposing the {BRIDGE_FUNCTION_NAME} function to the page")
        self.page.expose_function(BRIDGE_FUNCTION_NAME, self.collect_results)

        if self.under_proxy:
            self.log.debug("Creating the parent listener so the proxy iframe can send its results")
            self.page.add_init_script(PARENT_MESSAGE_LISTENER)
        self._started = True

    def set_current_test(self, test_path: str, on_complete: Callable[[], None]):
        """Attributes the next results to test_path and calls on_complete when they arrive."""
        self.session.arm(test_path, on_complete)

    def get_body_addition(self) -> str:
        """The instrumentation to append to the test harness."""
        return completion_callback_script(self.under_proxy)

    def collect_results(self, tests: Any, harness_status: Any = None):
        """The bridge function called from the page."""
        test_path = self.session.current_test_path
        if test_path is None:
            self.log.warn("Received WPT results while no test was running, dropping them")
            return

        if not self.session.record(test_path, parse_subtests(tests)):
            self.log.debug(f"Dropping a duplicate set of results for {test_path}")
            return

        self.log.debug(f"Collected WPT results for {test_path}")
        self.session.complete(test_path)
