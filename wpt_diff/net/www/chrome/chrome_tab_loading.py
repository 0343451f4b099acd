import time
from typing import Callable

from wpt_diff.data.config import BROWSER_CLOSED_MARKERS, COMPLETION_POLL_INTERVAL
from wpt_diff.runner.run_session import TestCompletion


def wait_for_page_load(page):
    """Waits for the load lifecycle event of the current document."""
    page.wait_for_load_state("load")


def wait_for_test_completion(page, completion: TestCompletion, timeout: float,
                             clock: Callable[[], float] = time.monotonic,
                             poll_interval: float = COMPLETION_POLL_INTERVAL) -> bool:
    """
    Races the completion signal of a test against a timeout.

    Exposed functions are only dispatched while Playwright is busy waiting, so
    the wait is done in short page.wait_for_timeout() slices rather than by
    blocking the thread.

    Args:
        page: Playwright page the test runs in.
        completion: Signal set by the collector when results arrive.
        timeout: Seconds to wait at most.
        clock: Monotonic clock (injectable for tests).
        poll_interval: Seconds per wait slice.

    Returns:
        bool: True if the test completed, False if it timed out.
    """
    deadline = clock() + timeout
    while not completion.done:
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        page.wait_for_timeout(min(poll_interval, remaining) * 1000)
    return True


def is_browser_closed_error(error: BaseException) -> bool:
    """True if the error says the browser, context or page is gone."""
    message = str(error)
    return any(marker in message for marker in BROWSER_CLOSED_MARKERS)
