"""
Navigation of the browser session to each test.

Direct runs simply navigate the page. Proxied runs bootstrap the proxy once
(through the external setup_page routine, which registers the proxy's service
worker) and from then on drive the proxy's own address bar, because the
subject under test is the proxy's browsing surface.
"""

from typing import Callable, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from wpt_diff.data.config import SERVICE_WORKER_WAIT_TIMEOUT, URL_BAR_SELECTOR, URL_BAR_SETTLE_DELAY
from wpt_diff.errors import ProxySetupError
from wpt_diff.models.wpt_models import WptTestRunInfo
from wpt_diff.net.www.chrome.chrome_tab_loading import wait_for_page_load
from wpt_diff.net.www.chrome.harness_injection import HarnessObserverInjector
from wpt_diff.runner.run_session import ProxySessionState, RunSession

# setup_page(page, url) -> FrameLocator
SetupPage = Callable[[object, str], object]


def enter_new_url(page, url: str, logger):
    """Navigates the proxied frame by typing the URL into the proxy's address bar."""
    logger.debug(f"Navigating to {url} in the proxy frame through the URL bar")
    bar = page.locator(URL_BAR_SELECTOR)
    bar.fill(url)
    bar.press("Enter")
    page.wait_for_timeout(URL_BAR_SETTLE_DELAY * 1000)


def make_default_setup_page(proxy_url: str, logger) -> SetupPage:
    """
    Builds the default proxy bootstrap: open the proxy's front page and enter the first URL.

    Args:
        proxy_url: Address of the proxy's front page.
        logger: WptLogger.

    Returns:
        SetupPage: A setup_page(page, url) routine returning the proxy iframe.
    """

    def setup_page(page, url: str):
        logger.debug(f"Opening the proxy at {proxy_url}")
        page.goto(proxy_url)
        wait_for_page_load(page)
        bar = page.locator(URL_BAR_SELECTOR)
        bar.fill(url)
        bar.press("Enter")
        return page.frame_locator("iframe").first

    return setup_page


class SessionDriver:
    """
    Drives the single page of a run to each test.

    The proxied session moves NOT_STARTED -> PROXY_BOOTSTRAPPED on the first
    test and PROXY_BOOTSTRAPPED -> READY once that first page has loaded. It is
    never torn down for the rest of the run.
    """

    def __init__(self, page, context, session: RunSession, under_proxy: bool, body_addition: str, logger,
                 setup_page: Optional[SetupPage] = None,
                 service_worker_timeout: float = SERVICE_WORKER_WAIT_TIMEOUT):
        if under_proxy and setup_page is None:
            raise ValueError("A setup_page routine is required to run under a proxy")
        self.page = page
        self.context = context
        self.session = session
        self.under_proxy = under_proxy
        self.log = logger
        self.setup_page = setup_page
        self.service_worker_timeout = service_worker_timeout
        self.harness_injector = HarnessObserverInjector(body_addition, logger) if under_proxy else None

    def navigate(self, test_info: WptTestRunInfo):
        """Navigates to the test and waits for it to load."""
        if not self.under_proxy:
            self.page.goto(test_info.raw_full_url, wait_until="commit")
            wait_for_page_load(self.page)
            return

        # The observer is scoped to a document, so it has to be in place for every new one
        self.harness_injector.prepare_navigation(self.page)

        if not self.session.proxy_initialized:
            self.setup_first_time(test_info.raw_full_url)
        else:
            enter_new_url(self.page, test_info.raw_full_url, self.log)

        wait_for_page_load(self.page)
        self.session.proxy_state = ProxySessionState.READY

    def setup_first_time(self, url: str):
        """
        Bootstraps the proxy session with the first test URL.

        Raises:
            ProxySetupError: If the setup routine fails, or no service worker shows up in the browser context.
        """
        self.log.debug(f"Setting up the proxy and its service worker for the first time with {url}")
        try:
            self.setup_page(self.page, url)
        except Exception as e:
            raise ProxySetupError(f"Failed to set up the proxy: {e}") from e

        if not self.context.service_workers:
            try:
                self.context.wait_for_event("serviceworker", timeout=self.service_worker_timeout * 1000)
            except PlaywrightTimeoutError as e:
                raise ProxySetupError("Failed to find any service workers in the browser context") from e

        self.session.proxy_state = ProxySessionState.PROXY_BOOTSTRAPPED
        self.log.debug("The proxy service worker is up")
