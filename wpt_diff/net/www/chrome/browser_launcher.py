from dataclasses import dataclass

from wpt_diff.data.config import BROWSER_ARGS


@dataclass
class BrowserSession:
    """The single browser, context and page a run owns."""
    browser: object
    context: object
    page: object

    def close(self):
        self.browser.close()


def launch_browser(playwright, headless: bool = True, logger=None) -> BrowserSession:
    """
    Launches Chromium with one context and one page.

    Args:
        playwright: A started sync Playwright instance.
        headless: Run without a visible window.
        logger: Optional WptLogger.

    Returns:
        BrowserSession: The launched browser, its context and page.
    """
    if logger:
        logger.debug(f"Launching Chromium (headless={headless})")

    browser = playwright.chromium.launch(headless=headless, args=BROWSER_ARGS)
    context = browser.new_context(ignore_https_errors=True)
    page = context.new_page()
    return BrowserSession(browser=browser, context=context, page=page)
