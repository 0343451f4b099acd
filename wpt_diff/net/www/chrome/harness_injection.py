"""
Getting our completion callback into testharness.js.

Direct runs rewrite the harness script on its way to the page with a route
interceptor. Proxied runs can't do that: the proxy's service worker fetches
the harness itself, out of reach of the browser automation. Instead, an init
script watches every new document for the testharnessreport.js script tag and
splices the callback in right after it.
"""

import json

from wpt_diff.data.config import (
    BRIDGE_FUNCTION_NAME,
    RESULTS_MESSAGE_TYPE,
    TEST_HARNESS_PATH,
    TEST_HARNESS_REPORT_SCRIPT,
)

# Runs inside the proxied test iframe. The results are serialized to a string
# because the proxy's JS rewriting corrupts the objects WPT passes to postMessage.
PROXIED_COMPLETION_CALLBACK = """
console.debug("Proxy subframe WPT completion callback inject added successfully");
add_completion_callback((tests, harness_status) => {
    console.debug("Proxy subframe WPT completion callback inject fired successfully");
    if (window.parent && window.parent !== window)
        window.parent.postMessage(JSON.stringify({
            type: %(message_type)s,
            tests: tests,
            harness_status: harness_status
        }), "*");
});
""" % {"message_type": json.dumps(RESULTS_MESSAGE_TYPE)}

DIRECT_COMPLETION_CALLBACK = """
console.debug("WPT completion callback inject added successfully");
add_completion_callback((tests, harness_status) => {
    console.debug("WPT completion callback inject fired successfully");
    window.%(bridge)s(tests, harness_status);
});
""" % {"bridge": BRIDGE_FUNCTION_NAME}

# Runs in the top-level proxy page and forwards the iframe's results to the bridge
PARENT_MESSAGE_LISTENER = """
window.addEventListener("message", (event) => {
    const rawData = event.data;
    if (typeof rawData !== "string")
        return;
    let data;
    try {
        data = JSON.parse(rawData);
    } catch (err) {
        return;
    }
    if (data && data.type === %(message_type)s) {
        console.debug("Forwarding the WPT results to the function on the parent");
        window.%(bridge)s(data.tests, data.harness_status);
    }
});
""" % {"message_type": json.dumps(RESULTS_MESSAGE_TYPE), "bridge": BRIDGE_FUNCTION_NAME}

HARNESS_OBSERVER_TEMPLATE = """
(() => {
    if (window.__wptDiffHarnessObserver)
        return;
    window.__wptDiffHarnessObserver = true;
    const collectionSource = %(body_addition)s;
    new MutationObserver((mutations) => {
        for (const mutation of mutations)
            for (const node of mutation.addedNodes) {
                if (
                    node instanceof HTMLScriptElement &&
                    node.src &&
                    node.src.endsWith(%(report_script)s)
                ) {
                    console.debug("Found the test harness report script before its creation");
                    const collectionScript = document.createElement("script");
                    collectionScript.textContent = collectionSource;
                    node.after(collectionScript);
                }
            }
    }).observe(document, { childList: true, subtree: true });
})();
"""


def completion_callback_script(under_proxy: bool) -> str:
    return PROXIED_COMPLETION_CALLBACK if under_proxy else DIRECT_COMPLETION_CALLBACK


def harness_observer_script(body_addition: str) -> str:
    """Builds the init script that splices body_addition after the harness report script."""
    return HARNESS_OBSERVER_TEMPLATE % {
        "body_addition": json.dumps(body_addition),
        "report_script": json.dumps(TEST_HARNESS_REPORT_SCRIPT),
    }


def create_test_harness_handler(body_addition: str, logger):
    """
    Creates a route handler appending body_addition to the fetched testharness.js.

    Args:
        body_addition: JS to append to the harness.
        logger: WptLogger.

    Returns:
        Callable: A handler for page.route().
    """

    def handle_test_harness(route):
        logger.debug("Intercepting the test harness to rewrite it")
        response = route.fetch()
        body = response.text()
        route.fulfill(
            status=200,
            content_type="text/javascript",
            body=body + "\n" + body_addition,
        )

    return handle_test_harness


def install_test_harness_route(page, test_url: str, body_addition: str, logger):
    """Routes the test subject's testharness.js through the rewriting handler, once per session."""
    harness_url = f"{test_url.rstrip('/')}{TEST_HARNESS_PATH}"
    logger.debug(f"Intercepting {harness_url} to inject the completion callback")
    page.route(harness_url, create_test_harness_handler(body_addition, logger))


class HarnessObserverInjector:
    """
    Makes sure the next document loaded in a page gets the harness observer.

    Called before every proxied navigation. The observer itself lives in a
    single document, so it is re-created from an init script on every load;
    the init script is registered once per page so it doesn't pile up.
    """

    def __init__(self, body_addition: str, logger):
        self.script = harness_observer_script(body_addition)
        self.logger = logger
        self._prepared_pages = set()

    def prepare_navigation(self, page):
        if id(page) in self._prepared_pages:
            return
        self.logger.debug("Creating a Mutation Observer to detect when the test harness is added to the page")
        page.add_init_script(self.script)
        self._prepared_pages.add(id(page))
