"""Mirrors the browser console into the run logger."""

# Proxy bootstrap and rewriting chatter that only drowns out the test output
PROXY_NOISE = [
    "bare-mux:",
    "[dreamland.js]",
    "config loaded",
    "handleSubmit",
    "rewrite",
    "initializing scramjet client",
]

# URL fragments identifying scripts served by the proxy
PROXY_SCRIPT_MARKERS = ["/scram/", "/scramjet/"]


def should_forward(text: str, url: str, under_proxy: bool) -> bool:
    if not under_proxy:
        return True
    if not any(marker in url for marker in PROXY_SCRIPT_MARKERS):
        return False
    return not any(noise in text for noise in PROXY_NOISE)


def forward_console(page, logger, under_proxy: bool, verbose: bool, silent: bool = False):
    """
    Forwards console messages of the page (and its frames) to the logger.

    Only active in verbose mode. Under a proxy, only messages from the proxied
    frame are kept.
    """
    if not verbose or silent:
        return

    prefix = "[Iframe Console]" if under_proxy else "[Browser Console]"

    def on_console(message):
        text = message.text
        url = (message.location or {}).get("url", "")
        if not should_forward(text, url, under_proxy):
            return

        message_type = message.type
        if message_type in ("log", "info"):
            logger.info(prefix, text)
        elif message_type == "debug":
            logger.debug(prefix, text)
        elif message_type == "warning":
            logger.warn(prefix, text)
        elif message_type == "error":
            logger.error(prefix, text)

    page.on("console", on_console)
