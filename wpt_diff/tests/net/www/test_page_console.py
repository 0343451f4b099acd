from wpt_diff.net.www.chrome.page_console import forward_console, should_forward
from wpt_diff.tests.fakes import FakeConsoleMessage


def test_direct_mode_forwards_everything():
    assert should_forward("anything", "", under_proxy=False)


def test_proxy_mode_only_forwards_proxied_scripts_without_noise():
    assert should_forward("assert failed", "http://localhost:1337/scram/wpt.live/a.html", under_proxy=True)
    assert not should_forward("assert failed", "http://localhost:1337/index.js", under_proxy=True)
    assert not should_forward("bare-mux: connected", "http://localhost:1337/scram/client.js", under_proxy=True)


def test_console_messages_are_mapped_onto_log_levels(page, logger):
    forward_console(page, logger, under_proxy=False, verbose=True)

    page.emit("console", FakeConsoleMessage("hello", "log"))
    page.emit("console", FakeConsoleMessage("careful", "warning"))
    page.emit("console", FakeConsoleMessage("broken", "error"))
    page.emit("console", FakeConsoleMessage("details", "debug"))

    assert logger.records == [
        ("info", "[Browser Console] hello"),
        ("warn", "[Browser Console] careful"),
        ("error", "[Browser Console] broken"),
        ("debug", "[Browser Console] details"),
    ]


def test_nothing_is_forwarded_unless_verbose(page, logger):
    forward_console(page, logger, under_proxy=False, verbose=False)
    forward_console(page, logger, under_proxy=False, verbose=True, silent=True)

    assert page.handlers == {}
