import signal

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from wpt_diff.errors import FirstTestTimeoutError, ProxySetupError
from wpt_diff.models.run_options import RunOptions
from wpt_diff.models.wpt_models import SubtestResult, SubtestStatus
from wpt_diff.net.wpt.run_iterator import create_test_iterator
from wpt_diff.net.www.chrome.session_driver import SessionDriver
from wpt_diff.net.www.chrome.wpt_collector import WptCollector
from wpt_diff.report.report_generator import extract_failed_tests, tally_results
from wpt_diff.runner.checkpoint_manager import CheckpointManager
from wpt_diff.runner.run_session import RunSession
from wpt_diff.runner.test_runner import GracefulShutdown, TestRunner, effective_timeout
from wpt_diff.tests.fakes import FakeContext

BASE_URL = "https://example.test"


def passing(name="t1"):
    return [{"name": name, "status": 0}]


def make_runner(page, logger, reporter, clock, session=None, manifest_timeouts=None, under_proxy=False,
                context=None, setup_page=None, checkpoint=None):
    session = session if session is not None else RunSession()
    collector = WptCollector(page, session, under_proxy, logger)
    collector.start()
    driver = SessionDriver(page, context or FakeContext(), session, under_proxy, collector.get_body_addition(),
                           logger, setup_page=setup_page)
    return TestRunner(page, session, collector, driver, reporter, logger, manifest_timeouts or {},
                      checkpoint=checkpoint, clock=clock)


def iterate(*paths):
    return create_test_iterator(list(paths), BASE_URL)


def test_two_tests_one_failing(page, logger, reporter, clock):
    page.harness = {
        f"{BASE_URL}/a.html": [{"name": "t1", "status": 0}],
        f"{BASE_URL}/b.html": [{"name": "t1", "status": 1, "message": "mismatch"}],
    }
    runner = make_runner(page, logger, reporter, clock)

    results = runner.run(iterate("/a.html", "/b.html"))

    assert tally_results(results).to_dict() == {"pass": 1, "fail": 1, "other": 0}
    assert [failed.model_dump(by_alias=True, exclude_none=True) for failed in extract_failed_tests(results)] == [
        {"testPath": "/b.html", "testName": "t1", "status": 1, "message": "mismatch"},
    ]
    assert reporter.events == [("start", "/a.html"), ("end", [0]), ("start", "/b.html"), ("end", [1])]
    assert runner.session.current_test_path is None


def test_tests_with_results_are_not_run_again(page, logger, reporter, clock):
    existing = [SubtestResult(name="t1", status=1, message="from the checkpoint")]
    session = RunSession({"/a.html": existing})
    page.harness = {f"{BASE_URL}/a.html": passing(), f"{BASE_URL}/b.html": passing()}
    runner = make_runner(page, logger, reporter, clock, session=session)

    results = runner.run(iterate("/a.html", "/b.html"))

    assert page.visited == [f"{BASE_URL}/b.html"]
    assert results["/a.html"] is existing
    assert results["/a.html"] == [SubtestResult(name="t1", status=1, message="from the checkpoint")]


def test_first_test_timing_out_aborts_the_run(page, logger, reporter, clock):
    runner = make_runner(page, logger, reporter, clock)

    with pytest.raises(FirstTestTimeoutError) as error:
        runner.run(iterate("/a.html", "/b.html", "/c.html"))

    assert error.value.test_path == "/a.html"
    assert page.visited == [f"{BASE_URL}/a.html"]
    assert clock.now >= 15
    assert ("timeout", "/a.html") in reporter.events


def test_later_timeouts_are_recorded_as_notrun(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing(), f"{BASE_URL}/c.html": passing()}
    runner = make_runner(page, logger, reporter, clock)

    results = runner.run(iterate("/a.html", "/b.html", "/c.html"))

    assert results["/b.html"] == [
        SubtestResult(name="/b.html", status=SubtestStatus.NOTRUN, message="Test timed out"),
    ]
    assert results["/c.html"] == [SubtestResult(name="t1", status=0)]
    assert tally_results(results).to_dict() == {"pass": 2, "fail": 0, "other": 1}


def test_long_tests_get_the_long_timeout(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing()}
    runner = make_runner(page, logger, reporter, clock, manifest_timeouts={"/a.html": 10, "/b.html": 60})

    runner.run(iterate("/a.html", "/b.html"))

    assert clock.now >= 65


@pytest.mark.parametrize("test_path, expected", [("/long.html", 65), ("/default.html", 15), ("/unknown.html", 15)])
def test_effective_timeout(test_path, expected):
    assert effective_timeout(test_path, {"/long.html": 60, "/default.html": 10}) == expected


def test_late_results_after_a_timeout_are_dropped(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing()}
    runner = make_runner(page, logger, reporter, clock)
    runner.run(iterate("/a.html", "/b.html"))

    page.exposed["collectWptResults"](passing("late"))

    assert runner.session.results["/b.html"][0].message == "Test timed out"
    assert logger.messages("warn")


def test_per_test_errors_are_reported_and_skipped(page, logger, reporter, clock):
    page.navigation_errors = {f"{BASE_URL}/a.html": PlaywrightError("net::ERR_CONNECTION_RESET")}
    page.harness = {f"{BASE_URL}/b.html": passing()}
    runner = make_runner(page, logger, reporter, clock)

    results = runner.run(iterate("/a.html", "/b.html"))

    assert "/a.html" not in results
    assert results["/b.html"] == [SubtestResult(name="t1", status=0)]
    assert ("error", "/a.html", "net::ERR_CONNECTION_RESET") in reporter.events
    assert runner.session.current_test_path is None


def test_closed_browser_stops_the_run(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing(), f"{BASE_URL}/c.html": passing()}
    page.navigation_errors = {
        f"{BASE_URL}/b.html": PlaywrightError("Target page, context or browser has been closed"),
    }
    runner = make_runner(page, logger, reporter, clock)

    results = runner.run(iterate("/a.html", "/b.html", "/c.html"))

    assert list(results) == ["/a.html"]
    assert f"{BASE_URL}/c.html" not in page.visited


def test_fatal_errors_escape_the_loop(page, logger, reporter, clock):
    runner = make_runner(page, logger, reporter, clock, under_proxy=True,
                         context=FakeContext(worker_registers=False), setup_page=lambda page, url: None)

    with pytest.raises(ProxySetupError):
        runner.run(iterate("/a.html", "/b.html"))


def test_failing_setup_page_aborts_the_run(page, logger, reporter, clock):
    setup_calls = []

    def setup_page(page, url):
        setup_calls.append(url)
        raise PlaywrightTimeoutError("Timeout 30000ms exceeded waiting for locator('.bar')")

    runner = make_runner(page, logger, reporter, clock, under_proxy=True, setup_page=setup_page)

    with pytest.raises(ProxySetupError) as error:
        runner.run(iterate("/a.html", "/b.html", "/c.html"))

    assert setup_calls == [f"{BASE_URL}/a.html"]
    assert isinstance(error.value.__cause__, PlaywrightTimeoutError)
    assert runner.session.results == {}


def test_no_new_tests_once_shutting_down(page, logger, reporter, clock):
    runner = make_runner(page, logger, reporter, clock)
    runner.session.shutting_down = True

    assert runner.run(iterate("/a.html")) == {}
    assert page.visited == []


def test_completed_tests_are_checkpointed(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing()}
    checkpoint = CheckpointManager(RunOptions(), logger)
    checkpoint.initialize(total_tests=2, time_start=0)
    runner = make_runner(page, logger, reporter, clock, checkpoint=checkpoint)

    runner.run(iterate("/a.html", "/b.html"))

    assert checkpoint.is_test_completed("/a.html")
    assert checkpoint.is_test_completed("/b.html")
    assert checkpoint.get_checkpoint_info()["completed_tests"] == 2


def test_checkpointed_tests_are_skipped(page, logger, reporter, clock):
    page.harness = {f"{BASE_URL}/a.html": passing(), f"{BASE_URL}/b.html": passing()}
    checkpoint = CheckpointManager(RunOptions(), logger)
    checkpoint.initialize(total_tests=2, time_start=0)
    checkpoint.record_test_completion("/a.html", [SubtestResult(name="t1", status=0)])
    runner = make_runner(page, logger, reporter, clock, checkpoint=checkpoint)

    runner.run(iterate("/a.html", "/b.html"))

    assert page.visited == [f"{BASE_URL}/b.html"]
    assert checkpoint.get_checkpoint_info()["last_processed_test"] == "/b.html"


def test_graceful_shutdown(logger):
    session = RunSession()
    shutdown = GracefulShutdown(session, logger)

    with pytest.raises(SystemExit) as exit_info:
        shutdown.handle(signal.SIGINT)

    assert exit_info.value.code == 0
    assert session.shutting_down
    assert logger.messages("warn") == ["Received SIGINT, shutting down gracefully"]

    # One-shot
    shutdown.handle(signal.SIGTERM)
    assert len(logger.messages("warn")) == 1


def test_graceful_shutdown_install_and_uninstall(logger):
    previous = signal.getsignal(signal.SIGTERM)
    shutdown = GracefulShutdown(RunSession(), logger)

    shutdown.install()
    try:
        assert signal.getsignal(signal.SIGTERM) == shutdown.handle
    finally:
        shutdown.uninstall()

    assert signal.getsignal(signal.SIGTERM) == previous
