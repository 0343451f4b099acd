"""
The whole WPT-diff pipeline, from the catalog to the written reports.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from wpt_diff.errors import CheckpointError
from wpt_diff.models.run_options import RunOptions
from wpt_diff.models.wpt_models import FailedTest, ResultsTable, WptDiffResults, WptReport
from wpt_diff.net.wpt.path_filter import FilterOptions, filter_test_paths
from wpt_diff.net.wpt.run_iterator import create_test_iterator
from wpt_diff.net.wpt.wpt_catalog import fetch_manifest_timeouts, resolve_catalog
from wpt_diff.net.www.chrome.browser_launcher import launch_browser
from wpt_diff.net.www.chrome.harness_injection import install_test_harness_route
from wpt_diff.net.www.chrome.page_console import forward_console
from wpt_diff.net.www.chrome.session_driver import SessionDriver, SetupPage, make_default_setup_page
from wpt_diff.net.www.chrome.wpt_collector import WptCollector
from wpt_diff.report.report_generator import output_failed, output_reports, tally_results
from wpt_diff.runner.checkpoint_manager import CheckpointManager
from wpt_diff.runner.progress_reporter import ProgressReporter
from wpt_diff.runner.run_session import RunSession
from wpt_diff.runner.test_runner import GracefulShutdown, TestRunner
from wpt_diff.util.misc_util import format_duration


@dataclass
class WptDiffOutcome:
    """What a finished run hands back to its caller."""
    tally: WptDiffResults
    results: ResultsTable
    failed_tests: List[FailedTest] = field(default_factory=list)
    reports: Dict[str, WptReport] = field(default_factory=dict)


def _now_ms() -> int:
    return int(time.time() * 1000)


def run_wpt_diff(options: RunOptions, logger, setup_page: Optional[SetupPage] = None,
                 http_session: Optional[requests.Session] = None) -> WptDiffOutcome:
    """
    Runs WPT against the test subject and compares the outcome with Chrome.

    Args:
        options: The validated run options.
        logger: WptLogger.
        setup_page: Proxy bootstrap routine. Defaults to driving the proxy's
            front page when running under a proxy.
        http_session: Optional requests session for the WPT API and manifest.

    Returns:
        WptDiffOutcome: The tally, the results and whatever was written out.

    Raises:
        CatalogError: If the Chrome baseline or the manifest can't be retrieved.
        CheckpointError: If the checkpoint to resume from can't be loaded.
        FatalRunError: If the run had to be aborted.
    """
    time_start = _now_ms()
    started_at = time.monotonic()
    http_session = http_session or requests.Session()

    under_proxy_text = " under a proxy" if options.under_proxy else ""
    logger.info(f"Starting WPT-diff{under_proxy_text} against {options.test_url}")

    catalog = resolve_catalog(options.api_url, session=http_session, logger=logger)
    manifest_timeouts = fetch_manifest_timeouts(options.test_url, session=http_session, logger=logger)

    test_paths = filter_test_paths(catalog.test_paths, manifest_timeouts, FilterOptions(
        scope=options.scope,
        test_paths=options.test_paths,
        shard=options.shard,
        total_shards=options.total_shards,
        max_tests=options.max_tests,
    ), logger)
    logger.info(f"Running {len(test_paths)} tests{under_proxy_text}")

    checkpoint = CheckpointManager(options, logger)
    checkpoint.initialize(len(test_paths), time_start)
    time_start = checkpoint.get_time_start() or time_start
    checkpoint.set_chrome_report_data({"run_info": catalog.chrome_report.run_info})

    session = RunSession(checkpoint.get_test_results())
    if options.under_proxy and setup_page is None:
        setup_page = make_default_setup_page(options.proxy_url, logger)

    reporter = ProgressReporter(len(test_paths), verbose=options.verbose, silent=options.silent)

    with sync_playwright() as playwright:
        browser_session = launch_browser(playwright, headless=options.headless, logger=logger)
        page = browser_session.page

        shutdown = GracefulShutdown(session, logger)
        shutdown.install()
        try:
            forward_console(page, logger, options.under_proxy, options.verbose, options.silent)

            collector = WptCollector(page, session, options.under_proxy, logger)
            collector.start()
            body_addition = collector.get_body_addition()
            if not options.under_proxy:
                install_test_harness_route(page, options.test_url, body_addition, logger)

            driver = SessionDriver(page, browser_session.context, session, options.under_proxy, body_addition,
                                   logger, setup_page=setup_page)
            runner = TestRunner(page, session, collector, driver, reporter, logger, manifest_timeouts,
                                checkpoint=checkpoint)
            runner.run(create_test_iterator(test_paths, options.test_url, options.max_tests))
        finally:
            shutdown.uninstall()
            reporter.finish()
            try:
                checkpoint.shutdown()
            except CheckpointError as e:
                logger.error(str(e))
            else:
                if options.checkpoint_file:
                    info = checkpoint.get_checkpoint_info()
                    logger.info(f"Checkpoint saved to {options.checkpoint_file}: "
                                f"{info['completed_tests']}/{info['total_tests']} tests completed, "
                                f"last {info['last_processed_test']}")
            try:
                browser_session.close()
            except PlaywrightError as e:
                logger.debug(f"Failed to close the browser: {e}")

    time_end = _now_ms()
    tally = tally_results(session.results)
    logger.success(f"Finished in {format_duration(time.monotonic() - started_at)}: "
                   f"{tally.passed} passed, {tally.failed} failed, {tally.other} other")

    outcome = WptDiffOutcome(tally=tally, results=session.results)
    if options.output_failed:
        outcome.failed_tests = output_failed(session.results, options.output_failed, logger)
    if options.report:
        outcome.reports = output_reports(session.results, catalog.chrome_report, time_start, time_end,
                                         options.under_proxy, options.report, logger)
    return outcome
