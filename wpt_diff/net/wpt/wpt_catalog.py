"""
Retrieval of the test catalog: the latest aligned Chrome-on-Linux run from the
WPT API (which doubles as the baseline), and the WPT update manifest, which
tells us which tests are testharness tests and how long they may take.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from wpt_diff.data.config import (
    CHROME_RUNS_ENDPOINT,
    DEFAULT_TEST_TIMEOUT,
    LONG_TEST_TIMEOUT,
    UPDATE_MANIFEST_ENDPOINT,
)
from wpt_diff.models.wpt_models import ChromeRunsResponse, ChromeWptReport, UpdateManifest
from wpt_diff.net.util.web_util import get_json, post_json, validate_document


@dataclass
class WptCatalog:
    """Candidate test paths plus the Chrome report they were taken from."""
    test_paths: List[str]
    chrome_report: ChromeWptReport


def resolve_catalog(api_url: str, session: Optional[requests.Session] = None, logger=None) -> WptCatalog:
    """
    Fetches the latest aligned Chrome run and its raw per-test results.

    Args:
        api_url: Base URL of the WPT API (e.g. https://wpt.fyi).
        session: Optional requests session to reuse.
        logger: Optional WptLogger.

    Returns:
        WptCatalog: Every test path of the Chrome report, in report order, and the report itself.

    Raises:
        FetchError, ParseError, SchemaError: If either document cannot be retrieved.
    """
    runs_url = f"{api_url.rstrip('/')}{CHROME_RUNS_ENDPOINT}"
    if logger:
        logger.debug(f"Fetching the latest Chrome on Linux run from {runs_url}")

    runs_data = get_json(runs_url, session=session, what="latest Chrome on Linux run from the WPT API")
    chrome_run = validate_document(ChromeRunsResponse, runs_data, runs_url, "latest Chrome on Linux run")

    report_url = chrome_run.raw_results_url
    if logger:
        logger.debug(f"Fetching the raw Chrome results from {report_url}")

    report_data = get_json(report_url, session=session, what="WPT report of the latest Chrome on Linux run")
    chrome_report = validate_document(ChromeWptReport, report_data, report_url, "Chrome WPT report")

    test_paths = []
    for result in chrome_report.results:
        if not result.test.startswith("/"):
            if logger:
                logger.warn(f"Ignoring the malformed test path '{result.test}' in the Chrome report")
            continue
        test_paths.append(result.test)

    if logger:
        logger.info(f"Found {len(test_paths)} tests in the latest Chrome run")

    return WptCatalog(test_paths=test_paths, chrome_report=chrome_report)


def normalize_manifest_url(url: str, url_base: Optional[str] = "/") -> str:
    """Turns a manifest item URL into a test path relative to the WPT root."""
    base = (url_base or "/").strip("/")
    path = url.lstrip("/")
    if base and not path.startswith(base + "/"):
        path = f"{base}/{path}"
    return "/" + path


def manifest_timeouts(manifest: UpdateManifest) -> Dict[str, int]:
    """
    Builds the path -> timeout (seconds) lookup from an update manifest.

    Only testharness items are present; a test absent from the result is not
    something we know how to run.
    """
    timeouts: Dict[str, int] = {}
    for path, items in manifest.items.testharness.items():
        for item in items:
            if not item:
                continue
            # A null URL means the test is served from its own path
            url = item[0] if isinstance(item[0], str) else path
            extras = item[-1] if isinstance(item[-1], dict) else {}
            timeout = LONG_TEST_TIMEOUT if extras.get("timeout") == "long" else DEFAULT_TEST_TIMEOUT
            timeouts[normalize_manifest_url(url, manifest.url_base)] = timeout
    return timeouts


def fetch_manifest_timeouts(test_url: str, session: Optional[requests.Session] = None, logger=None) -> Dict[str, int]:
    """
    Asks the WPT server to update and return its manifest, and derives the timeouts from it.

    Raises:
        FetchError, ParseError, SchemaError: If the manifest cannot be retrieved.
    """
    manifest_url = f"{test_url.rstrip('/')}{UPDATE_MANIFEST_ENDPOINT}"
    if logger:
        logger.debug(f"Fetching the WPT update manifest from {manifest_url}")

    data = post_json(manifest_url, session=session, what="WPT update manifest")
    manifest = validate_document(UpdateManifest, data, manifest_url, "WPT update manifest")
    timeouts = manifest_timeouts(manifest)

    if logger:
        long_count = sum(1 for timeout in timeouts.values() if timeout == LONG_TEST_TIMEOUT)
        logger.info(f"The manifest lists {len(timeouts)} testharness tests ({long_count} with a long timeout)")

    return timeouts
