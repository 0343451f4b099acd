"""
Aggregation and report generation for a finished run.

Two wptreport documents can be produced from the same results:

- diff: our results where they are conclusive, Chrome's everywhere else
- proxy: our results with inconclusive subtests counted as passes, and every
  test we never ran assumed to pass
"""

import platform
from typing import Any, Dict, List, Literal, Optional, Union

from wpt_diff.models.wpt_models import (
    INCONCLUSIVE_STATUSES,
    REPORT_STATUS_NAMES,
    FailedTest,
    ResultsTable,
    SubtestResult,
    SubtestStatus,
    WptDiffResults,
    WptReport,
    WptReportSubtest,
    WptReportTest,
)
from wpt_diff.util.misc_util import to_json, write_json

ReportMode = Literal["diff", "proxy"]
REPORT_MODES = ("diff", "proxy")


def tally_results(results: ResultsTable) -> WptDiffResults:
    """Folds every collected subtest into pass/fail/other counts."""
    tally = WptDiffResults()
    for subtests in results.values():
        for subtest in subtests:
            if subtest.status == SubtestStatus.PASS:
                tally.passed += 1
            elif subtest.status == SubtestStatus.FAIL:
                tally.failed += 1
            else:
                tally.other += 1
    return tally


def extract_failed_tests(results: ResultsTable) -> List[FailedTest]:
    """Flattens the results into the failing subtests, in collection order."""
    return [
        FailedTest(
            test_path=test_path,
            test_name=subtest.name,
            status=subtest.status,
            message=subtest.message,
            stack=subtest.stack,
        )
        for test_path, subtests in results.items()
        for subtest in subtests
        if subtest.status == SubtestStatus.FAIL
    ]


def status_name(status: int) -> str:
    try:
        return REPORT_STATUS_NAMES[SubtestStatus(status)]
    except ValueError:
        # Unknown harness statuses are reported as not run
        return REPORT_STATUS_NAMES[SubtestStatus.NOTRUN]


def is_inconclusive(subtests: List[SubtestResult]) -> bool:
    """True if the test timed out or didn't run, so Chrome's result is the better one."""
    return all(subtest.status in INCONCLUSIVE_STATUSES for subtest in subtests)



def build_report_test(test_path: str, subtests: List[SubtestResult]) -> WptReportTest:
    """
    Builds the wptreport entry of one test. The test is an ERROR if any subtest failed.

    Args:
        test_path: Path of the test.
        subtests: Its collected subtests.

    Returns:
        WptReportTest: The report entry.
    """
    has_failure = any(subtest.status == SubtestStatus.FAIL for subtest in subtests)
    return WptReportTest(
        test=test_path,
        status="ERROR" if has_failure else "OK",
        message=None,
        subtests=[
            WptReportSubtest(name=subtest.name, status=status_name(subtest.status), message=subtest.message)
            for subtest in subtests
        ],
    )


def remap_inconclusive(subtests: List[SubtestResult]) -> List[SubtestResult]:
    """Turns TIMEOUT and NOTRUN subtests into passes without a message."""
    return [
        subtest.model_copy(update={"status": int(SubtestStatus.PASS), "message": None})
        if subtest.status in INCONCLUSIVE_STATUSES else subtest
        for subtest in subtests
    ]


def as_passing(chrome_test: WptReportTest) -> WptReportTest:
    """A copy of a Chrome entry where the test and all of its subtests pass."""
    return chrome_test.model_copy(deep=True, update={
        "status": "OK",
        "message": None,
        "subtests": [
            subtest.model_copy(update={"status": "PASS", "message": None})
            for subtest in chrome_test.subtests
        ],
    })


def build_run_info(chrome_run_info: Optional[Dict[str, Any]], under_proxy: bool) -> Dict[str, Any]:
    """Chrome's run_info with the product and the local host details overlaid."""
    run_info = dict(chrome_run_info or {})
    run_info.update({
        "product": "proxy" if under_proxy else "chrome",
        "os": platform.system().lower(),
        "version": platform.release(),
        "processor": platform.machine(),
    })
    return run_info


def generate_report(results: ResultsTable, chrome_report: WptReport, time_start: int, time_end: int,
                    mode: ReportMode, under_proxy: bool = False) -> WptReport:
    """
    Reconciles our results with the Chrome baseline.

    Args:
        results: The collected results.
        chrome_report: The Chrome baseline report.
        time_start: Run start, in milliseconds since the epoch.
        time_end: Run end, in milliseconds since the epoch.
        mode: "diff" or "proxy".
        under_proxy: Whether the run went through a proxy.

    Returns:
        WptReport: The merged report, in Chrome's test order followed by tests Chrome doesn't know.
    """
    if mode not in REPORT_MODES:
        raise ValueError(f"Unknown report mode: {mode}")

    report_tests = []
    baseline_paths = set()
    for chrome_test in chrome_report.results:
        baseline_paths.add(chrome_test.test)
        subtests = results.get(chrome_test.test)

        if mode == "diff":
            if subtests is not None and not is_inconclusive(subtests):
                report_tests.append(build_report_test(chrome_test.test, subtests))
            else:
                report_tests.append(chrome_test.model_copy(deep=True))
        else:
            if subtests is not None:
                report_tests.append(build_report_test(chrome_test.test, remap_inconclusive(subtests)))
            else:
                report_tests.append(as_passing(chrome_test))

    for test_path, subtests in results.items():
        if test_path in baseline_paths:
            continue
        if mode == "proxy":
            subtests = remap_inconclusive(subtests)
        report_tests.append(build_report_test(test_path, subtests))

    return WptReport(
        run_info=build_run_info(chrome_report.run_info, under_proxy),
        time_start=time_start,
        time_end=time_end,
        results=report_tests,
    )


def report_file_path(base: str, mode: ReportMode) -> str:
    """wpt-report.json -> wpt-report-diff.json"""
    if base.endswith(".json"):
        base = base[:-len(".json")]
    return f"{base}-{mode}.json"


def output_failed(results: ResultsTable, destination: Union[str, bool], logger) -> List[FailedTest]:
    """
    Writes the failing subtests as JSON to a file, or to stdout when no file name was given.
    """
    failed_tests = extract_failed_tests(results)
    data = [failed.model_dump(by_alias=True, exclude_none=True) for failed in failed_tests]

    if isinstance(destination, str):
        write_json(destination, data)
        logger.success(f"Wrote {len(failed_tests)} failed tests to {destination}")
    else:
        print(to_json(data))
    return failed_tests


def output_reports(results: ResultsTable, chrome_report: WptReport, time_start: int, time_end: int,
                   under_proxy: bool, destination: Union[str, bool], logger) -> Dict[str, WptReport]:
    """
    Writes the diff and proxy reports to {base}-diff.json and {base}-proxy.json, or to stdout.
    """
    reports = {}
    for mode in REPORT_MODES:
        report = generate_report(results, chrome_report, time_start, time_end, mode, under_proxy)
        reports[mode] = report
        data = report.model_dump()

        if isinstance(destination, str):
            path = report_file_path(destination, mode)
            write_json(path, data)
            logger.success(f"Wrote the {mode} report to {path}")
        else:
            print(to_json(data))
    return reports
