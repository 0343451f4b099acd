import pytest
from pydantic import ValidationError

from wpt_diff.models.run_options import RunOptions
from wpt_diff.models.wpt_models import FailedTest, SubtestStatus, WptDiffResults, WptReport


def test_run_options_strip_trailing_slashes():
    options = RunOptions(test_url="https://wpt.live/", api_url="https://wpt.fyi//", proxy_url="http://localhost:1337/")

    assert options.wpt_urls == {
        "test": "https://wpt.live",
        "api": "https://wpt.fyi",
        "proxy": "http://localhost:1337",
    }


@pytest.mark.parametrize("max_tests", [0, -3, "some"])
def test_run_options_reject_bad_max_tests(max_tests):
    with pytest.raises(ValidationError):
        RunOptions(max_tests=max_tests)


def test_status_codes_match_the_harness():
    assert [status.value for status in SubtestStatus] == [0, 1, 2, 3, 4]


def test_failed_test_uses_camel_case_keys():
    failed = FailedTest(test_path="/b.html", test_name="t1", status=1)

    assert failed.model_dump(by_alias=True, exclude_none=True) == {"testPath": "/b.html", "testName": "t1", "status": 1}
    assert FailedTest.model_validate({"testPath": "/b.html", "testName": "t1", "status": 1}) == failed


def test_results_total():
    assert WptDiffResults(passed=3, failed=2, other=1).total == 6


def test_reports_keep_unknown_fields():
    report = WptReport.model_validate({
        "run_info": {},
        "results": [{"test": "/a.html", "subtests": [], "duration": 5}],
        "ext": "kept",
    })

    assert report.model_dump()["ext"] == "kept"
    assert report.results[0].model_dump()["duration"] == 5
    assert report.results[0].status == "OK"
