"""
Data models shared by the WPT-diff components.

Results coming out of the in-page harness, the Chrome baseline documents
fetched from the WPT API and the reports written at the end of a run.
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SubtestStatus(IntEnum):
    """Subtest status codes, exactly as emitted by testharness.js."""
    PASS = 0
    FAIL = 1
    TIMEOUT = 2
    NOTRUN = 3
    OPTIONAL_FEATURE_UNSUPPORTED = 4


# Names used for subtest statuses in wptreport JSON
REPORT_STATUS_NAMES = {
    SubtestStatus.PASS: "PASS",
    SubtestStatus.FAIL: "FAIL",
    SubtestStatus.TIMEOUT: "TIMEOUT",
    SubtestStatus.NOTRUN: "NOTRUN",
    SubtestStatus.OPTIONAL_FEATURE_UNSUPPORTED: "PRECONDITION_FAILED",
}

INCONCLUSIVE_STATUSES = (SubtestStatus.TIMEOUT, SubtestStatus.NOTRUN)


class SubtestResult(BaseModel):
    """One subtest verdict reported by the harness completion callback."""
    name: str
    status: int
    message: Optional[str] = None
    stack: Optional[str] = None


# Mapping from test path to the subtests collected for it, in submission order
ResultsTable = Dict[str, List[SubtestResult]]


class FailedTest(BaseModel):
    """A single failing subtest, as written to the failed-tests JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    test_path: str
    test_name: str
    status: int
    message: Optional[str] = None
    stack: Optional[str] = None


class WptTestRunInfo(BaseModel):
    """One eligible test handed out by the test iterator."""
    index: int
    test_path: str
    raw_full_url: str
    full_url: AnyHttpUrl
    tests_processed: int


class WptDiffResults(BaseModel):
    """Aggregate subtest tally of a run."""
    passed: int = 0
    failed: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.other

    def to_dict(self) -> Dict[str, int]:
        return {"pass": self.passed, "fail": self.failed, "other": self.other}


# ------------------------------------------------------------------------------
# wptreport format (shared by the Chrome baseline and our own reports)
# ------------------------------------------------------------------------------

class WptReportSubtest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    status: str
    message: Optional[str] = None
    known_intermittent: List[str] = Field(default_factory=list)


class WptReportTest(BaseModel):
    model_config = ConfigDict(extra="allow")

    test: str
    status: str = "OK"
    message: Optional[str] = None
    subtests: List[WptReportSubtest] = Field(default_factory=list)
    known_intermittent: List[str] = Field(default_factory=list)


class WptReport(BaseModel):
    model_config = ConfigDict(extra="allow")

    run_info: Dict[str, Any] = Field(default_factory=dict)
    time_start: int = 0
    time_end: int = 0
    results: List[WptReportTest] = Field(default_factory=list)


# ------------------------------------------------------------------------------
# WPT API documents
# ------------------------------------------------------------------------------

class ChromeRunsResponse(BaseModel):
    """The part of /api/run we rely on."""
    model_config = ConfigDict(extra="allow")

    raw_results_url: str


# The raw Chrome results document is itself a wptreport
ChromeWptReport = WptReport


class UpdateManifestItems(BaseModel):
    model_config = ConfigDict(extra="allow")

    testharness: Dict[str, List[List[Any]]] = Field(default_factory=dict)


class UpdateManifest(BaseModel):
    """Body returned by tools/runner/update_manifest.py."""
    model_config = ConfigDict(extra="allow")

    items: UpdateManifestItems
    url_base: Optional[str] = "/"
