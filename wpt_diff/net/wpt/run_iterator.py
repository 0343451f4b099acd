from typing import Iterator, List, Literal, Optional, Union

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from wpt_diff.errors import InvalidTestUrlError
from wpt_diff.models.wpt_models import WptTestRunInfo

# Tests we can't run yet, even if they made it through filtering
SKIPPED_PREFIXES = ("/wasm/",)

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


def resolve_test_url(test_url: str, test_path: str):
    """
    Resolves a test path against the base URL of the test subject.

    Returns:
        The raw URL string and its parsed form.

    Raises:
        InvalidTestUrlError: If the result isn't a valid http(s) URL.
    """
    raw_full_url = test_url.rstrip("/") + test_path
    try:
        return raw_full_url, _URL_ADAPTER.validate_python(raw_full_url)
    except ValidationError as e:
        raise InvalidTestUrlError(raw_full_url, str(e)) from e


def create_test_iterator(test_paths: List[str], test_url: str,
                         max_tests: Union[int, Literal["all"], None] = None) -> Iterator[WptTestRunInfo]:
    """
    Lazily pairs each test path with its absolute URL.

    Skipped categories are stepped over without being yielded and don't use up
    the budget, so max_tests counts executed tests rather than scanned entries.
    A fresh iterator starts over from the first path.

    Args:
        test_paths: Filtered test paths, in execution order.
        test_url: Base URL of the test subject.
        max_tests: Maximum number of tests to hand out; "all" or None for no limit.

    Yields:
        WptTestRunInfo: One entry per eligible test.
    """
    cutoff = None if max_tests in (None, "all") else max_tests
    tests_processed = 0
    if cutoff is not None and cutoff < 1:
        return

    for index, test_path in enumerate(test_paths):
        raw_full_url, full_url = resolve_test_url(test_url, test_path)

        if (full_url.path or "").startswith(SKIPPED_PREFIXES):
            continue

        yield WptTestRunInfo(
            index=index,
            test_path=test_path,
            raw_full_url=raw_full_url,
            full_url=full_url,
            tests_processed=tests_processed,
        )

        tests_processed += 1
        if cutoff is not None and tests_processed >= cutoff:
            break
