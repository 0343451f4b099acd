"""
Exception hierarchy for WPT-diff.

Catalog errors abort a run before the browser is launched, fatal run errors
abort it mid-way. Anything else raised while a single test is executing is
handled at the per-test boundary of the test runner.
"""


class WptDiffError(Exception):
    """Base exception class for all WPT-diff errors."""
    pass


# ------------------------------------------------------------------------------
# Catalog / manifest retrieval
# ------------------------------------------------------------------------------

class CatalogError(WptDiffError):
    """Raised when the Chrome baseline or the WPT manifest cannot be retrieved."""

    def __init__(self, message: str, url: str):
        self.url = url
        self.message = message
        super().__init__(f"{message} ({url})")


class FetchError(CatalogError):
    """The request itself failed or returned a non-success status."""
    pass


class ParseError(CatalogError):
    """The response body was not valid JSON."""
    pass


class SchemaError(CatalogError):
    """The response body did not have the expected shape."""
    pass


# ------------------------------------------------------------------------------
# Test iteration
# ------------------------------------------------------------------------------

class InvalidTestUrlError(WptDiffError):
    """A test path could not be resolved to a valid absolute URL."""

    def __init__(self, raw_url: str, reason: str):
        self.raw_url = raw_url
        super().__init__(f"Failed to parse the test URL {raw_url}: {reason}")


class ShardConfigError(WptDiffError):
    """The requested shard lies outside of 1..total_shards."""
    pass


# ------------------------------------------------------------------------------
# Run aborts
# ------------------------------------------------------------------------------

class FatalRunError(WptDiffError):
    """Aborts the whole run. Never swallowed by the per-test error handling."""
    pass


class ProxySetupError(FatalRunError):
    """The proxy session could not be bootstrapped (the setup routine failed or no service worker came up)."""
    pass


class FirstTestTimeoutError(FatalRunError):
    """The first executed test never reported its results."""

    def __init__(self, test_path: str):
        self.test_path = test_path
        super().__init__(
            f"Quitting because the first test ({test_path}) timed out (there must be something seriously wrong)")


class CheckpointError(WptDiffError):
    """A checkpoint could not be loaded or saved."""
    pass
