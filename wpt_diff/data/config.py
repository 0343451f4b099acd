import os
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_max_tests(name: str, default: str = '30'):
    value = os.getenv(name, default).strip().lower()
    return 'all' if value == 'all' else int(value)


# Upstream services
WPT_TEST_URL = os.getenv('WPT_TEST_URL', 'https://wpt.live')
WPT_API_URL = os.getenv('WPT_API_URL', 'https://wpt.fyi')
WPT_PROXY_URL = os.getenv('WPT_PROXY_URL', 'http://localhost:1337')

MAX_TESTS = _env_max_tests('MAX_TESTS')
UNDER_PROXY = _env_flag('UNDER_PROXY')
HEADLESS = _env_flag('HEADLESS', True)

DEBUG = _env_flag('DEBUG')
VERBOSE = _env_flag('VERBOSE')
SILENT = _env_flag('SILENT')

HTTP_TIMEOUT = int(os.getenv('HTTP_TIMEOUT', 60))
CHECKPOINT_SAVE_INTERVAL = int(os.getenv('CHECKPOINT_SAVE_INTERVAL', 100))

LOGS_DIR = os.getenv('LOGS_DIR', os.path.join(Path.home(), '.wpt-diff', 'logs'))
DEBUG_LOG = os.path.join(LOGS_DIR, 'debug.log')
RUN_LOG = os.path.join(LOGS_DIR, 'run.log')

# WPT API endpoints
CHROME_RUNS_ENDPOINT = '/api/run?label=master&label=stable&product=chrome&aligned'
UPDATE_MANIFEST_ENDPOINT = '/tools/runner/update_manifest.py'

# Test timeouts in seconds, as understood by the WPT manifest
DEFAULT_TEST_TIMEOUT = 10
LONG_TEST_TIMEOUT = 60
TIMEOUT_GRACE = 5

# Browser session
URL_BAR_SELECTOR = '.bar'
URL_BAR_SETTLE_DELAY = 1.0
SERVICE_WORKER_WAIT_TIMEOUT = 10
COMPLETION_POLL_INTERVAL = 0.1
BROWSER_ARGS = [
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-infobars',
    '--ignore-certificate-errors',
    '--allow-insecure-localhost',
]

# In-page instrumentation
BRIDGE_FUNCTION_NAME = 'collectWptResults'
RESULTS_MESSAGE_TYPE = 'wpt-results'
TEST_HARNESS_PATH = '/resources/testharness.js'
TEST_HARNESS_REPORT_SCRIPT = 'testharnessreport.js'

# Substrings of Playwright errors raised once the browser, context or page is gone
BROWSER_CLOSED_MARKERS = [
    'Target closed',
    'Target page, context or browser has been closed',
    'Browser has been closed',
]

CHECKPOINT_VERSION = '1.0.0'
