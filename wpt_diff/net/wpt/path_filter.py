"""
Narrowing of the Chrome test list down to what this run will execute.

The stages run in a fixed order (scope, categories, shard, cap, runnability)
and each one only ever removes paths, so the result is a deterministic
function of its inputs.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Optional, Union

# Tests that cannot be automated the way we drive the browser
NON_TESTHARNESS_PREFIXES = [
    "/reftest/",
    "/manual/",
]

# Directories relying on testdriver.js / WebDriver automation we don't provide
TESTDRIVER_DIRS = [
    "/webdriver/",
    "/permissions/",
    "/permissions-policy/",
    "/permissions-request/",
    "/geolocation/",
    "/geolocation-API/",
    "/notifications/",
    "/clipboard-apis/",
    "/fullscreen/",
    "/screen-orientation/",
    "/web-bluetooth/",
    "/webusb/",
    "/webhid/",
    "/web-nfc/",
    "/serial/",
    "/credential-management/",
    "/webauthn/",
    "/secure-payment-confirmation/",
    "/storage-access-api/",
    "/idle-detection/",
    "/infrastructure/testdriver/",
]

# Directories that simulate user input
INTERACTION_DIRS = [
    "/touch-events/",
    "/pointerevents/",
    "/pointerlock/",
    "/uievents/",
    "/input-events/",
    "/keyboard-map/",
    "/keyboard-lock/",
    "/html/user-activation/",
    "/selection/",
    "/editing/",
    "/drag-and-drop/",
]

TESTDRIVER_FILENAME_PATTERN = re.compile(r"testdriver|user-activation|automation|interaction", re.IGNORECASE)

# Categories whose behavior a network proxy cannot meaningfully change
PROXY_IRRELEVANT_DIRS = [
    "/WebCryptoAPI/",
    "/webcrypto/",
    "/generic-sensor/",
    "/accelerometer/",
    "/gyroscope/",
    "/magnetometer/",
    "/ambient-light/",
    "/orientation-sensor/",
    "/orientation-event/",
    "/battery-status/",
    "/wasm/",
    "/webassembly/",
    "/file-system-access/",
    "/fs/",
    "/FileAPI/",
    "/webrtc/",
    "/webrtc-extensions/",
    "/webrtc-stats/",
    "/mediacapture-streams/",
    "/mediacapture-record/",
    "/webcodecs/",
    "/webgpu/",
    "/webxr/",
    "/accessibility/",
    "/accname/",
    "/wai-aria/",
    "/core-aam/",
    "/html-aam/",
    "/svg-aam/",
    "/devtools/",
    "/gamepad/",
    "/screen-capture/",
    "/speech-api/",
    "/web-locks/",
    "/compute-pressure/",
]

PROXY_IRRELEVANT_FILENAME_PATTERNS = [
    re.compile(r"idlharness", re.IGNORECASE),
    re.compile(r"\.tentative\."),
    re.compile(r"\.https\."),
    re.compile(r"-manual\."),
    # Rendering, layout and CSS naming conventions
    re.compile(r"(^|[/_-])(render|rendering|layout|paint|reftest|ref)([/_.-]|$)", re.IGNORECASE),
    re.compile(r"/css-[^/]+/"),
    re.compile(r"-(ref|notref)\.html$"),
    # Payments and other financial flows
    re.compile(r"payment|checkout|billing|financial", re.IGNORECASE),
    # File uploads
    re.compile(r"file-?upload|input-file|filechooser", re.IGNORECASE),
]


@dataclass
class FilterOptions:
    """The knobs of the filter pipeline."""
    scope: Optional[str] = None
    test_paths: Optional[List[str]] = None
    shard: Optional[int] = None
    total_shards: Optional[int] = None
    max_tests: Union[int, Literal["all"], None] = "all"


def _has_prefix(path: str, prefixes: Iterable[str]) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def matches_requested_paths(path: str, requested: List[str]) -> bool:
    """True if the path equals a requested .html test or sits under a requested directory."""
    for request in requested:
        if request.endswith(".html"):
            if path == request:
                return True
            continue
        prefix = request if request.endswith("/") else request + "/"
        if path.startswith(prefix):
            return True
    return False


def is_excluded_category(path: str) -> bool:
    """True if the path belongs to a category this runner never executes."""
    if _has_prefix(path, NON_TESTHARNESS_PREFIXES):
        return True
    if _has_prefix(path, TESTDRIVER_DIRS) or _has_prefix(path, INTERACTION_DIRS):
        return True
    if TESTDRIVER_FILENAME_PATTERN.search(path):
        return True
    if _has_prefix(path, PROXY_IRRELEVANT_DIRS):
        return True
    return any(pattern.search(path) for pattern in PROXY_IRRELEVANT_FILENAME_PATTERNS)


def shard_of(path: str, total_shards: int) -> int:
    """
    Returns the 1-based shard a path belongs to.

    The first 4 bytes of sha256(path), read as a big-endian unsigned integer,
    modulo the shard count.
    """
    digest = hashlib.sha256(path.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % total_shards + 1


def valid_shard(shard: int, total_shards: int) -> bool:
    return total_shards >= 1 and 1 <= shard <= total_shards


def filter_test_paths(paths: List[str], manifest_timeouts: Dict[str, int], options: FilterOptions,
                      logger=None) -> List[str]:
    """
    Applies the whole filter pipeline.

    Args:
        paths: Candidate test paths, in Chrome report order.
        manifest_timeouts: Path -> timeout lookup of the runnable (testharness) tests.
        options: Scope, explicit paths, shard and cap.
        logger: Optional WptLogger.

    Returns:
        List[str]: The ordered paths to execute. Empty if the shard is misconfigured.
    """
    def log(message):
        if logger:
            logger.debug(message)

    selected = list(paths)
    log(f"Filtering {len(selected)} candidate tests")

    if options.test_paths:
        selected = [path for path in selected if matches_requested_paths(path, options.test_paths)]
        log(f"{len(selected)} tests match the requested test paths")
    elif options.scope:
        selected = [path for path in selected if path.startswith(options.scope)]
        log(f"{len(selected)} tests are in the scope '{options.scope}'")

    selected = [path for path in selected if not is_excluded_category(path)]
    log(f"{len(selected)} tests remain after excluding unsupported categories")

    if options.shard is not None and options.total_shards is not None:
        if not valid_shard(options.shard, options.total_shards):
            if logger:
                logger.error(f"Invalid shard {options.shard}/{options.total_shards}: "
                             f"the shard must be between 1 and the total number of shards")
            return []
        selected = [path for path in selected if shard_of(path, options.total_shards) == options.shard]
        log(f"{len(selected)} tests belong to shard {options.shard}/{options.total_shards}")

    if options.max_tests is not None and options.max_tests != "all":
        selected = selected[:options.max_tests]
        log(f"Capped the run to {len(selected)} tests")

    selected = [path for path in selected if path in manifest_timeouts]
    log(f"{len(selected)} tests are runnable testharness tests")

    return selected
