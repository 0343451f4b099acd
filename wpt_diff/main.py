"""Command line entry point of WPT-diff."""

import argparse
import importlib
import sys
from typing import List, Optional

from pydantic import ValidationError

from wpt_diff.data import config
from wpt_diff.errors import ShardConfigError, WptDiffError
from wpt_diff.models.run_options import RunOptions
from wpt_diff.net.wpt.path_filter import valid_shard
from wpt_diff.runner.wpt_runner import run_wpt_diff
from wpt_diff.util.logging_util import create_run_logger


def max_tests_arg(value: str):
    """Parses --max-tests: a positive number or "all"."""
    if value.strip().lower() == "all":
        return "all"
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number or 'all', got '{value}'")


def load_setup_page(spec: str):
    """
    Loads a proxy bootstrap routine given as module:function.

    Raises:
        ValueError: If the spec is malformed or doesn't name a callable.
    """
    module_name, _, function_name = spec.partition(":")
    if not module_name or not function_name:
        raise ValueError(f"Expected module:function, got '{spec}'")
    setup_page = getattr(importlib.import_module(module_name), function_name, None)
    if not callable(setup_page):
        raise ValueError(f"'{spec}' is not a callable")
    return setup_page


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wpt-diff",
        description="Runs the Web Platform Tests against a page or a proxy and compares the results with Chrome",
    )

    parser.add_argument("--test-url", default=config.WPT_TEST_URL, help="Base URL of the WPT server under test")
    parser.add_argument("--api-url", default=config.WPT_API_URL, help="Base URL of the WPT results API")
    parser.add_argument("--proxy-url", default=config.WPT_PROXY_URL, help="Front page of the proxy")

    parser.add_argument("--scope", help="Only run tests whose path starts with this prefix")
    parser.add_argument("--test-path", dest="test_paths", action="append",
                        help="Run this test file or directory (repeatable)")
    parser.add_argument("--shard", type=int, help="1-based shard to run")
    parser.add_argument("--total-shards", type=int, help="Total number of shards")
    parser.add_argument("--max-tests", type=max_tests_arg, default=config.MAX_TESTS,
                        help="Maximum number of tests to run, or 'all'")
    parser.add_argument("--strict-shards", action="store_true",
                        help="Fail instead of running nothing when the shard is out of range")

    parser.add_argument("--under-proxy", action="store_true", default=config.UNDER_PROXY,
                        help="Run the tests through the proxy")
    parser.add_argument("--setup-page", metavar="MODULE:FUNCTION",
                        help="Proxy bootstrap routine, called as setup_page(page, url)")

    parser.add_argument("--output-failed", nargs="?", const=True, metavar="FILE",
                        help="Write the failed tests as JSON (to stdout without a file)")
    parser.add_argument("--report", nargs="?", const=True, metavar="FILE",
                        help="Write the diff and proxy wptreports (FILE-diff.json and FILE-proxy.json)")
    parser.add_argument("--checkpoint-file", help="Periodically save the progress to this file")
    parser.add_argument("--resume-from", help="Resume from a checkpoint file")

    browser_mode = parser.add_mutually_exclusive_group()
    browser_mode.add_argument("--headless", dest="headless", action="store_true", default=config.HEADLESS,
                              help="Run the browser without a window (default)")
    browser_mode.add_argument("--headed", dest="headless", action="store_false",
                              help="Show the browser window")

    parser.add_argument("--debug", action="store_true", default=config.DEBUG, help="Show debug output")
    parser.add_argument("--verbose", action="store_true", default=config.VERBOSE,
                        help="Show every test and the browser console")
    parser.add_argument("--silent", action="store_true", default=config.SILENT, help="Only show errors")

    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    return RunOptions(
        test_url=args.test_url,
        api_url=args.api_url,
        proxy_url=args.proxy_url,
        max_tests=args.max_tests,
        under_proxy=args.under_proxy,
        scope=args.scope,
        test_paths=args.test_paths,
        shard=args.shard,
        total_shards=args.total_shards,
        output_failed=args.output_failed,
        report=args.report,
        checkpoint_file=args.checkpoint_file,
        resume_from=args.resume_from,
        headless=args.headless,
        debug=args.debug,
        verbose=args.verbose,
        silent=args.silent,
    )


def check_shards(options: RunOptions):
    """
    Raises:
        ShardConfigError: If only one of the shard options is given, or the shard is out of range.
    """
    if options.shard is None and options.total_shards is None:
        return
    if options.shard is None or options.total_shards is None:
        raise ShardConfigError("--shard and --total-shards must be given together")
    if not valid_shard(options.shard, options.total_shards):
        raise ShardConfigError(f"Invalid shard {options.shard}/{options.total_shards}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = options_from_args(args)
    except ValidationError as e:
        parser.error(str(e))

    logger = create_run_logger(options.debug, options.verbose, options.silent, config.RUN_LOG)

    setup_page = None
    if args.setup_page:
        try:
            setup_page = load_setup_page(args.setup_page)
        except (ImportError, ValueError) as e:
            logger.error(f"Failed to load the setup page routine: {e}")
            return 1

    try:
        if args.strict_shards:
            check_shards(options)
        run_wpt_diff(options, logger, setup_page=setup_page)
    except WptDiffError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
