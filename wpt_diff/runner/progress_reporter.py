import sys
from typing import List, Optional

from colorama import Fore, Style
from tqdm import tqdm

from wpt_diff.models.wpt_models import SubtestResult, SubtestStatus

MAX_SUFFIX_LENGTH = 50


def _shorten(test_path: str) -> str:
    if len(test_path) > MAX_SUFFIX_LENGTH:
        return "..." + test_path[-(MAX_SUFFIX_LENGTH - 3):]
    return test_path


class ProgressReporter:
    """
    Lifecycle sink of a run.

    Renders a progress bar by default, one line per test (and subtest) in
    verbose mode, and nothing at all when silent.
    """

    def __init__(self, total_tests: int, verbose: bool = False, silent: bool = False, stream=None):
        self.total_tests = total_tests
        self.verbose = verbose
        self.silent = silent
        self.stream = stream or sys.stdout
        self.tests_completed = 0
        self.current_test = ""
        self._finished = False
        self.progress_bar: Optional[tqdm] = None

        if not silent and not verbose:
            self.progress_bar = tqdm(total=total_tests, unit="test", file=self.stream, dynamic_ncols=True)

    def _write(self, line: str):
        if self.silent:
            return
        if self.progress_bar is not None:
            self.progress_bar.write(line, file=self.stream)
        else:
            print(line, file=self.stream)

    def _advance(self, suffix: str):
        self.tests_completed += 1
        if self.progress_bar is not None:
            self.progress_bar.set_postfix_str(_shorten(suffix), refresh=False)
            self.progress_bar.update(1)

    def start_test(self, test_path: str):
        self.current_test = test_path
        if self.verbose and not self.silent:
            self._write(f"[{self.tests_completed + 1}/{self.total_tests}] Running test: {test_path}")

    def end_test(self, results: List[SubtestResult]):
        passed = sum(1 for result in results if result.status == SubtestStatus.PASS)
        failed = sum(1 for result in results if result.status == SubtestStatus.FAIL)
        other = len(results) - passed - failed
        total = len(results)

        if self.verbose and not self.silent:
            other_text = f", {other} other" if other else ""
            if failed == 0 and other == 0 and passed > 0:
                self._write(f"{Fore.GREEN}✓{Style.RESET_ALL} {self.current_test} ({passed}/{total} passed)")
            elif failed > 0:
                self._write(f"{Fore.RED}✗{Style.RESET_ALL} {self.current_test} "
                            f"({passed}/{total} passed, {failed} failed{other_text})")
            else:
                self._write(f"{Fore.YELLOW}⚠{Style.RESET_ALL} {self.current_test} ({passed}/{total} passed{other_text})")

            for result in results:
                if result.status == SubtestStatus.PASS:
                    self._write(f"    {Fore.GREEN}✓{Style.RESET_ALL} {result.name}")
                elif result.status == SubtestStatus.FAIL:
                    message = f"{result.name} - {result.message}" if result.message else result.name
                    self._write(f"    {Fore.RED}✗{Style.RESET_ALL} {message}")
                else:
                    self._write(f"    {Fore.YELLOW}⚠{Style.RESET_ALL} {result.name}")

        self._advance(self.current_test)

    def test_timeout(self, test_path: str):
        if self.verbose:
            self._write(f"{Fore.YELLOW}⚠{Style.RESET_ALL} {test_path} timed out")
        self._advance(f"{test_path} (timed out)")

    def error(self, test_path: str, error: BaseException):
        if self.verbose:
            self._write(f"{Fore.RED}✗{Style.RESET_ALL} Error running test {test_path}: {error}")
        self._advance(f"{test_path} (error)")

    def finish(self):
        if self._finished:
            return
        self._finished = True
        if self.progress_bar is not None:
            self.progress_bar.close()
