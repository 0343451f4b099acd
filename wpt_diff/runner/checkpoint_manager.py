import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from wpt_diff.data.config import CHECKPOINT_VERSION
from wpt_diff.errors import CheckpointError
from wpt_diff.models.run_options import RunOptions
from wpt_diff.models.wpt_models import ResultsTable, SubtestResult
from wpt_diff.util.misc_util import read_json, write_json


class CheckpointProgress(BaseModel):
    total_tests: int = 0
    completed_tests: int = 0
    completed_test_paths: List[str] = Field(default_factory=list)
    last_processed_test: Optional[str] = None


class TestCheckpoint(BaseModel):
    """Persisted snapshot of a run, enough to resume it."""
    __test__ = False

    timestamp: int
    version: str = CHECKPOINT_VERSION
    config: Dict[str, Any] = Field(default_factory=dict)
    progress: CheckpointProgress = Field(default_factory=CheckpointProgress)
    # Serialized as a list of [path, results] pairs to keep the insertion order explicit
    test_results: List[List[Any]] = Field(default_factory=list)
    chrome_report_data: Optional[Dict[str, Any]] = None
    time_start: int


def _now_ms() -> int:
    return int(time.time() * 1000)


class CheckpointManager:
    """
    Records run progress and periodically persists it for resuming.

    Without a checkpoint file the progress is only tracked in memory.
    """

    def __init__(self, options: RunOptions, logger, save_interval: Optional[int] = None):
        self.options = options
        self.log = logger
        self.checkpoint_path = options.checkpoint_file
        self.save_interval = save_interval or options.checkpoint_save_interval
        self.checkpoint: Optional[TestCheckpoint] = None
        self._results: ResultsTable = {}
        self._tests_since_last_save = 0

    def initialize(self, total_tests: int, time_start: int):
        """
        Creates a fresh checkpoint, or loads the one to resume from.

        Raises:
            CheckpointError: If the checkpoint to resume from can't be loaded.
        """
        if self.options.resume_from:
            self.checkpoint = self.load_checkpoint(self.options.resume_from)
            self._results = {
                path: [SubtestResult.model_validate(result) for result in results]
                for path, results in self.checkpoint.test_results
            }
            self.checkpoint.progress.total_tests = total_tests
            self.log.info(f"Resumed from checkpoint with {self.checkpoint.progress.completed_tests} completed tests")
            return

        self.checkpoint = TestCheckpoint(
            timestamp=_now_ms(),
            config={
                "scope": self.options.scope,
                "max_tests": self.options.max_tests,
                "under_proxy": self.options.under_proxy,
                "wpt_urls": self.options.wpt_urls,
            },
            progress=CheckpointProgress(total_tests=total_tests),
            time_start=time_start,
        )
        self._results = {}

    def _require_checkpoint(self) -> TestCheckpoint:
        if self.checkpoint is None:
            raise CheckpointError("Checkpoint not initialized")
        return self.checkpoint

    def record_test_completion(self, test_path: str, results: List[SubtestResult]):
        """Records a finished test and saves every save_interval tests."""
        checkpoint = self._require_checkpoint()

        if test_path not in self._results:
            checkpoint.progress.completed_tests += 1
            checkpoint.progress.completed_test_paths.append(test_path)
        self._results[test_path] = results
        checkpoint.progress.last_processed_test = test_path
        checkpoint.timestamp = _now_ms()

        self._tests_since_last_save += 1
        if self.checkpoint_path and self._tests_since_last_save >= self.save_interval:
            try:
                self.save()
                self._tests_since_last_save = 0
            except CheckpointError as e:
                self.log.error(str(e))

    def is_test_completed(self, test_path: str) -> bool:
        return test_path in self._results

    def get_test_results(self) -> ResultsTable:
        """The results collected so far (a copy, for seeding a run session)."""
        return {path: list(results) for path, results in self._results.items()}

    def get_time_start(self) -> Optional[int]:
        return self.checkpoint.time_start if self.checkpoint else None

    def set_chrome_report_data(self, data: Optional[Dict[str, Any]]):
        if self.checkpoint is not None:
            self.checkpoint.chrome_report_data = data

    def save(self):
        """
        Writes the checkpoint to disk. A no-op without a checkpoint file.

        Raises:
            CheckpointError: If the file can't be written.
        """
        if self.checkpoint is None or not self.checkpoint_path:
            return

        self.checkpoint.test_results = [
            [path, [result.model_dump(exclude_none=True) for result in results]]
            for path, results in self._results.items()
        ]
        try:
            write_json(self.checkpoint_path, self.checkpoint.model_dump())
        except OSError as e:
            raise CheckpointError(f"Failed to save checkpoint: {e}") from e

        self.log.debug(f"Checkpoint saved with {self.checkpoint.progress.completed_tests} completed tests")

    @staticmethod
    def load_checkpoint(checkpoint_path: str) -> TestCheckpoint:
        try:
            return TestCheckpoint.model_validate(read_json(checkpoint_path))
        except (OSError, ValueError, ValidationError) as e:
            raise CheckpointError(f"Failed to load checkpoint: {e}") from e

    def shutdown(self):
        """Performs a final save."""
        self.save()

    def get_checkpoint_info(self) -> Optional[Dict[str, Any]]:
        if self.checkpoint is None:
            return None
        return {
            "completed_tests": self.checkpoint.progress.completed_tests,
            "total_tests": self.checkpoint.progress.total_tests,
            "last_processed_test": self.checkpoint.progress.last_processed_test,
        }
