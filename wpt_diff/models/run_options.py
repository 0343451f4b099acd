from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from wpt_diff.data import config


class RunOptions(BaseModel):
    """Validated configuration of a single WPT-diff run."""
    test_url: str = config.WPT_TEST_URL
    api_url: str = config.WPT_API_URL
    proxy_url: str = config.WPT_PROXY_URL

    max_tests: Union[int, Literal["all"]] = config.MAX_TESTS
    under_proxy: bool = config.UNDER_PROXY
    scope: Optional[str] = None
    test_paths: Optional[List[str]] = None
    shard: Optional[int] = None
    total_shards: Optional[int] = None

    output_failed: Optional[Union[bool, str]] = None
    report: Optional[Union[bool, str]] = None
    checkpoint_file: Optional[str] = None
    resume_from: Optional[str] = None

    headless: bool = config.HEADLESS
    debug: bool = config.DEBUG
    verbose: bool = config.VERBOSE
    silent: bool = config.SILENT

    checkpoint_save_interval: int = Field(default=config.CHECKPOINT_SAVE_INTERVAL, ge=1)

    @field_validator("test_url", "api_url", "proxy_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("max_tests")
    @classmethod
    def positive_max_tests(cls, value):
        if value != "all" and value < 1:
            raise ValueError("max_tests must be a positive number or 'all'")
        return value

    @property
    def wpt_urls(self) -> dict:
        return {"test": self.test_url, "api": self.api_url, "proxy": self.proxy_url}
