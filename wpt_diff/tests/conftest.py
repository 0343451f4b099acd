import pytest

from wpt_diff.tests.fakes import FakeClock, FakeContext, FakeLogger, FakePage, FakeReporter


@pytest.fixture
def logger():
    return FakeLogger()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def page(clock):
    return FakePage(clock=clock)


@pytest.fixture
def context():
    return FakeContext()


@pytest.fixture
def reporter():
    return FakeReporter()
