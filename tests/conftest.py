"""Shared pytest fixtures for aigc_router tests."""

import pytest

from aigc_router.image.base import GenerationRequest, JobHandle, Provider
from fakes import RecordingSleep


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def request_cat() -> GenerationRequest:
    return GenerationRequest(prompt="a cute cat character, blue sky")


@pytest.fixture
def handle() -> JobHandle:
    return JobHandle(id="job-1", provider=Provider.LLAMAGEN)
