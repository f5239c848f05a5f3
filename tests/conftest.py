"""Shared fixtures for FlowForm tests."""

import pytest

from flowform.flow.models import FlowDefinition
from flowform.runtime.runtime import FlowRuntime
from tests.factories import make_age_flow, make_linear_flow


@pytest.fixture
def linear_flow() -> FlowDefinition:
    return make_linear_flow()


@pytest.fixture
def age_flow() -> FlowDefinition:
    return make_age_flow()


@pytest.fixture
def runtime() -> FlowRuntime:
    """Runtime over fresh in-memory stores."""
    return FlowRuntime()
