"""Shared fixtures for the insights tests."""

import pytest

from fakes import EchoPromptBuilder


@pytest.fixture
def prompt_builder():
    return EchoPromptBuilder()
