from __future__ import annotations

import pytest
from fakes import FakeChat

from harmonia.schema import SchemaValidator


@pytest.fixture(scope="session")
def schema() -> SchemaValidator:
    return SchemaValidator.load()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()
