from __future__ import annotations

import pytest

from fakes import FakeAdapter, FakeTransport


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
