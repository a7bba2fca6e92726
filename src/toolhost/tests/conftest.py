"""Shared fixtures: silent logging, log capture and a fake BigQuery backend."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from toolhost.runtime.observability import CaptureRenderer, NoOpRenderer, set_renderer

from .fakes import FakeBigQuery


@pytest.fixture(autouse=True)
def quiet_logs() -> Iterator[None]:
    set_renderer(NoOpRenderer())
    yield
    set_renderer(NoOpRenderer())


@pytest.fixture
def captured_logs() -> CaptureRenderer:
    renderer = CaptureRenderer()
    set_renderer(renderer)
    return renderer


@pytest.fixture
def fake_bigquery() -> FakeBigQuery:
    return FakeBigQuery()
