"""Shared fixtures for handler and route tests."""

from __future__ import annotations

import pytest

from propalert.core.context import HandlerContext
from tests.fakes import NOW, InMemoryDocumentStore, RecordingPushChannel, make_settings


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings():
  return make_settings()


@pytest.fixture
def store():
  return InMemoryDocumentStore()


@pytest.fixture
def push():
  return RecordingPushChannel()


@pytest.fixture
def context(store, push, settings):
  return HandlerContext(store=store, push=push, settings=settings, clock=lambda: NOW)
