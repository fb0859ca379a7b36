"""Test configuration overrides for deterministic relay test behavior."""

from __future__ import annotations

import os

import pytest

# Keep tests isolated from local developer `.env` overrides.
os.environ["BOT_TOKEN"] = "test-token"
os.environ["BOT_SECRET"] = "test-secret"
os.environ["ADMIN_UID"] = "1"
os.environ["WEBHOOK_PATH"] = "/endpoint"
os.environ["KV_BACKEND"] = "memory"
os.environ["ENABLE_NOTIFICATION"] = "false"
os.environ["FRAUD_DB_URL"] = ""

from relay_harness import OPERATOR_ID, RelayHarness  # noqa: E402


@pytest.fixture
def harness() -> RelayHarness:
    return RelayHarness()


@pytest.fixture
def verified_harness() -> RelayHarness:
    h = RelayHarness()
    h.verify(OPERATOR_ID)
    h.verify("100")
    return h
