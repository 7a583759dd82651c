# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test modules."""

from collections.abc import Iterator

import pytest

from s3filelink.accounts import Account
from s3filelink.dotenv_loader import reset_dotenv_state
from s3filelink.logging import SecretFilter
from tests.vectors import ACCESS_KEY, SECRET_KEY


@pytest.fixture(autouse=True)
def _isolate_global_state() -> Iterator[None]:
    """Reset process-wide secret and dotenv state around each test."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()


@pytest.fixture
def account() -> Account:
    """Account of the end-to-end upload scenario."""
    return Account(
        endpoint="s3.example.com",
        bucket="b",
        region="us-east-1",
        prefix="/x/",
        access_key=ACCESS_KEY,
        secret_key=SECRET_KEY,
    )
