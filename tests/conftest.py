"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration).
"""

import pytest

# Credentials and CI variables from the developer's shell must not leak
# into tests that exercise environment-driven behaviour.
ENV_VARS = (
    "WEBFLOW_TOKEN",
    "WEBFLOW_API_KEY",
    "WEBFLOW_COLLECTION_ID",
    "WEBFLOW_API_URL",
    "GITHUB_REPOSITORY",
    "GITHUB_SHA",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove Webflow and GitHub variables from the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
