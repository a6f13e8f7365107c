from __future__ import annotations

import os
import pytest

# Keep tests independent of any developer .env overrides
os.environ.setdefault("EXTRA_PATTERNS_FILE", "")
os.environ.setdefault("LOG_LEVEL", "INFO")

from samples import AWS_ACCESS_KEY, GITHUB_PAT


@pytest.fixture
def catalog():
    """The built-in catalog, compiled without any extension file."""
    from scrubber.patterns import load_catalog
    return load_catalog()


@pytest.fixture
def scanner(catalog):
    from scrubber.scanner import Scanner
    return Scanner(catalog)


@pytest.fixture
def decision_cache():
    from scrubber.cache import DecisionCache
    return DecisionCache(max_size=16, ttl=60.0)


@pytest.fixture
def sanitizer(scanner, decision_cache):
    """A sanitizer with its own cache so tests never share decisions."""
    from scrubber.pipeline import Sanitizer
    return Sanitizer(scanner=scanner, cache=decision_cache)


@pytest.fixture
def leaky_config_text():
    """A config file mixing real-looking credentials with harmless lines."""
    return (
        "# service configuration\n"
        f"AWS_KEY={AWS_ACCESS_KEY}\n"
        f"GITHUB={GITHUB_PAT}\n"
        "region = us-east-1\n"
        "retries = 3\n"
    )
