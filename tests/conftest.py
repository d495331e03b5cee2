"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures shared across all test modules.
"""

import pytest
import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture
def test_env_vars():
    """Set up test environment variables"""
    test_vars = {
        'ATTODO_PDS_URL': 'https://pds.example.com',
        'ATTODO_DID': 'did:plc:testuser',
        'ATTODO_ACCESS_JWT': 'test_access_jwt',
        'ATTODO_REFRESH_JWT': 'test_refresh_jwt',
        'ATTODO_TIMEZONE': 'UTC',
        'LOG_LEVEL': 'ERROR'  # Reduce log noise during tests
    }

    # Save original values
    original_values = {}
    for key, value in test_vars.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value

    yield test_vars

    # Restore original values
    for key, value in original_values.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
