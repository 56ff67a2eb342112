"""Pytest configuration for Liquorice tests."""

import pytest
import os
import sys

# Use offscreen platform for headless testing
os.environ['QT_QPA_PLATFORM'] = 'offscreen'

# Modules live in the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def pytest_collection_modifyitems(items):
    """Add 30 second timeout to all tests."""
    for item in items:
        if not any(marker.name == 'timeout' for marker in item.iter_markers()):
            item.add_marker(pytest.mark.timeout(30))
