"""Pytest configuration for tenancy tests.

Provides shared fixtures and test configuration.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

DEFAULT_CONFIG = """\
serve:
  public:
    base_url: http://127.0.0.1:4433/
selfservice:
  flows:
    login:
      lifespan: 10m
log:
  level: debug
  format: text
"""

TENANT1_CONFIG = """\
serve:
  public:
    base_url: http://tenant1.localhost:4433/
selfservice:
  flows:
    login:
      lifespan: 30m
log:
  level: info
  format: json
"""


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (real files/threads)"
    )


@pytest.fixture
def config_dir(tmp_path):
    """Config directory with a default and a tenant1 configuration."""
    root = tmp_path / "configs"
    (root / "default").mkdir(parents=True)
    (root / "default" / "config.yaml").write_text(DEFAULT_CONFIG, encoding="utf-8")
    (root / "tenant1").mkdir()
    (root / "tenant1" / "config.yaml").write_text(TENANT1_CONFIG, encoding="utf-8")
    return root


# Test execution settings
def pytest_collection_modifyitems(config, items):
    """Modify test collection for better organization."""
    # Add markers based on test location
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
