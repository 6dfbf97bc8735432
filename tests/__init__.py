"""Test package for clustered-map.

This package contains:
- Unit tests (test_geo.py, test_spatial.py, test_lifecycle.py, test_expansion.py)
- Controller scenarios (test_controller.py)
- Profile loading tests (test_config.py)
- HTTP API tests (test_actions.py)
- Test configuration (conftest.py)
"""
