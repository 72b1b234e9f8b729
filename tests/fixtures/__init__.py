"""
Test Fixtures - Shared Fakes and Configurations.

This package contains reusable test fixtures:
    - sample_config.yaml: Sample gateway configuration
    - fakes.py: Fake session factory and recording sleeper

Usage:
    Import fakes directly or use the pytest fixtures in conftest.py.
"""
