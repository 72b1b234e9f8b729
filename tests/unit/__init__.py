"""
Unit Tests - Testing Individual Components in Isolation.

Each component is tested in isolation with fake sessions.
Unit tests should be fast, deterministic, and focused.

Test Files:
    - test_endpoint_registry.py: Health state and snapshots
    - test_selector.py: Priority selection and degraded fallback
    - test_executor.py: Retry with failover
    - test_health_monitor.py: Background probing
    - test_config_loader.py: Configuration loading/validation
"""
