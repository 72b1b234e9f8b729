"""
Test Suite for RPC Gateway.

Test organization:
    - unit/: Unit tests for individual components
    - integration/: Failover scenarios and gateway wiring
    - fixtures/: Shared fakes and sample configuration

Running Tests:
    pytest tests/                           # All tests
    pytest tests/unit/                      # Unit tests only
    pytest tests/integration/               # Integration tests only
    pytest --cov=src/rpc_gateway            # With coverage
"""
