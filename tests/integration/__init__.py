"""
Integration Tests - Failover Scenarios and Gateway Wiring.

Exercise registry, selector, executor and monitor together against
fake sessions.
"""
