"""
Unit Tests for Backoff Policies.

Test Aspects Covered:
    ✅ Business Logic: Constant, linear, exponential growth
    ✅ Edge Cases: Max delay cap, config mapping
"""

from __future__ import annotations

import pytest

from rpc_gateway.config.models import RetryConfig
from rpc_gateway.resilience.backoff import (
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    backoff_from_config,
)


class TestPolicies:
    """Test individual backoff policies."""

    def test_linear_backoff(self) -> None:
        """
        SCENARIO: Linear policy, base 0.5s
        EXPECTED: 0.5, 1.0, 1.5
        """
        policy = LinearBackoff(base_delay_seconds=0.5)

        assert [policy.delay(n) for n in (1, 2, 3)] == pytest.approx([0.5, 1.0, 1.5])

    def test_constant_backoff(self) -> None:
        """
        SCENARIO: Constant policy
        EXPECTED: Same delay every attempt
        """
        policy = ConstantBackoff(base_delay_seconds=2.0)

        assert {policy.delay(n) for n in range(1, 6)} == {2.0}

    def test_exponential_backoff(self) -> None:
        """
        SCENARIO: Exponential policy, base 0.1s, factor 2
        EXPECTED: 0.1, 0.2, 0.4
        """
        policy = ExponentialBackoff(base_delay_seconds=0.1, exponential_base=2.0)

        assert policy.delay(1) == pytest.approx(0.1, rel=0.01)
        assert policy.delay(2) == pytest.approx(0.2, rel=0.01)
        assert policy.delay(3) == pytest.approx(0.4, rel=0.01)

    def test_max_delay_cap(self) -> None:
        """
        SCENARIO: Calculated delay exceeds max
        EXPECTED: Delay capped at max_delay_seconds
        """
        exponential = ExponentialBackoff(base_delay_seconds=1.0, max_delay_seconds=5.0)
        linear = LinearBackoff(base_delay_seconds=1.0, max_delay_seconds=5.0)

        assert exponential.delay(10) == 5.0
        assert linear.delay(10) == 5.0


class TestFromConfig:
    """Test building policies from RetryConfig."""

    @pytest.mark.parametrize(
        "strategy, expected_type",
        [
            ("constant", ConstantBackoff),
            ("linear", LinearBackoff),
            ("exponential", ExponentialBackoff),
        ],
    )
    def test_strategy_mapping(self, strategy: str, expected_type: type) -> None:
        """
        SCENARIO: Each configured strategy
        EXPECTED: Matching policy type with configured base delay
        """
        policy = backoff_from_config(
            RetryConfig(strategy=strategy, base_delay_seconds=0.25)
        )

        assert isinstance(policy, expected_type)
        assert policy.delay(1) == pytest.approx(0.25)

    def test_default_is_linear(self) -> None:
        """
        SCENARIO: Default RetryConfig
        EXPECTED: Linear policy, 1s base
        """
        policy = backoff_from_config(RetryConfig())

        assert isinstance(policy, LinearBackoff)
        assert policy.delay(3) == pytest.approx(3.0)
