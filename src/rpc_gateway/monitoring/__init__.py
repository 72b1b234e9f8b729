"""
Monitoring Package - Background Health Probes.
"""

from rpc_gateway.monitoring.health_monitor import (
    HealthMonitor,
    ProbeResult,
    block_height_probe,
)

__all__ = ["HealthMonitor", "ProbeResult", "block_height_probe"]
