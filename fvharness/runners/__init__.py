"""
Runners module - Test Execution Wrappers.

Runners are responsible for:
- Deploying the test environment (containers)
- Executing the test binary
- Collecting raw artifacts (logs, reports, certificates)

Runners should NOT:
- Resolve configuration from the environment
- Parse report contents themselves
"""

from fvharness.runners._base_runner import BaseRunner, RunResult, RunStatus
from fvharness.runners.k8sfv import K8sfvRunner

__all__ = [
    "BaseRunner",
    "RunResult",
    "RunStatus",
    "K8sfvRunner",
]
