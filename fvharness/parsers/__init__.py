"""
Parsers module - Data Abstraction & Validation.

Parsers are responsible for:
- Resolving and validating the harness configuration (fail fast)
- Transforming the test binary's report into structured data

Parsers should NOT:
- Start or inspect containers
- Make pass/fail decisions
"""

from fvharness.parsers.schemas import (
    # Config schema
    ConfigError,
    HarnessConfig,
    Role,
    # Result schemas
    ParseResult,
    ParseStatus,
    SpecResult,
    SpecStatus,
)

# Parser implementations
from fvharness.parsers.junit_report import JUnitReportParser

__all__ = [
    "ConfigError",
    "HarnessConfig",
    "Role",
    "ParseResult",
    "ParseStatus",
    "SpecResult",
    "SpecStatus",
    "JUnitReportParser",
]
