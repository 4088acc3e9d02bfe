"""
Pydantic schemas for harness configuration AND test results.

This is the single source of truth for:
- The harness configuration resolved from the environment
- Result data structures (parsed test binary report)

Configuration is validated before any container is started, so a bad
environment fails fast with a clear error.

Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar
import math
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


# =============================================================================
# Common Types
# =============================================================================


class ConfigError(ValueError):
    """Fatal configuration problem detected before provisioning."""


class ParseStatus(Enum):
    """Status of a parse operation."""

    SUCCESS = "success"
    FAILED = "failed"
    NO_DATA = "no_data"  # Report file missing or empty


T = TypeVar('T', bound=BaseModel)


@dataclass
class ParseResult(Generic[T]):
    """
    Generic result container for all parsers.

    Contains validated Pydantic models plus any warnings/errors.
    """

    status: ParseStatus
    results: List[T] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0


# =============================================================================
# Container roles
# =============================================================================


class Role(Enum):
    """Containers provisioned by the harness, in provisioning order."""

    DATASTORE = "etcd"
    APISERVER = "apiserver"
    PROXY = "typha"
    SUBJECT = "felix"


# =============================================================================
# Test report schemas
# =============================================================================


class SpecStatus(Enum):
    """Outcome of a single spec in the test binary's report."""

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"


class SpecResult(BaseModel):
    """A single spec (test case) from the JUnit report."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Full spec text")
    classname: Optional[str] = Field(default=None, description="Suite the spec belongs to")
    time_seconds: float = Field(default=0.0, ge=0, description="Wall-clock duration of the spec")
    status: SpecStatus = Field(default=SpecStatus.PASSED)
    message: Optional[str] = Field(default=None, description="Failure or skip message")

    @field_validator('time_seconds')
    @classmethod
    def validate_not_nan(cls, v: float) -> float:
        """Ensure durations are not NaN or Inf."""
        if math.isnan(v) or math.isinf(v):
            raise ValueError('time_seconds cannot be NaN or Inf')
        return v

    @property
    def failed(self) -> bool:
        return self.status in (SpecStatus.FAILED, SpecStatus.ERROR)

    @property
    def ran(self) -> bool:
        return self.status != SpecStatus.SKIPPED


# =============================================================================
# Harness configuration (environment-driven)
# =============================================================================


def _env_field(default: Any, alias: str, description: str, **kwargs) -> Any:
    return Field(default=default, alias=alias, description=description, **kwargs)


class HarnessConfig(BaseModel):
    """
    Harness configuration resolved from environment variables.

    Every option has a default; a non-empty environment value replaces it.
    The model is frozen, so the configuration cannot change once resolved.

    Usage:
        config = HarnessConfig.from_env()
        config.check_manifest()
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    # Images
    felix_image: str = _env_field("calico/felix", "FELIX_IMAGE", "Subject image")
    felix_version: str = _env_field("latest", "FELIX_VERSION", "Subject image tag")
    typha_image: str = _env_field("calico/typha", "TYPHA_IMAGE", "Proxy image")
    typha_version: str = _env_field("latest", "TYPHA_VERSION", "Proxy image tag")
    k8s_image: str = _env_field("gcr.io/google_containers/hyperkube-amd64", "K8S_IMAGE", "API server image")
    k8s_version: str = _env_field("v1.10.4", "K8S_VERSION", "API server image tag")
    etcd_image: str = _env_field("quay.io/coreos/etcd", "ETCD_IMAGE", "Datastore image")
    etcd_version: str = _env_field("v3.3.7", "ETCD_VERSION", "Datastore image tag")

    # Naming and reporting
    unique_suffix: str = _env_field("", "UNIQUE_SUFFIX", "Uniqueness token embedded in every container name")
    prometheus_push_url: str = _env_field(
        "http://localhost:9091", "PROMPG_URL", "Metrics push gateway passed to the test binary"
    )
    code_level: str = _env_field("unknown", "CODE_LEVEL", "Code level label passed to the test binary")

    # Behaviour flags
    cleanup: bool = _env_field(False, "CLEANUP", "Remove all containers on exit or interrupt")
    use_typha: bool = _env_field(False, "USE_TYPHA", "Connect the subject through the aggregation proxy")
    fast_only: bool = _env_field(True, "JUST_A_MINUTE", "Skip slow specs and enforce the spec time ceiling")
    ginkgo_focus: str = _env_field("", "GINKGO_FOCUS", "Only run specs matching this regular expression")

    # Log levels
    felix_log_severity: str = _env_field("info", "FELIX_LOGSEVERITY", "Subject log severity")
    typha_log_severity: str = _env_field("info", "TYPHA_LOGSEVERITY", "Proxy log severity")
    k8s_log_level: str = _env_field("2", "K8S_LOGLEVEL", "API server verbosity (-v)")

    # Paths
    crds_file: str = _env_field("crds.yaml", "CRDS_FILE", "Schema manifest applied to the API server")
    test_binary: str = _env_field("bin/k8sfv.test", "K8SFV_BINARY", "Test binary on the host")
    output_dir: str = _env_field("output", "OUTPUT_DIR", "Directory shared with the proxy and subject")

    # Poll-retry and timing
    poll_interval: float = _env_field(2.0, "POLL_INTERVAL", "Seconds between poll-retry attempts", ge=0)
    poll_max_attempts: int = _env_field(150, "POLL_MAX_ATTEMPTS", "Attempts before a poll-retry gives up", ge=1)
    typha_restarts: int = _env_field(5, "TYPHA_RESTARTS", "Times the proxy is restarted after a crash", ge=0)
    slow_spec_threshold: float = _env_field(
        120.0, "SLOW_SPEC_THRESHOLD", "Per-spec ceiling in seconds for fast-only runs", gt=0
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        """
        Resolve configuration from the environment.

        Empty values count as unset. Raises ConfigError if a supplied value
        cannot be coerced to its option's type.
        """
        if environ is None:
            environ = os.environ

        values = {}
        for field_info in cls.model_fields.values():
            value = environ.get(field_info.alias)
            if value:
                values[field_info.alias] = value

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid harness configuration:\n{e}") from e

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def name_prefix(self) -> str:
        """Prefix shared by every container of this run."""
        return f"k8sfv{self.unique_suffix}-"

    def container_name(self, role: Role) -> str:
        return f"{self.name_prefix}{role.value}"

    @property
    def container_names(self) -> List[str]:
        return [self.container_name(role) for role in Role]

    def image_for(self, role: Role) -> str:
        images = {
            Role.DATASTORE: (self.etcd_image, self.etcd_version),
            Role.APISERVER: (self.k8s_image, self.k8s_version),
            Role.PROXY: (self.typha_image, self.typha_version),
            Role.SUBJECT: (self.felix_image, self.felix_version),
        }
        image, version = images[role]
        return f"{image}:{version}"

    @property
    def crds_path(self) -> Path:
        return Path(os.path.abspath(self.crds_file))

    @property
    def test_binary_path(self) -> Path:
        return Path(os.path.abspath(self.test_binary))

    @property
    def output_path(self) -> Path:
        return Path(os.path.abspath(self.output_dir))

    def to_display_dict(self) -> Dict[str, Any]:
        """Resolved options keyed by environment variable name."""
        return self.model_dump(by_alias=True)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_paths_exist(self) -> List[str]:
        """
        Validate that referenced paths exist on the filesystem.

        Returns list of error messages (empty if all valid).
        """
        errors = []
        if not self.crds_path.is_file():
            errors.append(f"CRDS file not found at {self.crds_path} (working directory {os.getcwd()})")
        return errors

    def check_manifest(self) -> List[str]:
        """
        Fail fast on a missing or unparseable schema manifest.

        Returns the resource kinds declared by the manifest.
        """
        errors = self.validate_paths_exist()
        if errors:
            raise ConfigError("\n".join(errors))

        try:
            with open(self.crds_path) as f:
                documents = [doc for doc in yaml.safe_load_all(f) if doc]
        except yaml.YAMLError as e:
            raise ConfigError(f"CRDS file {self.crds_path} is not valid YAML:\n{e}") from e

        if not documents:
            raise ConfigError(f"CRDS file {self.crds_path} contains no resources")

        return [doc.get("kind", "<unknown>") if isinstance(doc, dict) else "<unknown>" for doc in documents]
