"""
Base runner interface and common data structures.

Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import time
import logging

from fvharness.parsers.schemas import HarnessConfig

log = logging.getLogger(__name__)


class RunStatus(Enum):
    """Status of a harness run."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunResult:
    """
    Result from a harness run.

    Contains raw outputs, artifact paths and the exit status the process
    should end with.
    """

    status: RunStatus
    start_time: float
    end_time: float

    # Raw output of the test binary
    stdout: str = ""

    # Paths to output artifacts
    artifacts: Dict[str, Path] = field(default_factory=dict)  # name -> path

    # Error information if failed
    error_message: Optional[str] = None
    test_exit_code: Optional[int] = None  # status of the test binary itself
    exit_code: Optional[int] = None  # final status after report and liveness checks
    subject_alive: Optional[bool] = None

    # Metadata collected during run
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        """Total execution time in seconds."""
        return self.end_time - self.start_time

    @property
    def succeeded(self) -> bool:
        """Whether the run completed successfully."""
        return self.status == RunStatus.COMPLETED

    @property
    def final_exit_code(self) -> int:
        """Process exit status; failures without a captured status map to 1."""
        if self.exit_code is not None:
            return self.exit_code
        return 0 if self.succeeded else 1

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable view, without the captured output."""
        data = asdict(self)
        data.pop("stdout")
        data["status"] = self.status.value
        data["artifacts"] = {name: str(path) for name, path in self.artifacts.items()}
        data["duration_seconds"] = self.duration_seconds
        data["final_exit_code"] = self.final_exit_code
        return data


class BaseRunner(ABC):
    """
    Abstract base class for harness runners.

    Runners follow a lifecycle:
    1. setup() - Prepare environment (deploy containers)
    2. run() - Execute the tests
    3. teardown() - Cleanup resources

    The execute() method orchestrates this lifecycle with proper error handling.
    """

    def __init__(self, config: HarnessConfig):
        """
        Initialize runner with configuration.

        Args:
            config: Resolved harness configuration
        """
        self.config = config
        self._setup_started = False

    @abstractmethod
    def setup(self) -> bool:
        """
        Prepare the environment before test execution.

        Returns:
            True if setup succeeded, False otherwise
        """
        pass

    @abstractmethod
    def run(self, **kwargs) -> RunResult:
        """
        Execute the tests.

        Returns:
            RunResult with raw outputs and artifact paths
        """
        pass

    @abstractmethod
    def teardown(self) -> bool:
        """
        Cleanup resources after test execution.

        Returns:
            True if teardown succeeded, False otherwise
        """
        pass

    def execute(self, **kwargs) -> RunResult:
        """
        Full execution lifecycle: setup -> run -> teardown.

        Teardown is attempted whenever setup was entered, including when
        setup itself failed part way or the run was interrupted.

        Args:
            **kwargs: Passed to run()

        Returns:
            RunResult from the run, or a failed result if setup fails
        """
        start_time = time.time()

        try:
            # Setup phase
            log.info(f"Setting up {self.__class__.__name__}...")
            self._setup_started = True
            if not self.setup():
                return RunResult(
                    status=RunStatus.FAILED, start_time=start_time, end_time=time.time(), error_message="Setup failed"
                )

            # Run phase
            log.info(f"Running {self.__class__.__name__}...")
            return self.run(**kwargs)

        except Exception as e:
            log.exception(f"Error during {self.__class__.__name__} execution")
            return RunResult(status=RunStatus.FAILED, start_time=start_time, end_time=time.time(), error_message=str(e))

        finally:
            if self._setup_started:
                log.info(f"Tearing down {self.__class__.__name__}...")
                try:
                    self.teardown()
                except Exception as e:
                    log.warning(f"Teardown error (non-fatal): {e}")

    def validate_config(self) -> List[str]:
        """
        Validate runner configuration.

        Override in subclasses to add specific validation.

        Returns:
            List of validation error messages (empty if valid)
        """
        return self.config.validate_paths_exist()
