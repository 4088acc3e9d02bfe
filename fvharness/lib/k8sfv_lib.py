'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import logging
from enum import Enum
from typing import List

from fvharness.parsers.schemas import HarnessConfig, ParseResult, ParseStatus

log = logging.getLogger(__name__)


# Mount points shared by the proxy and subject containers
TEST_BINARY_MOUNT = '/k8sfv'
SHARED_OUTPUT_MOUNT = '/k8sfv-output'

CERT_FILE_NAME = 'apiserver.crt'
REPORT_FILE_NAME = 'junit.xml'
SUMMARY_FILE_NAME = 'summary.json'

SLOW_SPEC_SKIP = r'\[slow\]'


class SelectionMode(Enum):
    """Which specs the test binary is asked to run."""

    FOCUS = "focus"
    FAST = "fast"
    FULL = "full"


def select_mode(config: HarnessConfig) -> SelectionMode:
    """A focus pattern always wins; otherwise fast-only unless disabled."""
    if config.ginkgo_focus:
        return SelectionMode.FOCUS
    if config.fast_only:
        return SelectionMode.FAST
    return SelectionMode.FULL


def build_test_command(config: HarnessConfig, api_endpoint, subject_ip, subject_hostname) -> List[str]:
    """
    Build the argv for the test binary as seen from inside the subject container.

    The JUnit report is written to the shared output mount so the host can
    read it back once the binary exits.
    """
    binary = f'{TEST_BINARY_MOUNT}/{config.test_binary_path.name}'
    cmd = [
        binary,
        f'-k8s-api-endpoint={api_endpoint}',
        f'-felix-ip={subject_ip}',
        f'-felix-hostname={subject_hostname}',
        f'-prometheus-push-url={config.prometheus_push_url}',
        f'-code-level={config.code_level}',
        f'-ginkgo.junit-report={SHARED_OUTPUT_MOUNT}/{REPORT_FILE_NAME}',
    ]

    mode = select_mode(config)
    if mode == SelectionMode.FOCUS:
        cmd += [f'-ginkgo.focus={config.ginkgo_focus}', '-ginkgo.v']
    elif mode == SelectionMode.FAST:
        cmd += [f'-ginkgo.skip={SLOW_SPEC_SKIP}']
    return cmd


def evaluate_report(parse_result: ParseResult, mode: SelectionMode, threshold: float) -> List[str]:
    """
    Decide from the parsed report whether a run must be failed.

    Only fast-only runs are judged: any failed spec, any spec slower than
    threshold, or a report that could not be read. Returns the reasons;
    an empty list means the report does not override the binary's status.
    """
    if mode != SelectionMode.FAST:
        return []

    if parse_result.status != ParseStatus.SUCCESS:
        reasons = parse_result.errors or [f'test report unusable ({parse_result.status.value})']
        return [f'no usable test report: {r}' for r in reasons]

    reasons = []
    for spec in parse_result.results:
        if spec.failed:
            reasons.append(f'FAILED: {spec.name}')
        elif spec.ran and spec.time_seconds > threshold:
            reasons.append(f'SLOW ({spec.time_seconds:.1f}s > {threshold:g}s): {spec.name}')
    return reasons


def effective_exit_status(test_status: int, reasons: List[str]) -> int:
    """The binary's own failure status wins; a report override alone yields 1."""
    if test_status != 0:
        return test_status
    return 1 if reasons else 0


def summarize_report(parse_result: ParseResult) -> str:
    if not parse_result.has_results:
        return 'no specs reported'
    specs = parse_result.results
    failed = sum(1 for s in specs if s.failed)
    skipped = sum(1 for s in specs if not s.ran)
    return f'{len(specs)} specs: {len(specs) - failed - skipped} passed, {failed} failed, {skipped} skipped'
