"""
JUnit report parser for the k8sfv test binary.

The test binary writes a JUnit XML report into the shared output directory.
This parser turns it into validated SpecResult models so pass/fail and
slow-spec decisions are made on structured data instead of console text.

Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union
import xml.etree.ElementTree as ET

from pydantic import ValidationError

from fvharness.parsers.schemas import ParseResult, ParseStatus, SpecResult, SpecStatus

log = logging.getLogger(__name__)


class JUnitReportParser:
    """Parser for JUnit XML reports produced by Ginkgo test binaries."""

    def parse_file(self, report_path: Union[str, Path]) -> ParseResult[SpecResult]:
        """
        Parse a report file.

        A missing or empty file yields NO_DATA; malformed XML yields FAILED.
        """
        report_path = Path(report_path)
        if not report_path.exists():
            log.warning(f"Test report not found: {report_path}")
            return ParseResult(status=ParseStatus.NO_DATA, errors=[f"Report not found: {report_path}"])

        content = report_path.read_text(encoding="utf-8", errors="replace")
        if not content.strip():
            return ParseResult(status=ParseStatus.NO_DATA, errors=[f"Report is empty: {report_path}"])

        result = self.parse(content)
        result.metadata["report_path"] = str(report_path)
        return result

    def parse(self, content: str) -> ParseResult[SpecResult]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            return ParseResult(status=ParseStatus.FAILED, errors=[f"Malformed JUnit report: {e}"])

        specs: List[SpecResult] = []
        warnings: List[str] = []
        for case in root.iter("testcase"):
            try:
                specs.append(self._parse_testcase(case))
            except (ValueError, ValidationError) as e:
                warnings.append(f"Skipping unreadable testcase {case.get('name')!r}: {e}")

        for warning in warnings:
            log.warning(warning)

        return ParseResult(
            status=ParseStatus.SUCCESS,
            results=specs,
            warnings=warnings,
            metadata={"suite": root.get("name")},
        )

    @staticmethod
    def _parse_testcase(case: ET.Element) -> SpecResult:
        status = SpecStatus.PASSED
        message: Optional[str] = None

        # Ginkgo sets an explicit status attribute; fall back to child elements
        for tag, tag_status in (("error", SpecStatus.ERROR), ("failure", SpecStatus.FAILED), ("skipped", SpecStatus.SKIPPED)):
            child = case.find(tag)
            if child is not None:
                status = tag_status
                message = child.get("message") or (child.text or "").strip() or None
                break

        if status == SpecStatus.PASSED and case.get("status") in ("failed", "panicked", "timedout", "interrupted"):
            status = SpecStatus.FAILED
        elif status == SpecStatus.PASSED and case.get("status") in ("skipped", "pending"):
            status = SpecStatus.SKIPPED

        return SpecResult(
            name=case.get("name", ""),
            classname=case.get("classname"),
            time_seconds=float(case.get("time") or 0.0),
            status=status,
            message=message,
        )
