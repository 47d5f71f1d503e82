"""
xUnit/JUnit XML report parser.

Reduces a JUnit report to the suite summary and a per-test ok/ko status.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_KO = "ko"


class ReportParseError(Exception):
    """Raised when a report cannot be read or is not well-formed XML."""

    pass


@dataclass
class TestCaseResult:
    """Outcome of a single test case."""

    __test__ = False  # not a pytest test class

    name: str
    status: str
    timestamp: Optional[str] = None
    message: Optional[str] = None


@dataclass
class TestSuiteReport:
    """Summary of a test suite run."""

    __test__ = False  # not a pytest test class

    name: str
    tests: int
    failures: int
    timestamp: Optional[str]
    test_cases: List[TestCaseResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["test_cases"] = [
            {k: v for k, v in case.items() if v is not None}
            for case in result["test_cases"]
        ]
        return result


def _int_attribute(element: ET.Element, name: str, default: int) -> int:
    value = element.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class XUnitParser:
    """Parser for JUnit-style XML test reports."""

    def parse(self, report_path: Union[str, Path]) -> Optional[TestSuiteReport]:
        """
        Parse the first test suite of a report.

        Args:
            report_path: Path to the XML report

        Returns:
            The suite report, or None if the report holds no test cases

        Raises:
            ReportParseError: If the file cannot be read or parsed
        """
        report_path = Path(report_path)
        try:
            root = ET.parse(report_path).getroot()
        except (OSError, ET.ParseError) as e:
            raise ReportParseError(f"Failed to parse report {report_path}: {e}")

        suite = root if root.tag == "testsuite" else root.find("testsuite")
        if suite is None:
            logger.debug(f"No test suite found in {report_path}")
            return None

        cases = suite.findall("testcase")
        if not cases:
            return None

        return self.parse_suite(suite, cases)

    def parse_suite(
        self, suite: ET.Element, cases: List[ET.Element]
    ) -> TestSuiteReport:
        timestamp = suite.get("timestamp")
        test_cases = [self.parse_test_case(case, timestamp) for case in cases]
        failed = sum(1 for case in test_cases if case.status == STATUS_KO)
        return TestSuiteReport(
            name=suite.get("name", ""),
            tests=_int_attribute(suite, "tests", len(test_cases)),
            failures=_int_attribute(suite, "failures", failed),
            timestamp=timestamp,
            test_cases=test_cases,
        )

    @staticmethod
    def parse_test_case(
        case: ET.Element, timestamp: Optional[str] = None
    ) -> TestCaseResult:
        result = TestCaseResult(
            name=case.get("name", ""), status=STATUS_OK, timestamp=timestamp
        )
        failure = case.find("failure")
        if failure is not None:
            result.status = STATUS_KO
            result.message = failure.get("message") or (failure.text or "").strip()
        return result
