"""Test report parsers."""

from .xunit_parser import ReportParseError, TestCaseResult, TestSuiteReport, XUnitParser

__all__ = ["ReportParseError", "TestCaseResult", "TestSuiteReport", "XUnitParser"]
