"""Extraction of ETP reports from issue and comment bodies."""

from etp_exporter.report.builder import build_reports
from etp_exporter.report.parser import ParsedBody, parse_body
from etp_exporter.report.preferences import CoercionKind, PreferenceKey, coerce_preference, is_ambiguous

__all__ = [
    "CoercionKind",
    "ParsedBody",
    "PreferenceKey",
    "build_reports",
    "coerce_preference",
    "is_ambiguous",
    "parse_body",
]
