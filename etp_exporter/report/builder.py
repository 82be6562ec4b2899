"""Build reports from a mirrored issue.

The issue body and every comment body are separate reports. Each body is
parsed on its own: a malformed body becomes a ParseError and never takes its
siblings down with it.
"""

import logging
from typing import List, Tuple

from etp_exporter.errors import MalformedBodyError
from etp_exporter.models import Comment, Issue, ParseError, Report
from etp_exporter.report.parser import ParsedBody, parse_body
from etp_exporter.report.user_agent import parse_user_agent

LOG = logging.getLogger("etp_exporter.report.builder")


def _log_ambiguous(issue_number: int, parsed: ParsedBody) -> None:
    for key, raw in parsed.ambiguous:
        LOG.debug("Issue #%s: ambiguous value %r for %s", issue_number, raw, key)


def _report(source_id: int, issue: Issue, created_at, parsed: ParsedBody) -> Report:
    return Report(
        id=source_id,
        issue_number=issue.number,
        labels=list(issue.labels),
        created_at=created_at,
        url=parsed.url,
        user_agent=parse_user_agent(parsed.user_agent_raw),
        preferences=parsed.preferences,
        has_exception=parsed.has_exception,
        user_message=parsed.user_message,
    )


def _parse_error(issue: Issue, source: Issue | Comment, error: MalformedBodyError) -> ParseError:
    kind = f"comment {source.id}" if isinstance(source, Comment) else "issue body"
    LOG.debug("Issue #%s: failed to parse %s: %s", issue.number, kind, error)
    return ParseError(issue_number=issue.number, source=source, cause=str(error))


def build_reports(issue: Issue) -> Tuple[List[Report], List[ParseError]]:
    """Reports for the issue body and each of its comments, plus one ParseError per failed body."""
    reports: List[Report] = []
    errors: List[ParseError] = []

    try:
        parsed = parse_body(issue.body)
    except MalformedBodyError as e:
        errors.append(_parse_error(issue, issue, e))
    else:
        _log_ambiguous(issue.number, parsed)
        reports.append(_report(issue.id, issue, issue.created_at, parsed))

    for comment in issue.comment_list:
        try:
            parsed = parse_body(comment.body)
        except MalformedBodyError as e:
            errors.append(_parse_error(issue, comment, e))
            continue
        _log_ambiguous(issue.number, parsed)
        reports.append(_report(comment.id, issue, comment.created_at, parsed))

    return reports, errors
