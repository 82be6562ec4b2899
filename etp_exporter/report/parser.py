"""Parser for the ETP breakage report text that Firefox files as an issue or comment body.

Expected shape (lines end with CRLF, bare LF is accepted too):

    Full URL: <url>
    userAgent: <user agent>

    **Preferences**
    <key>: <value>
    ...

    hasException: <true|false>      (optional, missing in older reports)

    **Comments**
    <free text, possibly empty, possibly multi-line>

The body is scanned once, line by line, by a small state machine. Any
structural deviation raises MalformedBodyError naming the offending line.
"""

import re
from enum import Enum
from typing import Iterator, List, Tuple

from pydantic import AnyUrl, BaseModel, ConfigDict, TypeAdapter, ValidationError

from etp_exporter.errors import MalformedBodyError
from etp_exporter.models import Preference
from etp_exporter.report.preferences import coerce_preference, is_ambiguous

URL_PREFIX = "Full URL: "
USER_AGENT_PREFIX = "userAgent: "
PREFERENCES_HEADER = "**Preferences**"
EXCEPTION_PREFIX = "hasException: "
COMMENTS_HEADER = "**Comments**"

_LINE = re.compile(r"([^\n]*?)(\r?\n|\Z)")
_URL = TypeAdapter(AnyUrl)


class State(Enum):
    AWAITING_URL = "awaiting URL line"
    AWAITING_USER_AGENT = "awaiting userAgent line"
    AWAITING_BLANK = "awaiting blank line after userAgent"
    AWAITING_PREFERENCES_HEADER = "awaiting preferences header"
    READING_PREFERENCES = "reading preferences"
    AWAITING_EXCEPTION_OR_COMMENTS = "awaiting hasException or comments header"
    AWAITING_BLANK_AFTER_EXCEPTION = "awaiting blank line after hasException"
    AWAITING_COMMENTS_HEADER = "awaiting comments header"


class ParsedBody(BaseModel):
    """Fields extracted from one report body."""

    model_config = ConfigDict(frozen=True)

    url: str
    user_agent_raw: str
    preferences: List[Preference]
    has_exception: bool | None
    user_message: str
    # (key, raw value) of preferences whose value did not coerce cleanly
    ambiguous: List[Tuple[str, str]] = []


def _split_lines(body: str) -> Iterator[Tuple[int, str, int]]:
    """Yield (line number, line without terminator, offset after the terminator)."""
    pos = 0
    lineno = 1
    while pos < len(body):
        m = _LINE.match(body, pos)
        yield lineno, m.group(1).rstrip("\r"), m.end()
        pos = m.end()
        lineno += 1


def _split_preference(line: str) -> Tuple[str, str] | None:
    key, sep, value = line.partition(":")
    if not sep or not key or len(value) <= 1:
        return None
    if value.startswith(" "):
        value = value[1:]
    return key, value


def parse_preference_line(line: str) -> Preference | None:
    """Preference from a "key: value" line, or None if the entry is empty.

    The line is split on the first colon and one leading space is dropped
    from the value. Values of at most one character before that are treated
    as missing.
    """
    entry = _split_preference(line)
    if entry is None:
        return None
    key, value = entry
    return Preference(key=key, value=coerce_preference(key, value))


def parse_url(value: str, lineno: int | None = None) -> str:
    """Validate an absolute URL. Raises MalformedBodyError."""
    try:
        return str(_URL.validate_python(value.strip()))
    except ValidationError as e:
        reason = e.errors()[0].get("msg", "invalid URL") if e.errors() else "invalid URL"
        raise MalformedBodyError(f"Invalid URL {value!r}: {reason}", lineno) from None


def parse_body(body: str | None) -> ParsedBody:
    """Parse a report body. Raises MalformedBodyError if it does not match the template."""
    if not body:
        raise MalformedBodyError("Empty body")

    state = State.AWAITING_URL
    url = ""
    user_agent = ""
    preferences: List[Preference] = []
    ambiguous: List[Tuple[str, str]] = []
    has_exception: bool | None = None

    for lineno, line, end in _split_lines(body):
        if state is State.AWAITING_URL:
            if not line.startswith(URL_PREFIX):
                raise MalformedBodyError(f"Expected '{URL_PREFIX.strip()}' line", lineno)
            url = parse_url(line[len(URL_PREFIX):], lineno)
            state = State.AWAITING_USER_AGENT
        elif state is State.AWAITING_USER_AGENT:
            if not line.startswith(USER_AGENT_PREFIX):
                raise MalformedBodyError(f"Expected '{USER_AGENT_PREFIX.strip()}' line", lineno)
            user_agent = line[len(USER_AGENT_PREFIX):]
            state = State.AWAITING_BLANK
        elif state is State.AWAITING_BLANK:
            if line:
                raise MalformedBodyError("Expected blank line after userAgent", lineno)
            state = State.AWAITING_PREFERENCES_HEADER
        elif state is State.AWAITING_PREFERENCES_HEADER:
            if line != PREFERENCES_HEADER:
                raise MalformedBodyError(f"Expected '{PREFERENCES_HEADER}' header", lineno)
            state = State.READING_PREFERENCES
        elif state is State.READING_PREFERENCES:
            if not line:
                state = State.AWAITING_EXCEPTION_OR_COMMENTS
                continue
            entry = _split_preference(line)
            if entry is not None:
                key, value = entry
                preferences.append(Preference(key=key, value=coerce_preference(key, value)))
                if is_ambiguous(key, value):
                    ambiguous.append((key, value))
        elif state is State.AWAITING_EXCEPTION_OR_COMMENTS:
            if line.startswith(EXCEPTION_PREFIX):
                has_exception = line[len(EXCEPTION_PREFIX):] == "true"
                state = State.AWAITING_BLANK_AFTER_EXCEPTION
            elif line == COMMENTS_HEADER:
                return ParsedBody(
                    url=url,
                    user_agent_raw=user_agent,
                    preferences=preferences,
                    has_exception=has_exception,
                    user_message=body[end:],
                    ambiguous=ambiguous,
                )
            else:
                raise MalformedBodyError(f"Expected 'hasException' line or '{COMMENTS_HEADER}' header", lineno)
        elif state is State.AWAITING_BLANK_AFTER_EXCEPTION:
            if line:
                raise MalformedBodyError("Expected blank line after hasException", lineno)
            state = State.AWAITING_COMMENTS_HEADER
        elif state is State.AWAITING_COMMENTS_HEADER:
            if line != COMMENTS_HEADER:
                raise MalformedBodyError(f"Expected '{COMMENTS_HEADER}' header", lineno)
            return ParsedBody(
                url=url,
                user_agent_raw=user_agent,
                preferences=preferences,
                has_exception=has_exception,
                user_message=body[end:],
                ambiguous=ambiguous,
            )

    raise MalformedBodyError(f"Unexpected end of body while {state.value}")
