# src/taskline/parser/descriptor.py

"""
Task descriptor parser.

A descriptor is one line of free text with sigil tokens mixed in:

    Ship release prj:Core due:2024-12-01T09:00:00Z prio:high tag:infra meta:ticket=OPS-12

Recognized tokens (prefix match is case-insensitive, values keep their case):
- prj:<name> / proj:<name> / @<name>     project (last one wins)
- due:<datetime> / duedate:<datetime>    due date, full ISO-8601 date-time (last one wins)
- prio:<low|medium|high>                 priority (last one wins)
- tag:<name> / #<name>                   tag (duplicates collapse)
- meta:<key>=<value> / %<key>=<value>    metadata (last write wins per key)

Everything else is description text. A token never spans more than one
whitespace-delimited word, so multi-word projects or metadata values are
not expressible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from ..tasks.errors import InvalidDueDate, InvalidPriority, MalformedMetaToken
from ..tasks.task_models import START_TAG, Priority, unique_tags

_TOKEN_RE = re.compile(r"\S+")

_PROJECT = "project"
_DUE = "due"
_PRIORITY = "priority"
_META = "meta"
_TAG = "tag"

# Longest prefixes first so "duedate:" is never read as "due:" + "date:...".
_PREFIXES: tuple[tuple[str, str], ...] = (
    ("duedate:", _DUE),
    ("proj:", _PROJECT),
    ("prio:", _PRIORITY),
    ("meta:", _META),
    ("prj:", _PROJECT),
    ("due:", _DUE),
    ("tag:", _TAG),
)

# Shorthand sigils from the older notation.
_SHORTHANDS: dict[str, str] = {
    "@": _PROJECT,
    "#": _TAG,
    "%": _META,
}


@dataclass(slots=True)
class TaskAttributes:
    project: str | None = None
    due: datetime | None = None
    priority: Priority | None = None
    tags: list[str] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return (
            self.project is None
            and self.due is None
            and self.priority is None
            and not self.tags
            and not self.meta
        )


@dataclass(slots=True)
class ParsedDescriptor:
    description: str
    attributes: TaskAttributes

    @property
    def wants_start(self) -> bool:
        return START_TAG in self.attributes.tags

    def render(self) -> str:
        """Canonical descriptor text; parsing it again yields the same attributes."""
        attrs = self.attributes
        parts: list[str] = []
        if self.description:
            parts.append(self.description)
        if attrs.project is not None:
            parts.append(f"prj:{attrs.project}")
        if attrs.due is not None:
            parts.append(f"due:{attrs.due.isoformat()}")
        if attrs.priority is not None:
            parts.append(f"prio:{attrs.priority.value}")
        parts.extend(f"tag:{t}" for t in attrs.tags)
        parts.extend(f"meta:{k}={v}" for k, v in attrs.meta.items())
        return " ".join(parts)


def _classify(token: str) -> tuple[str, str] | None:
    """Return (kind, value) for a sigil token, None for plain text."""
    lowered = token.lower()
    for prefix, kind in _PREFIXES:
        if lowered.startswith(prefix) and len(token) > len(prefix):
            return kind, token[len(prefix) :]
    kind = _SHORTHANDS.get(token[0])
    if kind is not None and len(token) > 1:
        value = token[1:]
        # "%foo" without a key=value pair is ordinary text, unlike "meta:foo".
        if kind == _META and not _split_meta(value):
            return None
        return kind, value
    return None


def _split_meta(value: str) -> tuple[str, str] | None:
    key, sep, val = value.partition("=")
    if not sep or not key or not val:
        return None
    return key, val


def _parse_due(raw: str, position: int, default_tz: tzinfo) -> datetime:
    # A bare date ("2024-12-01") is not a full date-time.
    if "t" not in raw.lower():
        raise InvalidDueDate(position, raw)
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise InvalidDueDate(position, raw) from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=default_tz)
    return value


def parse(text: str, *, default_tz: tzinfo = timezone.utc) -> ParsedDescriptor:
    """
    Split a descriptor into description text and structured attributes.

    Raises a ParseError subclass (InvalidDueDate, InvalidPriority,
    MalformedMetaToken) on the first bad token; nothing is silently corrected.
    """
    attrs = TaskAttributes()
    runs: list[str] = []
    run_start: int | None = None
    run_end = 0

    for m in _TOKEN_RE.finditer(text):
        token = m.group(0)
        classified = _classify(token)

        if classified is None:
            if run_start is None:
                run_start = m.start()
            run_end = m.end()
            continue

        if run_start is not None:
            runs.append(text[run_start:run_end])
            run_start = None

        kind, value = classified
        if kind == _PROJECT:
            attrs.project = value
        elif kind == _TAG:
            attrs.tags = unique_tags([*attrs.tags, value])
        elif kind == _PRIORITY:
            prio = Priority.parse(value)
            if prio is None:
                raise InvalidPriority(value)
            attrs.priority = prio
        elif kind == _DUE:
            attrs.due = _parse_due(value, m.start(), default_tz)
        else:
            pair = _split_meta(value)
            if pair is None:
                raise MalformedMetaToken(m.start(), value)
            attrs.meta[pair[0]] = pair[1]

    if run_start is not None:
        runs.append(text[run_start:run_end])

    return ParsedDescriptor(description=" ".join(runs), attributes=attrs)
