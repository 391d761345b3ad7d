"""
Read and write .env documents as a sequence of entries.

Each non-blank line becomes one entry: a comment, a variable, or a malformed
line kept as a comment so nothing is silently dropped.
"""

import logging
import re
import typing

import attr

from .utils import looks_encrypted

log = logging.getLogger(__name__)

MALFORMED = 'MALFORMED:'

ENTRY_PATTERN = re.compile(r"""
    ^(?P<key>[A-Za-z_][A-Za-z0-9_]*)
    \s*=\s*
    (?P<value>
        "(?:[^"\\]|\\.)*"
        | '[^']*'
        | (?:\\\#|[^\#])*?
    )
    (?:\s*\#(?P<comment>.*))?$
""", re.VERBOSE)

COMMENT_PATTERN = re.compile(r'^\s*#(?P<comment>.*)$')

DOUBLE_QUOTED_ESCAPE = re.compile(r'\\(["\\nr])')

ESCAPED = {'n': '\n', 'r': '\r'}

LINE_BREAK = re.compile(r'\r\n|\r|\n')


@attr.s(frozen=True)
class Entry:
    key: str = attr.ib(default='')
    value: str = attr.ib(default='')
    comment: typing.Optional[str] = attr.ib(default=None)
    is_encrypted: bool = attr.ib(default=False)

    @property
    def is_variable(self) -> bool:
        return bool(self.key)

    @property
    def is_comment(self) -> bool:
        return not self.key and not self.value

    @property
    def is_malformed(self) -> bool:
        return self.is_comment and (self.comment or '').startswith(MALFORMED)


Document = typing.Tuple[Entry, ...]


def unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return DOUBLE_QUOTED_ESCAPE.sub(
            lambda m: ESCAPED.get(m.group(1), m.group(1)), value[1:-1])
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    return value.replace('\\#', '#')


def parse_line(line: str) -> typing.Optional[Entry]:
    """Parse a single line, returning None for blank lines."""
    line = line.strip()

    if not line:
        return None

    match = COMMENT_PATTERN.match(line)
    if match:
        return Entry(comment=match.group('comment').strip())

    match = ENTRY_PATTERN.match(line)
    if match:
        value = unquote(match.group('value').strip())
        comment = (match.group('comment') or '').strip() or None
        return Entry(
            key=match.group('key'),
            value=value,
            comment=comment,
            is_encrypted=looks_encrypted(value, strict=True))

    log.warning("Keeping a malformed line as a comment")
    return Entry(comment=f"{MALFORMED} {line}")


def parse(text: str) -> Document:
    """Parse the text of a .env file into entries, in order."""
    if text.startswith('\ufeff'):
        text = text[1:]

    # Only \r\n, \r and \n end a line; other line separators belong to values.
    entries = tuple(e for e in map(parse_line, LINE_BREAK.split(text)) if e)
    log.debug(f"Parsed {len(entries)} entries")
    return entries


def should_quote(value: str) -> bool:
    return any(c.isspace() or c in '"\'#' for c in value)


def quote(value: str) -> str:
    if not should_quote(value):
        return value
    escaped = (value
               .replace('\\', '\\\\')
               .replace('"', '\\"')
               .replace('\n', '\\n')
               .replace('\r', '\\r'))
    return f'"{escaped}"'


def render_entry(entry: Entry) -> typing.Optional[str]:
    if entry.is_comment:
        return f"# {entry.comment}" if entry.comment else None

    line = f"{entry.key}={quote(entry.value)}"
    if entry.comment:
        line += f" # {entry.comment}"
    return line


def render(entries: typing.Iterable[Entry]) -> str:
    """
    Render entries as the text of a .env file.

    Values are quoted where needed so that parsing the result gives the same
    entries back. Comment entries with no text are left out.
    """
    lines = [line for line in map(render_entry, entries) if line is not None]
    return ''.join(f"{line}\n" for line in lines)
