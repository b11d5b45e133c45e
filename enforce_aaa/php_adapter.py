"""enforce-aaa PHP Adapter — Regex-based PHP reader and comment rewriter.

Reads PHP source into `ClassMethod` nodes with flat top-level statement
lists and writes comment changes back without touching anything else.
Uses a character scanner plus regexes to avoid external dependencies:

  1. The scanner blanks out string literals and comments, producing a
     "masked" copy of the source with identical offsets, and records each
     comment as a token.
  2. Classes, methods and statement boundaries are found on the masked
     copy, so braces and semicolons inside strings or comments never
     count.
  3. Rendering replaces only the comment block in front of statements
     whose comments changed, bottom-up so earlier offsets stay valid.

Usage:
    php_file = parse_php(source, filename="tests/FooTest.php")
    for method in php_file.methods:
        reconcile_aaa_markers(method)
    new_source = print_php(php_file)
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from enforce_aaa.ast_nodes import (
    ClassMethod, Comment, Expr, ExpressionStmt, MethodCall, OtherExpr,
    OtherStmt, Statement, StaticCall, Variable,
)
from enforce_aaa.errors import ParseError, SourceLocation, syntax_error


# ---------------------------------------------------------------------------
# Regex Patterns
# ---------------------------------------------------------------------------

_CLASS_PATTERN = re.compile(
    r'(?<![:>$\w])(?:class|trait|interface|enum)\s+(\w+)[^{;]*\{',
)

_ANONYMOUS_CLASS = re.compile(r'\bnew\s*$')

_FUNC_PATTERN = re.compile(r'\bfunction\s+&?\s*(\w+)\s*\(')

_MEMBER_PREFIX = re.compile(
    r'(?:\s|#\[[^\]]*\]|\b(?:public|protected|private|static|abstract|final|readonly)\b)*'
)

_HEREDOC_START = re.compile(r'<<<[ \t]*(["\']?)([A-Za-z_]\w*)\1\r?\n')

_BLOCK_KEYWORD = re.compile(
    r'(?:if|for|foreach|while|switch|try|declare|function)\b|\{'
)

_CONTINUATION = re.compile(r'(?:else|elseif|catch|finally)\b')

_STATEMENT_KEYWORD = re.compile(
    r'(?:return|echo|unset|global|const|break|continue|goto|use|do|static\s*\$)\b'
)

_THIS_CALL = re.compile(r'\$this\s*->\s*([A-Za-z_]\w*)\s*\(')

_STATIC_CALL = re.compile(r'(\\?[A-Za-z_][\w\\]*)\s*::\s*([A-Za-z_]\w*)\s*\(')

_OPEN = "([{"
_CLOSE = ")]}"


# ---------------------------------------------------------------------------
# Parsed file
# ---------------------------------------------------------------------------

@dataclass
class _StatementSpan:
    stmt: Statement
    start: int
    # First attached comment, or `start` when there is none
    region_start: int
    original: List[str] = field(default_factory=list)
    # Each attached comment with its source text up to the next comment or
    # the statement, so blank lines between comments survive a rewrite
    chunks: List[Tuple[Comment, str]] = field(default_factory=list)


@dataclass
class PhpFile:
    """A PHP source file with its test-relevant methods."""
    source: str
    filename: str = "<php>"
    methods: List[ClassMethod] = field(default_factory=list)
    _spans: List[_StatementSpan] = field(default_factory=list, repr=False)

    @property
    def changed(self) -> bool:
        return any(
            [c.text for c in span.stmt.get_comments()] != span.original
            for span in self._spans
        )


@dataclass
class _CommentToken:
    start: int
    end: int
    text: str


@dataclass
class _AttachedComment:
    text: str
    location: SourceLocation
    offset: int


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

class _PHPScanner:
    """Masks strings and comments, keeping offsets and newlines intact."""

    def __init__(self, source: str, filename: str):
        self.source = source
        self.filename = filename
        self.comments: List[_CommentToken] = []
        self._chars = list(source)
        self._line_starts = [0] + [m.end() for m in re.finditer(r'\n', source)]

    def location(self, pos: int) -> SourceLocation:
        line = bisect.bisect_right(self._line_starts, pos)
        column = pos - self._line_starts[line - 1] + 1
        return SourceLocation(line=line, column=column, file=self.filename)

    def error(self, message: str, pos: int) -> ParseError:
        return ParseError(syntax_error(message, self.location(pos)))

    def scan(self) -> str:
        src = self.source
        n = len(src)
        i = 0
        while i < n:
            ch = src[i]
            if ch == '/' and src.startswith('//', i):
                i = self._line_comment(i)
            elif ch == '#' and not src.startswith('#[', i):
                i = self._line_comment(i)
            elif ch == '/' and src.startswith('/*', i):
                end = src.find('*/', i + 2)
                if end == -1:
                    raise self.error("Unterminated comment", i)
                i = self._comment(i, end + 2)
            elif ch in ("'", '"', '`'):
                i = self._quoted(i, ch)
            elif ch == '<' and src.startswith('<<<', i):
                i = self._heredoc(i)
            else:
                i += 1
        return "".join(self._chars)

    def _blank(self, start: int, end: int) -> None:
        for k in range(start, end):
            if self._chars[k] != '\n':
                self._chars[k] = ' '

    def _comment(self, start: int, end: int) -> int:
        self.comments.append(_CommentToken(start, end, self.source[start:end]))
        self._blank(start, end)
        return end

    def _line_comment(self, start: int) -> int:
        end = self.source.find('\n', start)
        if end == -1:
            end = len(self.source)
        if end > start and self.source[end - 1] == '\r':
            end -= 1
        return self._comment(start, end)

    def _quoted(self, start: int, quote: str) -> int:
        src = self.source
        i = start + 1
        while i < len(src):
            if src[i] == '\\':
                i += 2
                continue
            if src[i] == quote:
                self._blank(start + 1, i)
                return i + 1
            i += 1
        raise self.error("Unterminated string literal", start)

    def _heredoc(self, start: int) -> int:
        m = _HEREDOC_START.match(self.source, start)
        if not m:
            return start + 3
        label = re.escape(m.group(2))
        closing = re.compile(r'^[ \t]*' + label + r'(?!\w)', re.MULTILINE)
        end = closing.search(self.source, m.end())
        if end is None:
            raise self.error(f"Unterminated heredoc '{m.group(2)}'", start)
        self._blank(start + 3, end.end())
        return end.end()


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _PHPParser:
    """Finds class methods and splits their bodies into statements."""

    def __init__(self, source: str, filename: str):
        self.source = source
        self.filename = filename
        self.scanner = _PHPScanner(source, filename)
        self.masked = ""
        self.comments: List[_CommentToken] = []
        self._comment_starts: List[int] = []
        self.methods: List[ClassMethod] = []
        self.spans: List[_StatementSpan] = []

    def parse(self) -> None:
        self.masked = self.scanner.scan()
        self.comments = self.scanner.comments
        self._comment_starts = [c.start for c in self.comments]

        pos = 0
        while True:
            m = _CLASS_PATTERN.search(self.masked, pos)
            if m is None:
                break
            body_start = m.end()
            body_end = self._matching(m.end() - 1)
            if not _ANONYMOUS_CLASS.search(self.masked, max(0, m.start() - 16), m.start()):
                self._parse_class_body(body_start, body_end)
            pos = body_end + 1

    def _matching(self, open_pos: int) -> int:
        """Offset of the bracket closing the one at `open_pos`."""
        stack: List[str] = []
        for i in range(open_pos, len(self.masked)):
            ch = self.masked[i]
            if ch in _OPEN:
                stack.append(ch)
            elif ch in _CLOSE:
                if not stack or _OPEN.index(stack[-1]) != _CLOSE.index(ch):
                    raise self.scanner.error(f"Unbalanced '{ch}'", i)
                stack.pop()
                if not stack:
                    return i
        raise self.scanner.error(f"Unclosed '{self.masked[open_pos]}'", open_pos)

    def _parse_class_body(self, start: int, end: int) -> None:
        pos = start
        while True:
            m = _FUNC_PATTERN.search(self.masked, pos, end)
            if m is None:
                return
            params_end = self._matching(m.end() - 1)
            body_pos = self._find_body(params_end + 1, end)
            method = ClassMethod(
                name=m.group(1),
                doc_comment=self._doc_comment_before(m.start()),
                location=self.scanner.location(m.start()),
            )
            if self.masked[body_pos] == ';':
                pos = body_pos + 1
            else:
                body_close = self._matching(body_pos)
                method.stmts = self._split_statements(body_pos, body_close)
                pos = body_close + 1
            self.methods.append(method)

    def _find_body(self, start: int, end: int) -> int:
        """Offset of the body's `{`, or of the `;` ending an abstract method."""
        for i in range(start, end):
            if self.masked[i] in '{;':
                return i
        raise self.scanner.error("Method declaration without body or ';'", start)

    def _doc_comment_before(self, pos: int) -> Optional[Comment]:
        # Attributes and modifiers may sit between the docblock and `function`.
        k = bisect.bisect_left(self._comment_starts, pos) - 1
        while k >= 0:
            token = self.comments[k]
            if not _MEMBER_PREFIX.fullmatch(self.masked, token.end, pos):
                return None
            if token.text.startswith('/**'):
                return Comment(text=token.text, location=self.scanner.location(token.start))
            k -= 1
        return None

    # -- statements ---------------------------------------------------------

    def _split_statements(self, body_open: int, body_close: int) -> List[Statement]:
        stmts: List[Statement] = []
        prev_end = body_open + 1
        i = prev_end
        while True:
            i = self._skip_space(i, body_close)
            if i >= body_close:
                break
            end = self._statement_end(i, body_close)
            comments = self._attached_comments(prev_end, i)
            stmt = self._make_statement(i, end, comments)
            region_start = comments[0].offset if comments else i
            bounds = [c.offset for c in comments] + [i]
            self.spans.append(_StatementSpan(
                stmt=stmt, start=i, region_start=region_start,
                original=[c.text for c in stmt.comments],
                chunks=[(c, self.source[bounds[k]:bounds[k + 1]])
                        for k, c in enumerate(stmt.comments)],
            ))
            stmts.append(stmt)
            prev_end = end
            i = end
        return stmts

    def _skip_space(self, i: int, end: int) -> int:
        while i < end and self.masked[i].isspace():
            i += 1
        return i

    def _statement_end(self, start: int, limit: int) -> int:
        block = _BLOCK_KEYWORD.match(self.masked, start) is not None
        depth = 0
        i = start
        while i < limit:
            ch = self.masked[i]
            if ch in _OPEN:
                depth += 1
            elif ch in _CLOSE:
                depth -= 1
                if depth < 0:
                    raise self.scanner.error(f"Unbalanced '{ch}'", i)
                if depth == 0 and ch == '}' and block:
                    j = self._skip_space(i + 1, limit)
                    if not _CONTINUATION.match(self.masked, j, limit):
                        return i + 1
                    i = j
                    continue
            elif ch == ';' and depth == 0:
                if block:
                    j = self._skip_space(i + 1, limit)
                    if _CONTINUATION.match(self.masked, j, limit):
                        i = j
                        continue
                return i + 1
            i += 1
        raise self.scanner.error("Statement is not terminated", start)

    def _attached_comments(self, prev_end: int, stmt_start: int) -> List[_AttachedComment]:
        """Comments between two statements, minus the previous one's trailing comment."""
        prev_line = self.scanner.location(max(prev_end - 1, 0)).line
        lo = bisect.bisect_left(self._comment_starts, prev_end)
        hi = bisect.bisect_left(self._comment_starts, stmt_start)
        attached = []
        for token in self.comments[lo:hi]:
            loc = self.scanner.location(token.start)
            if loc.line == prev_line:
                continue
            attached.append(_AttachedComment(token.text, loc, token.start))
        return attached

    def _make_statement(self, start: int, end: int,
                        comments: List[_AttachedComment]) -> Statement:
        text = self.source[start:end]
        masked = self.masked[start:end]
        loc = self.scanner.location(start)
        attached = [Comment(text=c.text, location=c.location) for c in comments]

        expr = self._call_expr(masked, loc)
        if expr is not None:
            return ExpressionStmt(comments=attached, source=text, location=loc, expr=expr)
        if masked.endswith(';') and not _BLOCK_KEYWORD.match(masked) \
                and not _STATEMENT_KEYWORD.match(masked):
            return ExpressionStmt(
                comments=attached, source=text, location=loc,
                expr=OtherExpr(source=text[:-1].rstrip(), location=loc),
            )
        return OtherStmt(comments=attached, source=text, location=loc)

    def _call_expr(self, masked: str, loc: SourceLocation) -> Optional[Expr]:
        """`$this->name(...);` or `Class::name(...);` spanning the whole statement."""
        m = _THIS_CALL.match(masked)
        if m is not None:
            if not self._call_fills_statement(masked, m.end() - 1):
                return None
            return MethodCall(var=Variable(name="this", location=loc), name=m.group(1), location=loc)

        m = _STATIC_CALL.match(masked)
        if m is not None:
            if not self._call_fills_statement(masked, m.end() - 1):
                return None
            return StaticCall(class_name=m.group(1), name=m.group(2), location=loc)

        return None

    @staticmethod
    def _call_fills_statement(masked: str, open_paren: int) -> bool:
        depth = 0
        for i in range(open_paren, len(masked)):
            ch = masked[i]
            if ch in _OPEN:
                depth += 1
            elif ch in _CLOSE:
                depth -= 1
                if depth == 0:
                    return masked[i + 1:].strip() == ';'
        return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_php(source: str, filename: str = "<php>") -> PhpFile:
    """Parse PHP source into class methods with flat statement lists.

    Raises ParseError for unterminated strings or comments and unbalanced
    brackets.
    """
    parser = _PHPParser(source, filename)
    parser.parse()
    return PhpFile(source=source, filename=filename,
                   methods=parser.methods, _spans=parser.spans)


def print_php(php_file: PhpFile) -> str:
    """Render `php_file` back to source, rewriting only changed comment blocks."""
    source = php_file.source
    newline = "\r\n" if "\r\n" in source else "\n"
    edits: List[Tuple[int, int, str]] = []

    for span in php_file._spans:
        comments = span.stmt.get_comments()
        if [c.text for c in comments] == span.original:
            continue
        start, text = _render_comments(source, span, comments, newline)
        edits.append((start, span.start, text))

    # Bottom-up so earlier offsets stay valid.
    edits.sort(key=lambda e: e[0], reverse=True)
    for start, end, text in edits:
        source = source[:start] + text + source[end:]
    return source


def _render_comments(source: str, span: _StatementSpan, comments: List[Comment],
                     newline: str) -> Tuple[int, str]:
    """Replacement text for source[start:span.start], with its start offset.

    Comments the statement already had are copied with the source text that
    followed them; only new comments are laid out here.
    """
    region_start = span.region_start
    if not comments:
        return region_start, ""
    line_start = source.rfind('\n', 0, region_start) + 1
    prefix = source[line_start:region_start]
    if prefix.strip() == "":
        indent, lead = prefix, ""
    else:
        # Statement shares its line with the previous one.
        indent = _get_indent(prefix)
        lead = newline + indent
        region_start = line_start + len(prefix.rstrip(" \t"))

    kept = {id(c): chunk for c, chunk in span.chunks}
    parts = [lead]
    for c in comments:
        parts.append(kept.get(id(c), f"{c.text}{newline}{indent}"))
    return region_start, "".join(parts)


def _get_indent(line: str) -> str:
    """Extract leading whitespace from a line."""
    match = re.match(r'^([ \t]*)', line)
    return match.group(1) if match else ""
