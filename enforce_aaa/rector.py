"""enforce-aaa rule — Arrange / Act / Assert markers for PHPUnit tests.

For every test method the rule finds the first `$this->assert*()` or
`self::assert*()` statement and labels the body around it:

    // Arrange      first statement (only when two or more precede the assert)
    // Act          last non-assert statement before the assert
    // Assert       the first assert call

Existing phase markers are stripped and re-derived from the current
statement layout on every run, so applying the rule twice is a no-op and
a marker never survives on a statement that no longer plays that role.
Unrelated comments stay where they are, below the marker.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from enforce_aaa.ast_nodes import (
    ChangeResult, ClassMethod, Comment, ExpressionStmt, MethodCall, Phase,
    Statement, StaticCall, Variable,
)

logger = logging.getLogger(__name__)

ASSERT_PREFIX = "assert"

# PHP class references are case-insensitive, `$this` is not.
_STATIC_REFERENCES = ("self", "static")

_PHASE_KEYWORD = re.compile(r"\b(?:arrange|act|assert)\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Test method detection
# ---------------------------------------------------------------------------

def is_test_method(method: ClassMethod) -> bool:
    """PHPUnit convention: `test*` name or an `@test` doc annotation."""
    if method.name and method.name.startswith("test"):
        return True
    if method.doc_comment is not None and "@test" in method.doc_comment.text.lower():
        return True
    return False


# ---------------------------------------------------------------------------
# Verification-call scanner
# ---------------------------------------------------------------------------

def is_assert_call(stmt: Statement) -> bool:
    """True for `$this->assert*(...);` and `self::assert*(...);` statements."""
    if not isinstance(stmt, ExpressionStmt):
        return False
    expr = stmt.expr

    if isinstance(expr, MethodCall):
        if isinstance(expr.var, Variable) and expr.var.name == "this":
            return expr.name.startswith(ASSERT_PREFIX)
        return False

    if isinstance(expr, StaticCall):
        if expr.class_name.lower() in _STATIC_REFERENCES:
            return expr.name.startswith(ASSERT_PREFIX)
        return False

    return False


def find_first_assert(stmts: List[Statement]) -> Optional[int]:
    """Index of the first top-level assert call, or None."""
    for i, stmt in enumerate(stmts):
        if is_assert_call(stmt):
            return i
    return None


# ---------------------------------------------------------------------------
# Marker stripping
# ---------------------------------------------------------------------------

def is_phase_marker(comment: Comment) -> bool:
    return _PHASE_KEYWORD.search(comment.text) is not None


def strip_aaa_comments(comments: List[Comment]) -> List[Comment]:
    """Drop every phase-marker comment, keeping the rest in order."""
    return [c for c in comments if not is_phase_marker(c)]


# ---------------------------------------------------------------------------
# Role assignment
# ---------------------------------------------------------------------------

def assign_phases(stmts: List[Statement], assert_index: int) -> Dict[int, Phase]:
    """Map statement index -> phase for a body whose first assert is at `assert_index`.

    A single statement before the assert is the Act, never the Arrange.
    With two or more, the first is the Arrange and the nearest non-assert
    statement before the assert (index 0 excluded) is the Act.
    """
    phases: Dict[int, Phase] = {}

    if assert_index == 1:
        phases[0] = Phase.ACT
    elif assert_index > 1:
        phases[0] = Phase.ARRANGE
        act_index = _find_act_index(stmts, assert_index)
        if act_index is not None:
            phases[act_index] = Phase.ACT

    phases[assert_index] = Phase.ASSERT
    return phases


def _find_act_index(stmts: List[Statement], assert_index: int) -> Optional[int]:
    for i in range(assert_index - 1, 0, -1):
        if not is_assert_call(stmts[i]):
            return i
    return None


# ---------------------------------------------------------------------------
# Marker writing
# ---------------------------------------------------------------------------

def _planned_comments(stmt: Statement, phase: Optional[Phase]) -> List[Comment]:
    kept = strip_aaa_comments(stmt.get_comments())
    if phase is None:
        return kept
    return [Comment(text=phase.comment_text)] + kept


def _texts(comments: List[Comment]) -> List[str]:
    return [c.text for c in comments]


def reconcile_aaa_markers(method: ClassMethod) -> ChangeResult:
    """Strip and rewrite the phase markers of one test method.

    The layout is planned first and compared against the current comments;
    statements whose comments already match are not touched, so an
    already-annotated method comes back `Unchanged` with its original
    comment objects.
    """
    if not is_test_method(method):
        return ChangeResult.unchanged()

    stmts = method.stmts
    if not stmts:
        return ChangeResult.unchanged()

    assert_index = find_first_assert(stmts)
    if assert_index is None:
        logger.debug("%s: no assert call, skipping", method.name)
        return ChangeResult.unchanged()

    phases = assign_phases(stmts, assert_index)
    logger.debug(
        "%s: first assert at %d, phases %s",
        method.name, assert_index,
        {i: p.value for i, p in sorted(phases.items())},
    )

    changed = False
    for i, stmt in enumerate(stmts):
        planned = _planned_comments(stmt, phases.get(i))
        if _texts(planned) == _texts(stmt.get_comments()):
            continue
        stmt.set_comments(planned)
        changed = True

    if not changed:
        return ChangeResult.unchanged()
    return ChangeResult.modified(method)


# ---------------------------------------------------------------------------
# Rule definition
# ---------------------------------------------------------------------------

@dataclass
class CodeSample:
    bad_code: str
    good_code: str


@dataclass
class RuleDefinition:
    description: str
    code_samples: List[CodeSample] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "description": self.description,
            "code_samples": [
                {"bad_code": s.bad_code, "good_code": s.good_code}
                for s in self.code_samples
            ],
        }


_BAD_SAMPLE = """\
final class FooTest extends PHPUnit\\Framework\\TestCase
{
    public function testFoo(): void
    {
        $date = new DateTimeImmutable('2025-01-01');
        $formatted = $date->format('Y-m-d');
        $this->assertEquals('2025-01-01', $formatted);
    }
}
"""

_GOOD_SAMPLE = """\
final class FooTest extends PHPUnit\\Framework\\TestCase
{
    public function testFoo(): void
    {
        // Arrange
        $date = new DateTimeImmutable('2025-01-01');
        // Act
        $formatted = $date->format('Y-m-d');
        // Assert
        $this->assertEquals('2025-01-01', $formatted);
    }
}
"""


class EnforceAaaPatternRector:
    """Host-facing wrapper around `reconcile_aaa_markers`."""

    def get_node_types(self) -> List[type]:
        return [ClassMethod]

    def get_rule_definition(self) -> RuleDefinition:
        return RuleDefinition(
            description="Enforce AAA (Arrange-Act-Assert) pattern in PHPUnit test methods",
            code_samples=[CodeSample(bad_code=_BAD_SAMPLE, good_code=_GOOD_SAMPLE)],
        )

    def refactor(self, node: object) -> Optional[ClassMethod]:
        """Return the node when it was changed, None otherwise."""
        if not isinstance(node, ClassMethod):
            return None
        return reconcile_aaa_markers(node).method
