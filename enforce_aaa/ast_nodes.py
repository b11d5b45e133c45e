"""enforce-aaa AST Node definitions.

The rule only needs a flat view of a PHP test method: the method itself,
its top-level statements, the comments attached to each statement, and
enough of each expression to recognise `$this->assert*()` and
`self::assert*()` calls. Everything else is kept as opaque source text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from enforce_aaa.errors import SourceLocation


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@dataclass
class Comment:
    """A comment rendered on its own line(s) directly before a statement."""
    text: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        return self.text


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class Expr:
    location: Optional[SourceLocation] = None


@dataclass
class Variable(Expr):
    """`$name`, stored without the dollar sign."""
    name: str = ""


@dataclass
class MethodCall(Expr):
    """`$var->name(...)`"""
    var: Expr = field(default_factory=Expr)
    name: str = ""


@dataclass
class StaticCall(Expr):
    """`Class::name(...)`"""
    class_name: str = ""
    name: str = ""


@dataclass
class OtherExpr(Expr):
    """Any expression the rule does not need to look into."""
    source: str = ""


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class Statement:
    """Base class for top-level statements of a method body.

    Statements compare by identity: two `$x = 1;` lines in the same body
    are different statements.
    """
    comments: list[Comment] = field(default_factory=list)
    source: str = ""
    location: Optional[SourceLocation] = None

    def get_comments(self) -> list[Comment]:
        return list(self.comments)

    def set_comments(self, comments: list[Comment]) -> None:
        self.comments = list(comments)


@dataclass(eq=False)
class ExpressionStmt(Statement):
    """An expression used as a statement: `expr;`"""
    expr: Expr = field(default_factory=Expr)


@dataclass(eq=False)
class OtherStmt(Statement):
    """Control flow, `return`, `echo`, blocks and the rest."""
    pass


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ClassMethod:
    name: str = ""
    doc_comment: Optional[Comment] = None
    # None for abstract and interface methods
    stmts: Optional[list[Statement]] = None
    location: Optional[SourceLocation] = None


class Phase(Enum):
    ARRANGE = "Arrange"
    ACT = "Act"
    ASSERT = "Assert"

    @property
    def comment_text(self) -> str:
        return f"// {self.value}"


# ---------------------------------------------------------------------------
# Change result
# ---------------------------------------------------------------------------

@dataclass
class ChangeResult:
    """Outcome of running the rule on one method.

    `method` is set only when the method was modified; the result is
    truthy in that case so hosts can write `if reconcile(m): ...`.
    """
    method: Optional[ClassMethod] = None

    @property
    def changed(self) -> bool:
        return self.method is not None

    def __bool__(self) -> bool:
        return self.changed

    @classmethod
    def unchanged(cls) -> ChangeResult:
        return cls()

    @classmethod
    def modified(cls, method: ClassMethod) -> ChangeResult:
        return cls(method=method)
