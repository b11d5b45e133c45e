"""enforce-aaa Rule Tests — AAA-001 through AAA-006.

Tests for:
  - Finding the first `$this->assert*()` / `self::assert*()` statement
  - Stripping stale phase markers
  - Arrange / Act / Assert role assignment
  - Reconciling markers on a whole method (idempotence, no-ops)
  - The host-facing rector wrapper
"""

import pytest

from enforce_aaa.ast_nodes import (
    ChangeResult, ClassMethod, Comment, ExpressionStmt, MethodCall, OtherExpr,
    OtherStmt, Phase, StaticCall, Variable,
)
from enforce_aaa.rector import (
    EnforceAaaPatternRector, assign_phases, find_first_assert, is_assert_call,
    is_phase_marker, is_test_method, reconcile_aaa_markers, strip_aaa_comments,
)


def _comments(texts):
    return [Comment(text=t) for t in texts or []]


def this_call(name="assertSame", comments=None):
    return ExpressionStmt(
        comments=_comments(comments),
        source=f"$this->{name}(1, $x);",
        expr=MethodCall(var=Variable(name="this"), name=name),
    )


def static_call(name="assertSame", class_name="self", comments=None):
    return ExpressionStmt(
        comments=_comments(comments),
        source=f"{class_name}::{name}(1, $x);",
        expr=StaticCall(class_name=class_name, name=name),
    )


def plain(source="$x = 1;", comments=None):
    return ExpressionStmt(
        comments=_comments(comments),
        source=source,
        expr=OtherExpr(source=source.rstrip(";")),
    )


def method(stmts, name="testFoo", doc=None):
    return ClassMethod(
        name=name,
        doc_comment=Comment(text=doc) if doc else None,
        stmts=stmts,
    )


def texts(stmts):
    return [[c.text for c in s.get_comments()] for s in stmts]


# ===========================================================================
# AAA-001: Verification-call scanner
# ===========================================================================

class TestAAA001:
    """AAA-001: The first top-level assert call is found."""

    def test_this_assert_is_recognised(self):
        assert is_assert_call(this_call("assertEquals"))

    def test_self_assert_is_recognised(self):
        assert is_assert_call(static_call("assertTrue"))

    def test_static_assert_is_recognised(self):
        assert is_assert_call(static_call("assertCount", class_name="static"))

    def test_class_reference_is_case_insensitive(self):
        assert is_assert_call(static_call("assertNull", class_name="SELF"))

    def test_prefix_is_case_sensitive(self):
        assert not is_assert_call(this_call("AssertSame"))
        assert not is_assert_call(static_call("Assert"))

    def test_other_receivers_do_not_count(self):
        stmt = ExpressionStmt(expr=MethodCall(var=Variable(name="helper"), name="assertSame"))
        assert not is_assert_call(stmt)
        assert not is_assert_call(static_call("assertSame", class_name="Assert"))
        assert not is_assert_call(static_call("assertSame", class_name="parent"))

    def test_non_assert_method_on_this(self):
        assert not is_assert_call(this_call("expectException"))

    def test_non_expression_statement(self):
        assert not is_assert_call(OtherStmt(source="return;"))

    def test_index_of_first_assert(self):
        stmts = [plain(), plain(), this_call(), static_call()]
        assert find_first_assert(stmts) == 2

    def test_assert_at_start(self):
        assert find_first_assert([static_call(), plain()]) == 0

    def test_no_assert_returns_none(self):
        assert find_first_assert([plain(), this_call("createMock")]) is None

    def test_empty_sequence(self):
        assert find_first_assert([]) is None


# ===========================================================================
# AAA-002: Marker stripping
# ===========================================================================

class TestAAA002:
    """AAA-002: Stale phase markers are stripped, other comments survive."""

    @pytest.mark.parametrize("text", [
        "// Arrange", "// arrange", "// ACT", "// Act:", "/* Assert */",
        "# assert", "// Arrange & Act",
    ])
    def test_phase_markers_detected(self, text):
        assert is_phase_marker(Comment(text=text))

    @pytest.mark.parametrize("text", [
        "// TODO: refactor", "// exact match required", "/** @var Foo $foo */",
        "// assertions follow", "// interaction", "// Asserts the result",
        "// Arranges fixtures", "// acts on a copy",
    ])
    def test_unrelated_comments_kept(self, text):
        assert not is_phase_marker(Comment(text=text))

    def test_strip_preserves_order(self):
        comments = _comments(["// first", "// Arrange", "// second", "// act"])
        assert [c.text for c in strip_aaa_comments(comments)] == ["// first", "// second"]

    def test_strip_returns_same_objects(self):
        keep = Comment(text="// keep me")
        assert strip_aaa_comments([Comment(text="// Assert"), keep])[0] is keep


# ===========================================================================
# AAA-003: Role assignment
# ===========================================================================

class TestAAA003:
    """AAA-003: Arrange / Act / Assert are assigned from the assert index."""

    def test_assert_first(self):
        assert assign_phases([this_call()], 0) == {0: Phase.ASSERT}

    def test_single_statement_before_assert_is_act(self):
        phases = assign_phases([plain(), this_call()], 1)
        assert phases == {0: Phase.ACT, 1: Phase.ASSERT}

    def test_two_statements_before_assert(self):
        phases = assign_phases([plain(), plain(), this_call()], 2)
        assert phases == {0: Phase.ARRANGE, 1: Phase.ACT, 2: Phase.ASSERT}

    def test_act_is_statement_just_before_assert(self):
        phases = assign_phases([plain(), plain(), plain(), this_call()], 3)
        assert phases == {0: Phase.ARRANGE, 2: Phase.ACT, 3: Phase.ASSERT}

    def test_act_scan_skips_assert_calls(self):
        stmts = [plain(), plain(), this_call(), this_call()]
        assert assign_phases(stmts, 3) == {0: Phase.ARRANGE, 1: Phase.ACT, 3: Phase.ASSERT}

    def test_no_act_when_only_asserts_in_between(self):
        stmts = [plain(), this_call(), static_call()]
        assert assign_phases(stmts, 2) == {0: Phase.ARRANGE, 2: Phase.ASSERT}

    def test_marker_texts(self):
        assert [p.comment_text for p in Phase] == ["// Arrange", "// Act", "// Assert"]


# ===========================================================================
# AAA-004: Reconciling a method
# ===========================================================================

class TestAAA004:
    """AAA-004: Markers are reconciled on a whole test method."""

    def test_three_phase_layout(self):
        stmts = [plain("$a = 1;"), plain("$b = 2;"), plain("$c = f($a, $b);"), this_call()]
        result = reconcile_aaa_markers(method(stmts))

        assert result.changed
        assert texts(stmts) == [["// Arrange"], [], ["// Act"], ["// Assert"]]

    def test_two_statement_shortcut(self):
        stmts = [plain(), this_call()]
        reconcile_aaa_markers(method(stmts))
        assert texts(stmts) == [["// Act"], ["// Assert"]]

    def test_later_asserts_are_not_marked(self):
        stmts = [plain(), this_call("assertY"), this_call("assertX")]
        reconcile_aaa_markers(method(stmts))
        assert texts(stmts) == [["// Act"], ["// Assert"], []]

    def test_assert_only_body(self):
        stmts = [static_call(), static_call()]
        reconcile_aaa_markers(method(stmts))
        assert texts(stmts) == [["// Assert"], []]

    def test_stale_marker_is_re_derived(self):
        stmts = [plain(comments=["// arrange"]), this_call()]
        result = reconcile_aaa_markers(method(stmts))

        assert result.changed
        assert texts(stmts) == [["// Act"], ["// Assert"]]

    def test_unrelated_comment_kept_below_marker(self):
        stmts = [plain(comments=["// TODO: refactor"]), this_call()]
        reconcile_aaa_markers(method(stmts))
        assert texts(stmts)[0] == ["// Act", "// TODO: refactor"]

    def test_inflected_keyword_is_a_plain_comment(self):
        stmts = [plain(), this_call(comments=["// Asserts the result"])]
        m = method(stmts)

        reconcile_aaa_markers(m)
        second = reconcile_aaa_markers(m)

        assert texts(stmts) == [["// Act"], ["// Assert", "// Asserts the result"]]
        assert not second.changed

    def test_misplaced_markers_are_moved(self):
        stmts = [
            plain(comments=["// Act"]),
            plain(comments=["// Arrange"]),
            plain(comments=["// Assert", "// keep"]),
            this_call(),
        ]
        reconcile_aaa_markers(method(stmts))
        assert texts(stmts) == [["// Arrange"], [], ["// Act", "// keep"], ["// Assert"]]

    def test_second_run_is_unchanged(self):
        stmts = [plain(), plain(comments=["// note"]), plain(), this_call()]
        m = method(stmts)

        first = reconcile_aaa_markers(m)
        layout = texts(stmts)
        second = reconcile_aaa_markers(m)

        assert first.changed
        assert not second.changed
        assert texts(stmts) == layout

    def test_already_annotated_keeps_comment_objects(self):
        stmts = [plain(comments=["// Act"]), this_call(comments=["// Assert"])]
        before = [s.get_comments() for s in stmts]

        result = reconcile_aaa_markers(method(stmts))

        assert result == ChangeResult.unchanged()
        for stmt, comments in zip(stmts, before):
            assert all(a is b for a, b in zip(stmt.get_comments(), comments))

    def test_modified_result_carries_method(self):
        m = method([plain(), this_call()])
        result = reconcile_aaa_markers(m)
        assert result.method is m
        assert bool(result)

    def test_statement_identities_preserved(self):
        stmts = [plain(), plain(), this_call()]
        m = method(list(stmts))
        reconcile_aaa_markers(m)
        assert len(m.stmts) == 3
        assert all(a is b for a, b in zip(m.stmts, stmts))

    def test_no_assert_is_lossless_noop(self):
        stmts = [plain(comments=["// Arrange"]), plain(comments=["// Act"])]
        before = texts(stmts)

        result = reconcile_aaa_markers(method(stmts))

        assert not result
        assert texts(stmts) == before

    def test_empty_body(self):
        assert not reconcile_aaa_markers(method([]))

    def test_method_without_body(self):
        assert not reconcile_aaa_markers(method(None))

    def test_non_test_method_untouched(self):
        stmts = [plain(), this_call()]
        assert not reconcile_aaa_markers(method(stmts, name="helper"))
        assert texts(stmts) == [[], []]

    def test_doc_annotation_qualifies(self):
        stmts = [plain(), this_call()]
        result = reconcile_aaa_markers(method(stmts, name="itWorks", doc="/** @Test */"))
        assert result.changed

    def test_each_marker_used_once(self):
        stmts = [
            plain(comments=["// Arrange"]), plain(comments=["// Arrange"]),
            plain(comments=["// Act"]), plain(comments=["// Act"]), this_call(),
        ]
        reconcile_aaa_markers(method(stmts))
        flat = [t for ts in texts(stmts) for t in ts]
        assert flat.count("// Arrange") == 1
        assert flat.count("// Act") == 1
        assert flat.count("// Assert") == 1


# ===========================================================================
# AAA-005: Test method detection
# ===========================================================================

class TestAAA005:
    """AAA-005: PHPUnit test method conventions."""

    def test_test_prefix(self):
        assert is_test_method(method([], name="testSomething"))

    def test_prefix_is_case_sensitive(self):
        assert not is_test_method(method([], name="TestSomething"))

    def test_doc_annotation(self):
        doc = "/**\n     * @test\n     */"
        assert is_test_method(method([], name="it_adds_numbers", doc=doc))

    def test_plain_helper(self):
        assert not is_test_method(method([], name="setUp", doc="/** Prepare fixtures */"))


# ===========================================================================
# AAA-006: Rector wrapper
# ===========================================================================

class TestAAA006:
    """AAA-006: Host-facing rector wrapper."""

    def test_node_types(self):
        assert EnforceAaaPatternRector().get_node_types() == [ClassMethod]

    def test_refactor_returns_changed_node(self):
        m = method([plain(), this_call()])
        assert EnforceAaaPatternRector().refactor(m) is m

    def test_refactor_returns_none_when_unchanged(self):
        m = method([plain(comments=["// Act"]), this_call(comments=["// Assert"])])
        assert EnforceAaaPatternRector().refactor(m) is None

    def test_refactor_ignores_other_nodes(self):
        assert EnforceAaaPatternRector().refactor(plain()) is None

    def test_rule_definition(self):
        definition = EnforceAaaPatternRector().get_rule_definition()
        assert "Arrange-Act-Assert" in definition.description
        assert len(definition.code_samples) == 1
        assert "// Arrange" in definition.code_samples[0].good_code
        assert "// Arrange" not in definition.code_samples[0].bad_code
