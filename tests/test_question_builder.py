"""Tests for building, validating and reconciling structured questions."""

import re

import pytest

from quickparse.models.questions import Option, QuestionKind, Severity, StructuredQuestion
from quickparse.services.block_assembler import OptionDraft, QuestionBlock
from quickparse.services.question_builder import (
    build_question,
    build_questions,
    make_option_id,
    reconcile_options,
    reconcile_questions,
    validate_question,
)


def _options(*texts, correct=()):
    return [
        Option(id=f"existing_{i}", text=text, is_correct=i in correct, explanation=f"old {i}")
        for i, text in enumerate(texts)
    ]


class TestMakeOptionId:
    def test_format(self):
        assert re.fullmatch(r"opt_\d+_[0-9a-f]{6}", make_option_id())

    def test_ids_are_unique_within_a_session(self):
        ids = {make_option_id() for _ in range(50)}
        assert len(ids) == 50


class TestBuildQuestion:
    """Block to StructuredQuestion conversion."""

    def test_single_choice(self, sequential_ids):
        block = QuestionBlock(
            line_number=1,
            statement_lines=["line one", "line two"],
            options=[
                OptionDraft(text="a", is_correct=True, line_number=3, explanation_lines=["why", "more"]),
                OptionDraft(text="b", is_correct=False, line_number=4),
            ],
        )
        question, diagnostics = build_question(block, id_factory=sequential_ids)
        assert question.kind == QuestionKind.SINGLE_CHOICE
        assert question.statement == "line one\nline two"
        assert [o.id for o in question.options] == ["opt_1", "opt_2"]
        assert question.options[0].explanation == "why\nmore"
        assert question.options[1].explanation is None
        assert question.correct_option_ids == ["opt_1"]
        assert diagnostics == []

    def test_single_line_statements(self, sequential_ids):
        block = QuestionBlock(line_number=1, statement_lines=["line one", "line two"])
        question, _ = build_question(block, multiline_statements=False, id_factory=sequential_ids)
        assert question.statement == "line one line two"

    def test_short_answer_keeps_answer_lines(self):
        block = QuestionBlock(
            line_number=1, statement_lines=["stem"], answer_lines=["one", "two"], has_answer=True
        )
        question, diagnostics = build_question(block)
        assert question.kind == QuestionKind.SHORT_ANSWER
        assert question.reference_answer == "one\ntwo"
        assert question.options == []
        assert diagnostics == []

    def test_answer_in_single_choice_block_is_ignored(self, sequential_ids):
        block = QuestionBlock(
            line_number=2,
            type_hint=QuestionKind.SINGLE_CHOICE,
            statement_lines=["stem"],
            options=[OptionDraft(text="a", is_correct=True, line_number=3)],
            answer_lines=["x"],
            has_answer=True,
        )
        question, diagnostics = build_question(block, 0, id_factory=sequential_ids)
        assert question.reference_answer is None
        assert [d.code for d in diagnostics] == ["answer_ignored"]
        assert diagnostics[0].message.startswith("Q1: ")

    def test_options_in_short_answer_block_are_ignored(self):
        block = QuestionBlock(
            line_number=1,
            type_hint=QuestionKind.SHORT_ANSWER,
            statement_lines=["stem"],
            options=[OptionDraft(text="a", is_correct=False, line_number=2)],
        )
        question, diagnostics = build_question(block)
        assert question.options == []
        assert diagnostics[0].code == "options_ignored"
        assert diagnostics[0].line_number == 2


class TestValidateQuestion:
    """Pre-submit checks."""

    def test_valid_single_choice(self):
        question = StructuredQuestion(
            statement="stem", kind=QuestionKind.SINGLE_CHOICE, options=_options("a", "b", correct=(0,))
        )
        assert validate_question(question) == []

    def test_insufficient_options(self):
        question = StructuredQuestion(
            statement="stem", kind=QuestionKind.SINGLE_CHOICE, options=_options("a", "  ", correct=(0,))
        )
        diagnostics = validate_question(question)
        assert [d.code for d in diagnostics] == ["insufficient_options"]
        assert diagnostics[0].severity == Severity.ERROR
        assert "found 1" in diagnostics[0].message

    def test_no_correct_option_is_only_a_warning(self):
        question = StructuredQuestion(
            statement="stem", kind=QuestionKind.SINGLE_CHOICE, options=_options("a", "b")
        )
        diagnostics = validate_question(question)
        assert [(d.code, d.severity) for d in diagnostics] == [("no_correct_option", Severity.WARNING)]

    def test_missing_statement_and_answer(self):
        question = StructuredQuestion(statement="  ", kind=QuestionKind.SHORT_ANSWER)
        diagnostics = validate_question(question, 2, line_number=7)
        assert [d.code for d in diagnostics] == ["missing_statement", "missing_answer"]
        assert all(d.question_index == 2 and d.line_number == 7 for d in diagnostics)
        assert diagnostics[0].message.startswith("Q3: ")


class TestReconcileOptions:
    """Option-count mismatch handling for questions being edited."""

    def test_fewer_parsed_options_updates_prefix_only(self):
        existing = _options("old a", "old b", "old c", "old d")
        parsed = [
            Option(id="new_0", text="new a", is_correct=False),
            Option(id="new_1", text="new b", is_correct=True, explanation="because"),
            Option(id="new_2", text="new c", is_correct=False),
        ]
        merged, diagnostics = reconcile_options(existing, parsed)

        assert [o.id for o in merged] == ["existing_0", "existing_1", "existing_2", "existing_3"]
        assert [o.text for o in merged] == ["new a", "new b", "new c", "old d"]
        assert merged[1].is_correct is True
        assert merged[1].explanation == "because"
        assert merged[3] == existing[3]
        assert [d.code for d in diagnostics] == ["option_count_mismatch"]
        assert "3 option(s)" in diagnostics[0].message

    def test_more_parsed_options_are_dropped(self):
        existing = _options("a", "b")
        parsed = [Option(id=f"n{i}", text=t) for i, t in enumerate(["x", "y", "z"])]
        merged, diagnostics = reconcile_options(existing, parsed)
        assert [o.text for o in merged] == ["x", "y"]
        assert diagnostics[0].severity == Severity.ERROR

    def test_empty_parsed_text_keeps_existing_text(self):
        existing = _options("keep me", "b")
        parsed = [Option(id="n0", text="", is_correct=True), Option(id="n1", text="b2")]
        merged, diagnostics = reconcile_options(existing, parsed)
        assert merged[0].text == "keep me"
        assert merged[0].is_correct is True
        assert diagnostics == []

    def test_existing_options_are_not_mutated(self):
        existing = _options("a", "b")
        reconcile_options(existing, [Option(id="n0", text="z"), Option(id="n1", text="y")])
        assert [o.text for o in existing] == ["a", "b"]


class TestReconcileQuestions:
    """Sub-question reconciliation in grouped editing."""

    def test_updates_by_position(self):
        existing = [
            StructuredQuestion(statement="s1", kind=QuestionKind.SINGLE_CHOICE, options=_options("a", "b")),
            StructuredQuestion(statement="s2", kind=QuestionKind.SHORT_ANSWER, reference_answer="old"),
        ]
        parsed = [
            StructuredQuestion(
                statement="",
                kind=QuestionKind.SINGLE_CHOICE,
                options=[Option(id="n0", text="a2", is_correct=True), Option(id="n1", text="b2")],
            ),
            StructuredQuestion(statement="s2 new", kind=QuestionKind.SHORT_ANSWER, reference_answer="new"),
        ]
        merged, diagnostics = reconcile_questions(existing, parsed)
        assert diagnostics == []
        assert merged[0].statement == "s1"
        assert [o.id for o in merged[0].options] == ["existing_0", "existing_1"]
        assert merged[0].options[0].text == "a2"
        assert merged[1].statement == "s2 new"
        assert merged[1].reference_answer == "new"

    def test_kind_mismatch_leaves_question_unchanged(self):
        existing = [StructuredQuestion(statement="s", kind=QuestionKind.SHORT_ANSWER, reference_answer="a")]
        parsed = [StructuredQuestion(statement="t", kind=QuestionKind.SINGLE_CHOICE)]
        merged, diagnostics = reconcile_questions(existing, parsed)
        assert merged[0].statement == "s"
        assert [d.code for d in diagnostics] == ["kind_mismatch"]

    def test_count_mismatch(self):
        existing = [
            StructuredQuestion(statement="s1", kind=QuestionKind.SHORT_ANSWER, reference_answer="a"),
            StructuredQuestion(statement="s2", kind=QuestionKind.SHORT_ANSWER, reference_answer="b"),
        ]
        parsed = [StructuredQuestion(statement="n1", kind=QuestionKind.SHORT_ANSWER, reference_answer="c")]
        merged, diagnostics = reconcile_questions(existing, parsed)
        assert [q.statement for q in merged] == ["n1", "s2"]
        assert [d.code for d in diagnostics] == ["question_count_mismatch"]


class TestBuildQuestions:
    """End-to-end block list processing."""

    def test_validation_runs_on_every_question(self, sequential_ids):
        blocks = [
            QuestionBlock(line_number=1, statement_lines=["s"], options=[OptionDraft("a", True, 2)]),
            QuestionBlock(line_number=4, statement_lines=["s2"], has_answer=True),
        ]
        questions, diagnostics = build_questions(blocks, id_factory=sequential_ids)
        assert len(questions) == 2
        codes = [(d.code, d.question_index, d.line_number) for d in diagnostics]
        assert ("insufficient_options", 0, 1) in codes
        assert ("missing_answer", 1, 4) in codes

    @pytest.mark.parametrize("existing", [None, []])
    def test_no_existing_options_means_no_reconciliation(self, existing, sequential_ids):
        blocks = [QuestionBlock(line_number=1, statement_lines=["s"], options=[
            OptionDraft("a", True, 2), OptionDraft("b", False, 3)
        ])]
        questions, diagnostics = build_questions(blocks, existing_options=existing, id_factory=sequential_ids)
        assert [o.id for o in questions[0].options] == ["opt_1", "opt_2"]
        assert diagnostics == []

    def test_existing_options_with_short_answer_block(self):
        blocks = [QuestionBlock(line_number=3, statement_lines=["s"], has_answer=True, answer_lines=["r"])]
        existing = [Option(id="a", text="x"), Option(id="b", text="y")]

        questions, diagnostics = build_questions(blocks, existing_options=existing)

        assert questions[0].kind == QuestionKind.SHORT_ANSWER
        assert [(d.code, d.severity, d.line_number) for d in diagnostics] == [
            ("kind_mismatch", Severity.ERROR, 3)
        ]
