"""
Unit tests for the quiz synthesizer and cleaner.

Run: pytest tests/unit/test_quiz.py -v
"""

import pytest

from study_buddy.server.quiz import (
    DISTRACTOR_POOL,
    PROMPT_TEMPLATES,
    clean_quiz,
    question_template,
    resolve_correct,
    sanitize_prompt,
    synthesize_quiz,
    uniq_options,
)
from study_buddy.server.schemas import Question

SUBJECT = "Physics"
TOPIC = "Kinematics"


def _assert_valid_quiz(questions, count):
    assert len(questions) == count
    prompts = [q["prompt"].lower() for q in questions]
    assert len(set(prompts)) == count
    assert len({q["id"] for q in questions}) == count
    for q in questions:
        Question.model_validate(q)
        assert q["type"] == "multiple_choice"
        assert len(q["options"]) == 4
        assert len({o.lower() for o in q["options"]}) == 4
        assert len(q["correct_answers"]) == 1
        assert q["correct_answers"][0] in q["options"]


def _candidate(prompt, **kwargs):
    q = {
        "prompt": prompt,
        "options": ["alpha", "beta", "gamma", "delta"],
        "correct_answers": ["alpha"],
        "explanations": "because",
    }
    q.update(kwargs)
    return q


class TestSynthesizeQuiz:
    @pytest.mark.parametrize("count", [1, 3, 5, 12])
    def test_exact_count_and_valid(self, count):
        _assert_valid_quiz(synthesize_quiz(SUBJECT, TOPIC, count, "easy"), count)

    def test_templates_cycle_by_index(self):
        qs = synthesize_quiz(SUBJECT, TOPIC, 6)
        for i, q in enumerate(qs[:5]):
            assert q["prompt"] == PROMPT_TEMPLATES[i].format(subject=SUBJECT, topic=TOPIC)
        assert qs[5]["prompt"].startswith(qs[0]["prompt"])
        assert qs[5]["prompt"].endswith("(variant 2)")

    def test_template_shape(self):
        q = question_template(SUBJECT, TOPIC, 1)
        assert q["id"] == "q1"
        assert q["correct_answers"] == ["Kinematics relates to Physics fundamentals"]
        assert q["options"][0] == q["correct_answers"][0]
        assert q["explanations"] == "Kinematics is foundational within Physics."

    def test_deterministic(self):
        assert synthesize_quiz(SUBJECT, TOPIC, 7) == synthesize_quiz(SUBJECT, TOPIC, 7)


class TestSanitizePrompt:
    def test_strips_leaked_option_instruction(self):
        assert sanitize_prompt("What is velocity? Include 4 options and mark one.") == "What is velocity?"

    def test_strips_leaked_answer_instruction(self):
        assert sanitize_prompt("Define speed. provide correct_answers as a list") == "Define speed."

    def test_strips_instruction_split_across_lines(self):
        assert sanitize_prompt("What is velocity? include 4 options\nand mark one") == "What is velocity?"

    def test_collapses_whitespace(self):
        assert sanitize_prompt("  What   is\n the answer .  ") == "What is the answer."

    def test_none(self):
        assert sanitize_prompt(None) == ""


class TestResolveCorrect:
    def test_first_correct_answer(self):
        assert resolve_correct({"correct_answers": [" x ", "y"]}, SUBJECT, TOPIC) == "x"

    def test_legacy_answer_field(self):
        assert resolve_correct({"answer": "y"}, SUBJECT, TOPIC) == "y"

    def test_string_correct_answers(self):
        assert resolve_correct({"correct_answers": "z"}, SUBJECT, TOPIC) == "z"

    def test_last_resort(self):
        assert resolve_correct({"correct_answers": []}, SUBJECT, TOPIC) == "Kinematics relates to Physics"


class TestUniqOptions:
    def test_two_options_padded_and_correct_forced_in(self):
        out = uniq_options(["Berlin", "Madrid"], "Paris", SUBJECT, TOPIC)
        assert len(out) == 4
        assert "Paris" in out
        assert "Madrid" in out
        assert len({o.lower() for o in out}) == 4

    def test_case_insensitive_dedupe_keeps_first(self):
        out = uniq_options(["Speed", "speed", "Velocity", "", None, "SPEED", "Mass", "Force"], "Speed", SUBJECT, TOPIC)
        assert out == ["Speed", "Velocity", "Mass", "Force"]

    def test_correct_answer_case_mismatch_replaces_match(self):
        out = uniq_options(["paris", "Berlin", "Rome", "Oslo"], "Paris", SUBJECT, TOPIC)
        assert out == ["Paris", "Berlin", "Rome", "Oslo"]

    def test_correct_answer_beyond_fourth_option(self):
        out = uniq_options(["A", "B", "C", "D", "E"], "E", SUBJECT, TOPIC)
        assert out == ["E", "B", "C", "D"]

    def test_distractor_collision_is_skipped(self):
        taken = DISTRACTOR_POOL[2].format(topic=TOPIC, subject=SUBJECT)
        out = uniq_options(["A", taken.upper()], "A", SUBJECT, TOPIC)
        assert len(out) == 4
        assert len({o.lower() for o in out}) == 4

    def test_non_list_options(self):
        out = uniq_options("not a list", "A", SUBJECT, TOPIC)
        assert len(out) == 4
        assert "A" in out


class TestCleanQuiz:
    def test_dedupes_prompts_without_backfill(self):
        """12 distinct prompts among 14 candidates cover a target of 10."""
        raw = [_candidate(f"Question number {i}?") for i in range(12)]
        raw.insert(3, _candidate("question NUMBER 1?"))
        raw.insert(7, _candidate("Question   number 2?"))
        out = clean_quiz(raw, SUBJECT, TOPIC, 10)
        _assert_valid_quiz(out, 10)
        assert [q["prompt"] for q in out] == [f"Question number {i}?" for i in range(10)]

    def test_empty_input_backfills_everything(self):
        out = clean_quiz([], SUBJECT, TOPIC, 5)
        _assert_valid_quiz(out, 5)
        assert out == synthesize_quiz(SUBJECT, TOPIC, 5)

    def test_repairs_short_options(self):
        raw = [{"prompt": "Capital of France?", "options": ["Berlin", "Madrid"], "correct_answers": ["Paris"]}]
        out = clean_quiz(raw, SUBJECT, TOPIC, 1)
        _assert_valid_quiz(out, 1)
        assert "Paris" in out[0]["options"]
        assert out[0]["correct_answers"] == ["Paris"]

    def test_partial_output_is_backfilled(self):
        raw = [_candidate("What is displacement?"), _candidate("What is acceleration?")]
        out = clean_quiz(raw, SUBJECT, TOPIC, 4)
        _assert_valid_quiz(out, 4)
        assert out[0]["prompt"] == "What is displacement?"
        assert out[2]["prompt"] == PROMPT_TEMPLATES[2].format(subject=SUBJECT, topic=TOPIC)

    def test_truncates_to_target(self):
        raw = [_candidate(f"Q{i}?") for i in range(6)]
        assert len(clean_quiz(raw, SUBJECT, TOPIC, 3)) == 3

    def test_skips_empty_prompts_and_junk(self):
        raw = [None, "text", 42, {"prompt": "   "}, {"question": "Legacy field?", "answer": "yes"}]
        out = clean_quiz(raw, SUBJECT, TOPIC, 1)
        assert out[0]["prompt"] == "Legacy field?"
        assert out[0]["correct_answers"] == ["yes"]

    def test_non_list_input(self):
        _assert_valid_quiz(clean_quiz({"questions": []}, SUBJECT, TOPIC, 2), 2)

    def test_type_forced_and_ids_assigned(self):
        raw = [_candidate("A?", type="essay"), _candidate("B?", id="custom")]
        out = clean_quiz(raw, SUBJECT, TOPIC, 2)
        assert [q["type"] for q in out] == ["multiple_choice", "multiple_choice"]
        assert [q["id"] for q in out] == ["q1", "custom"]

    def test_duplicate_ids_made_unique(self):
        raw = [_candidate("A?", id="x"), _candidate("B?", id="x")]
        out = clean_quiz(raw, SUBJECT, TOPIC, 2)
        assert [q["id"] for q in out] == ["x", "q2"]

    def test_backfill_ids_do_not_collide(self):
        raw = [_candidate("A?", id="q2")]
        out = clean_quiz(raw, SUBJECT, TOPIC, 2)
        assert [q["id"] for q in out] == ["q2", "q3"]

    def test_backfill_skips_prompt_already_used(self):
        taken = PROMPT_TEMPLATES[1].format(subject=SUBJECT, topic=TOPIC)
        out = clean_quiz([_candidate(taken)], SUBJECT, TOPIC, 2)
        _assert_valid_quiz(out, 2)
        assert out[1]["prompt"] == PROMPT_TEMPLATES[2].format(subject=SUBJECT, topic=TOPIC)

    def test_idempotent(self):
        raw = [
            _candidate("What is displacement? include 4 options please"),
            _candidate("what is displacement?"),
            {"prompt": "Capital of France?", "options": ["Berlin", "Madrid"], "correct_answers": ["Paris"]},
            {"question": "Unit of force?", "answer": "Newton", "options": ["newton", "Joule"]},
        ]
        once = clean_quiz(raw, SUBJECT, TOPIC, 8)
        _assert_valid_quiz(once, 8)
        assert clean_quiz(once, SUBJECT, TOPIC, 8) == once

    def test_idempotent_with_multiline_leak(self):
        raw = [
            _candidate("What is velocity? include 4 options\nand mark one"),
            _candidate("What is velocity?"),
            _candidate("Define speed.\nprovide correct_answers\nas a list"),
        ]
        once = clean_quiz(raw, SUBJECT, TOPIC, 3)
        assert [q["prompt"] for q in once[:2]] == ["What is velocity?", "Define speed."]
        assert clean_quiz(once, SUBJECT, TOPIC, 3) == once

    def test_count_one(self):
        _assert_valid_quiz(clean_quiz([_candidate("Only?")], SUBJECT, TOPIC, 1), 1)
