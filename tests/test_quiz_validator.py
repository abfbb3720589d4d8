"""
Tests for the deterministic Quiz Validator
"""

import copy
import json

from grc_trainer.validators.quiz_validator import validate_quiz


def codes(issues):
    return [i.code for i in issues]


class TestQuizValidator:
    """Test structural quiz checks"""

    def test_valid_quiz(self, quiz_content):
        assert validate_quiz("GRCENG_002", quiz_content) == []

    def test_accepts_serialized_json(self, quiz_content):
        assert validate_quiz("GRCENG_002", json.dumps(quiz_content)) == []

    def test_invalid_json(self):
        issues = validate_quiz("T1", "{not json")
        assert codes(issues) == ["QUIZ_INVALID_JSON"]
        assert "T1" in issues[0].message

    def test_missing_questions_is_empty(self):
        assert validate_quiz("T1", {}) == []

    def test_multiple_choice_defects(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        mcq = quiz["questions"][0]
        mcq["question"] = "Short?"
        mcq["options"] = ["Govern", "govern ", "Protect"]
        mcq["correctIndex"] = 3
        mcq["explanation"] = "Too short."

        assert codes(validate_quiz("T1", quiz)) == [
            "QUESTION_TOO_SHORT",
            "QUESTION_OPTION_COUNT",
            "QUESTION_DUPLICATE_OPTIONS",
            "QUESTION_INVALID_CORRECT_INDEX",
            "QUESTION_EXPLANATION_TOO_SHORT",
        ]

    def test_missing_format_defaults_to_multiple_choice(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        del quiz["questions"][0]["format"]
        assert validate_quiz("T1", quiz) == []

    def test_missing_correct_index_is_invalid(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        del quiz["questions"][0]["correctIndex"]
        assert codes(validate_quiz("T1", quiz)) == ["QUESTION_INVALID_CORRECT_INDEX"]

    def test_duplicate_ids_and_text(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        quiz["questions"].append(copy.deepcopy(quiz["questions"][0]))

        assert codes(validate_quiz("T1", quiz)) == ["QUIZ_DUPLICATE_ID", "QUESTION_DUPLICATE_TEXT"]

    def test_code_challenge_solution_patterns(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        challenge = quiz["questions"][1]
        challenge["solution_code"] = 'sse_algorithm = "AES128"'
        challenge["validation"]["min_occurrences"] = {"sse_algorithm": 2}

        issues = validate_quiz("GRCENG_002", quiz)

        assert codes(issues) == ["CODE_SOLUTION_PATTERN"] * 3
        messages = " | ".join(i.message for i in issues)
        assert "required pattern missing in solution: aws:kms" in messages
        assert "forbidden pattern found in solution: AES128" in messages
        assert "occurs 1 times, expected at least 2" in messages

    def test_code_challenge_short_explanation(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        quiz["questions"][1]["explanation"] = "Use KMS."
        assert codes(validate_quiz("GRCENG_002", quiz)) == ["CODE_EXPLANATION_TOO_SHORT"]

    def test_unknown_format_is_invalid_shape(self, quiz_content):
        quiz = copy.deepcopy(quiz_content)
        quiz["questions"][0]["format"] = "essay"
        assert codes(validate_quiz("T1", quiz)) == ["QUESTION_INVALID_SHAPE"]
