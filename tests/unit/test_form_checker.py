"""Unit tests for form structure checks.

Tests detection of dangling references, untakeable skip rules and
malformed questions.
"""

from app.services.form_checker import FormChecker, FormIssue


def codes(issues):
    return [issue.code for issue in issues]


def skip_rule(source: str, target: str) -> dict:
    return {
        "questionId": source,
        "operator": "equals",
        "value": "x",
        "action": "skip_to",
        "targetQuestionId": target,
    }


class TestFormChecker:
    """Tests for FormChecker.check."""

    def test_valid_form(self, skip_form):
        """Test that a well-formed form has no issues."""
        assert FormChecker.check(skip_form) == []

    def test_example_forms_are_clean(self, linear_form, conditional_form, quiz_form):
        for form in (linear_form, conditional_form, quiz_form):
            assert FormChecker.check(form) == []

    def test_choice_without_options(self, make_form):
        form = make_form([{"id": "pick", "type": "dropdown"}])
        issues = FormChecker.check(form)
        assert issues == [FormIssue("pick", "no_options", "dropdown question 'pick' has no options")]

    def test_grid_without_rows(self, make_form):
        form = make_form([{"id": "g", "type": "grid", "columns": ["a"]}])
        assert codes(FormChecker.check(form)) == ["no_rows"]

    def test_inverted_scale(self, make_form):
        form = make_form([{"id": "s", "type": "linearScale", "scaleMin": 5, "scaleMax": 1}])
        assert codes(FormChecker.check(form)) == ["inverted_scale"]

    def test_default_scale_bounds_are_valid(self, make_form):
        form = make_form([{"id": "s", "type": "linearScale"}])
        assert FormChecker.check(form) == []

    def test_unknown_type(self, make_form):
        form = make_form([{"id": "stars", "type": "rating"}])
        assert codes(FormChecker.check(form)) == ["unknown_type"]

    def test_missing_source(self, make_form):
        form = make_form([
            {
                "id": "q1",
                "type": "text",
                "conditionalLogic": [
                    {"questionId": "ghost", "operator": "equals", "value": "x", "action": "hide"},
                ],
            },
        ])
        issues = FormChecker.check(form)
        assert codes(issues) == ["missing_source"]
        assert issues[0].question_id == "q1"

    def test_rules_on_section(self, make_form):
        form = make_form([
            {"id": "q1", "type": "text"},
            {
                "id": "s1",
                "type": "section",
                "conditionalLogic": [
                    {"questionId": "q1", "operator": "equals", "value": "x", "action": "hide"},
                ],
            },
        ])
        assert codes(FormChecker.check(form)) == ["rules_on_section"]

    def test_section_source(self, make_form):
        form = make_form([
            {"id": "s1", "type": "section"},
            {
                "id": "q1",
                "type": "text",
                "conditionalLogic": [
                    {"questionId": "s1", "operator": "equals", "value": "x", "action": "show"},
                ],
            },
        ])
        assert codes(FormChecker.check(form)) == ["section_source"]

    def test_missing_skip_target(self, make_form):
        form = make_form([
            {"id": "q1", "type": "text", "conditionalLogic": [skip_rule("q1", "ghost")]},
        ])
        assert codes(FormChecker.check(form)) == ["missing_target"]

    def test_skip_to_first_page(self, make_form):
        form = make_form([
            {"id": "q1", "type": "text"},
            {"id": "s1", "type": "section"},
            {"id": "q2", "type": "text", "conditionalLogic": [skip_rule("q2", "q1")]},
        ])
        assert codes(FormChecker.check(form)) == ["skip_never_taken"]

    def test_skip_backward(self, make_form):
        form = make_form([
            {"id": "q1", "type": "text"},
            {"id": "s1", "type": "section"},
            {"id": "q2", "type": "text"},
            {"id": "s2", "type": "section"},
            {"id": "q3", "type": "text", "conditionalLogic": [skip_rule("q3", "q2")]},
        ])
        assert codes(FormChecker.check(form)) == ["skip_backward"]

    def test_skip_within_same_page(self, make_form):
        form = make_form([
            {"id": "s1", "type": "section"},
            {"id": "s2", "type": "section"},
            {"id": "q1", "type": "text", "conditionalLogic": [skip_rule("q1", "q2")]},
            {"id": "q2", "type": "text"},
        ])
        assert codes(FormChecker.check(form)) == ["skip_backward"]

    def test_forward_skip_from_later_owner(self, make_form):
        """The source question's page decides the direction, not the rule owner's."""
        form = make_form([
            {"id": "q1", "type": "text"},
            {"id": "s1", "type": "section"},
            {"id": "q2", "type": "text", "conditionalLogic": [skip_rule("q1", "q2")]},
        ])
        assert FormChecker.check(form) == []

    def test_issues_in_question_order(self, make_form):
        form = make_form([
            {"id": "a", "type": "checkbox"},
            {"id": "b", "type": "grid"},
        ])
        assert [issue.question_id for issue in FormChecker.check(form)] == ["a", "b"]
