"""
Tests for HTML page rendering.
"""
from datetime import timedelta

import pytest

from quizdesk.core.datetime_utils import utc_now
from quizdesk.core.pages import (
    render_login_page,
    render_no_result_page,
    render_question_page,
    render_result_page,
    render_select_test_page,
    suspicious_percentage,
)
from quizdesk.schemas.questions import Question, QuestionType
from quizdesk.schemas.questions import TestInfo as Info
from quizdesk.schemas.responses import ScoreResult
from quizdesk.schemas.test_sessions import TestAttempt as Attempt


def make_attempt(**kwargs):
    questions = [
        Question(
            text="<b>Bold</b> question",
            options=["A & B", "C"],
            correct_answers=["C"],
        ),
        Question(
            text="Picture 1 Name it",
            options=["Cat", "Dog"],
            correct_answers=["Cat"],
            type=QuestionType.SINGLE,
            image="/images/Picture 1.png",
        ),
    ]
    return Attempt(
        user_id="student1",
        test_id="1",
        test_name="Test 1",
        questions=questions,
        **kwargs,
    )


class TestLayout:
    def test_pages_are_complete_documents(self):
        for html in (render_login_page(), render_no_result_page()):
            assert html.startswith("<!DOCTYPE html>")
            assert html.rstrip().endswith("</html>")

    def test_login_page_posts_json(self):
        html = render_login_page()
        assert 'type="password"' in html
        assert "fetch('/login'" in html


class TestSelectTestPage:
    def test_lists_tests(self):
        tests = [
            Info(test_id="1", name="Test 1", questions_file="q1.xlsx"),
            Info(test_id="2", name="Test 2", questions_file="q2.xlsx"),
        ]
        html = render_select_test_page("student1", tests)

        assert '<a href="/test?test=1">Test 1</a>' in html
        assert '<a href="/test?test=2">Test 2</a>' in html
        assert "Signed in as student1." in html

    def test_user_id_is_escaped(self):
        html = render_select_test_page("<script>", [])
        assert "&lt;script&gt;" in html
        assert "No tests available." in html


class TestQuestionPage:
    def test_text_and_options_are_escaped(self):
        html = render_question_page(make_attempt(), 0)

        assert "&lt;b&gt;Bold&lt;/b&gt; question" in html
        assert 'value="A &amp; B"' in html

    def test_navigation_buttons(self):
        attempt = make_attempt()

        first = render_question_page(attempt, 0)
        last = render_question_page(attempt, 1)

        assert '<button type="button" data-go="0" disabled>Previous</button>' in first
        assert '<button type="button" data-go="1" >Next</button>' in first
        assert '<button type="button" data-go="1" disabled>Next</button>' in last

    def test_image_and_radio_for_picture_question(self):
        html = render_question_page(make_attempt(), 1)

        assert '<img class="question-image" src="/images/Picture 1.png"' in html
        assert 'type="radio"' in html

    def test_no_image_element_without_image(self):
        assert "<img" not in render_question_page(make_attempt(), 0)

    def test_recorded_answer_is_checked(self):
        html = render_question_page(make_attempt(answers={0: ["C"]}), 0)
        assert 'value="C" checked>' in html
        assert 'value="A &amp; B">' in html

    def test_timer_shows_remaining_time(self):
        attempt = make_attempt(time_limit_seconds=600)
        now = attempt.started_at + timedelta(seconds=75)

        html = render_question_page(attempt, 0, now=now)

        assert 'data-remaining="525"' in html
        assert ">8:45</span>" in html

    def test_no_timer_without_limit(self):
        assert 'id="timer"' not in render_question_page(make_attempt(), 0)


class TestResultPage:
    def test_score_duration_and_suspicious_share(self):
        started = utc_now() - timedelta(seconds=200)
        attempt = make_attempt(
            started_at=started,
            completed_at=started + timedelta(seconds=200),
            suspicious_events=2,
        )

        html = render_result_page(attempt, ScoreResult(score=1, total=2))

        assert "Score: <strong>1</strong> of 2" in html
        assert "Duration: 3 min 20 s" in html
        assert "Suspicious activity: 1%" in html

    def test_no_result_page(self):
        html = render_no_result_page()
        assert "No completed test" in html
        assert 'href="/select-test"' in html


@pytest.mark.parametrize(
    "events,duration,expected",
    [(0, 100, 0), (1, 100, 1), (5, 10, 50), (3, 0, 300), (1, 3, 33)],
)
def test_suspicious_percentage(events, duration, expected):
    assert suspicious_percentage(events, duration) == expected
