"""
HTML pages for the quiz.

Templates are plain format strings; every interpolated value is escaped with
html.escape before it reaches a template. Style and script blocks are passed
in as values so their braces need no escaping.
"""
import html
from datetime import datetime
from typing import Iterable, List, Optional

from quizdesk.core.config import settings
from quizdesk.core.datetime_utils import format_duration
from quizdesk.core.scoring import answered_indexes
from quizdesk.schemas.questions import QuestionType, TestInfo
from quizdesk.schemas.responses import ScoreResult
from quizdesk.schemas.test_sessions import TestAttempt

PAGE_STYLE = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif; line-height: 1.5; color: #333; max-width: 720px; margin: 0 auto; padding: 20px; }
.card { background-color: #f8f9fa; border-radius: 8px; padding: 24px; margin-bottom: 20px; }
.error { color: #c0392b; }
.progress { display: flex; flex-wrap: wrap; gap: 4px; margin-bottom: 16px; }
.progress a { display: inline-block; min-width: 28px; text-align: center; padding: 2px 6px; border-radius: 4px; background: #ddd; color: #333; text-decoration: none; }
.progress a.answered { background: #2ecc71; color: #fff; }
.progress a.current { outline: 2px solid #007AFF; }
.option { display: block; padding: 8px; margin: 6px 0; border: 1px solid #ccc; border-radius: 6px; }
.controls { display: flex; gap: 8px; margin-top: 16px; }
button, .button { background-color: #007AFF; color: #fff; border: 0; padding: 10px 18px; border-radius: 6px; cursor: pointer; text-decoration: none; }
button:disabled { background-color: #9bbbe0; cursor: default; }
img.question-image { max-width: 100%; margin: 12px 0; }
"""

LAYOUT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>{style}</style>
</head>
<body>
{body}
</body>
</html>
"""

LOGIN_BODY_TEMPLATE = """<div class="card">
    <h1>{app_name}</h1>
    <form id="login-form">
        <label for="password">Password</label>
        <input type="password" id="password" name="password" maxlength="128" required autofocus>
        <button type="submit">Log in</button>
    </form>
    <p id="login-error" class="error"></p>
</div>
<script>{script}</script>"""

LOGIN_SCRIPT = """
document.getElementById('login-form').addEventListener('submit', async (event) => {
  event.preventDefault();
  const response = await fetch('/login', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' },
    body: JSON.stringify({ password: document.getElementById('password').value }),
  });
  const data = await response.json();
  if (response.ok) {
    window.location.href = data.redirect;
  } else {
    document.getElementById('login-error').textContent = data.detail;
  }
});
"""

SELECT_TEST_BODY_TEMPLATE = """<div class="card">
    <h1>Choose a test</h1>
    <p>Signed in as {user_id}.</p>
    {tests}
</div>
<a class="button" href="/logout">Log out</a>"""

QUESTION_BODY_TEMPLATE = """<div class="progress">{progress}</div>
<div class="card">
    <h2>{test_name}: question {number} of {count}</h2>
    {timer}
    <p>{text}</p>
    {image}
    <form id="answer-form" data-index="{index}" data-version="{version}">
        {options}
    </form>
    <p id="answer-error" class="error"></p>
    <div class="controls">
        <button type="button" data-go="{prev_index}" {prev_disabled}>Previous</button>
        <button type="button" data-go="{next_index}" {next_disabled}>Next</button>
        <button type="button" data-go="finish">Finish test</button>
    </div>
</div>
<a class="button" href="/logout">Log out</a>
<script>{script}</script>"""

QUESTION_SCRIPT = """
const form = document.getElementById('answer-form');
let version = parseInt(form.dataset.version, 10);

async function saveAnswer() {
  const answer = Array.from(form.querySelectorAll('input:checked')).map(input => input.value);
  const response = await fetch('/answer', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' },
    body: JSON.stringify({ index: parseInt(form.dataset.index, 10), answer: answer, version: version }),
  });
  const data = await response.json();
  if (response.ok) {
    version = data.version;
    return true;
  }
  document.getElementById('answer-error').textContent = data.detail;
  return false;
}

document.querySelectorAll('[data-go]').forEach(button => {
  button.addEventListener('click', async () => {
    if (!(await saveAnswer())) {
      return;
    }
    const target = button.dataset.go;
    window.location.href = target === 'finish' ? '/result' : '/test/question?index=' + target;
  });
});

let reported = false;
document.addEventListener('visibilitychange', () => {
  if (document.visibilityState === 'hidden' && !reported) {
    reported = true;
    fetch('/report-suspicious', { method: 'POST' })
      .finally(() => { setTimeout(() => { reported = false; }, 5000); });
  }
});

const timer = document.getElementById('timer');
if (timer) {
  let remaining = parseInt(timer.dataset.remaining, 10);
  setInterval(() => {
    remaining = Math.max(0, remaining - 1);
    timer.textContent = Math.floor(remaining / 60) + ':' + String(remaining % 60).padStart(2, '0');
    if (remaining === 0) {
      window.location.href = '/result';
    }
  }, 1000);
}
"""

RESULT_BODY_TEMPLATE = """<div class="card">
    <h1>{test_name}: result</h1>
    <p>Score: <strong>{score}</strong> of {total}</p>
    <p>Duration: {duration}</p>
    <p>Suspicious activity: {suspicious}%</p>
</div>
<a class="button" href="/results">Done</a>"""

NO_RESULT_BODY_TEMPLATE = """<div class="card">
    <h1>No completed test</h1>
    <p>There is no finished test to show.</p>
</div>
<a class="button" href="/select-test">Choose a test</a>"""


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def render_page(title: str, body: str) -> str:
    """Wrap a rendered body in the common layout."""
    return LAYOUT_TEMPLATE.format(title=_e(title), style=PAGE_STYLE, body=body)


def render_login_page() -> str:
    """Password form that posts JSON to /login."""
    body = LOGIN_BODY_TEMPLATE.format(
        app_name=_e(settings.APP_NAME), script=LOGIN_SCRIPT
    )
    return render_page(settings.APP_NAME, body)


def render_select_test_page(user_id: str, tests: Iterable[TestInfo]) -> str:
    """List of available tests, each linking to /test?test=N."""
    items = [
        f'<li><a href="/test?test={_e(test.test_id)}">{_e(test.name)}</a></li>'
        for test in tests
    ]
    listing = f"<ul>{''.join(items)}</ul>" if items else "<p>No tests available.</p>"
    body = SELECT_TEST_BODY_TEMPLATE.format(user_id=_e(user_id), tests=listing)
    return render_page("Choose a test", body)


def _render_progress(attempt: TestAttempt, current: int) -> str:
    answered = set(answered_indexes(attempt.answers))
    links: List[str] = []
    for index in range(attempt.question_count):
        classes = []
        if index in answered:
            classes.append("answered")
        if index == current:
            classes.append("current")
        links.append(
            f'<a class="{" ".join(classes)}" href="/test/question?index={index}">'
            f"{index + 1}</a>"
        )
    return "".join(links)


def _render_options(attempt: TestAttempt, index: int) -> str:
    question = attempt.questions[index]
    input_type = "radio" if question.type == QuestionType.SINGLE else "checkbox"
    recorded = set(attempt.answers.get(index, []))
    rows = []
    for position, option in enumerate(question.options):
        checked = " checked" if option in recorded else ""
        rows.append(
            f'<label class="option" for="option-{position}">'
            f'<input type="{input_type}" id="option-{position}" name="answer" '
            f'value="{_e(option)}"{checked}> {_e(option)}</label>'
        )
    return "\n        ".join(rows)


def render_question_page(
    attempt: TestAttempt, index: int, now: Optional[datetime] = None
) -> str:
    """
    One question with its options, the progress strip and navigation.

    Recorded answers are pre-checked. The image element is emitted only when
    the question has an image reference.
    """
    question = attempt.questions[index]
    remaining = attempt.remaining_seconds(now)
    timer = (
        ""
        if remaining is None
        else f'<p>Time left: <span id="timer" data-remaining="{remaining}">'
        f"{remaining // 60}:{remaining % 60:02d}</span></p>"
    )
    image = (
        f'<img class="question-image" src="{_e(question.image)}" alt="Question image">'
        if question.image
        else ""
    )
    last = attempt.question_count - 1
    body = QUESTION_BODY_TEMPLATE.format(
        progress=_render_progress(attempt, index),
        test_name=_e(attempt.test_name),
        number=index + 1,
        count=attempt.question_count,
        timer=timer,
        text=_e(question.text),
        image=image,
        index=index,
        version=attempt.version,
        options=_render_options(attempt, index),
        prev_index=max(index - 1, 0),
        prev_disabled="disabled" if index == 0 else "",
        next_index=min(index + 1, last),
        next_disabled="disabled" if index >= last else "",
        script=QUESTION_SCRIPT,
    )
    return render_page(f"{attempt.test_name}: question {index + 1}", body)


def suspicious_percentage(suspicious_events: int, duration_seconds: int) -> int:
    """Suspicious events per second of test time, as a rounded percentage."""
    return round(suspicious_events / (duration_seconds or 1) * 100)


def render_result_page(attempt: TestAttempt, result: ScoreResult) -> str:
    """Score, total, duration and suspicious-activity share."""
    duration = attempt.elapsed_seconds()
    body = RESULT_BODY_TEMPLATE.format(
        test_name=_e(attempt.test_name),
        score=result.score,
        total=result.total,
        duration=_e(format_duration(duration)),
        suspicious=suspicious_percentage(attempt.suspicious_events, duration),
    )
    return render_page("Result", body)


def render_no_result_page() -> str:
    """Shown by /results when there is nothing to consume."""
    return render_page("No completed test", NO_RESULT_BODY_TEMPLATE)
