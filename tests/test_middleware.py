import time

import pytest
from flask import Flask, abort, jsonify

from flask_health.events import CompletionStatus
from flask_health.monitoring import (
    Health,
    StreamNotAttachedError,
    get_request_health,
    get_stream,
    start_job,
    time_since,
)


def _add_routes(app):
    @app.route('/job')
    def job_route():
        job = start_job("job_route")
        state = get_request_health()
        return jsonify({
            "job": job.name,
            "same_job": state.job is job,
            "started_at": state.job_started_at,
            "stream_attached": get_stream() is state.stream,
        })

    @app.route('/boom')
    def boom():
        start_job("boom")
        raise RuntimeError("kaboom")

    @app.route('/forbidden')
    def forbidden():
        abort(403)

    return app


def test_stream_is_attached_before_the_view(make_app, stream):
    app = _add_routes(make_app())
    before = time.time_ns()

    data = app.test_client().get('/job').get_json()

    assert data["job"] == "job_route"
    assert data["same_job"] is True
    assert data["stream_attached"] is True
    assert before <= data["started_at"] <= time.time_ns()


def test_job_left_open_is_completed_with_success(make_app, recorder):
    app = _add_routes(make_app())

    app.test_client().get('/job')

    completions = recorder.of_kind("complete")
    assert [(c[1], c[2]) for c in completions] == [("job_route", CompletionStatus.SUCCESS)]


def test_start_job_without_middleware_fails():
    app = Flask(__name__)

    with app.test_request_context('/'):
        with pytest.raises(StreamNotAttachedError):
            start_job("orphan")
        with pytest.raises(LookupError):
            get_stream()


def test_recovered_exception_is_reported_and_answered_with_500(make_app, recorder):
    app = _add_routes(make_app(recover=True))

    response = app.test_client().get('/boom?id=7')

    assert response.status_code == 500
    assert response.data == b""

    (error,) = recorder.of_kind("error")
    _, job, event, err, _ = error
    assert job == "general"
    assert event == "Panic at /boom?id=7"
    assert isinstance(err, RuntimeError)
    assert str(err) == "kaboom"

    completions = recorder.of_kind("complete")
    assert [(c[1], c[2]) for c in completions] == [("boom", CompletionStatus.PANIC)]


def test_http_errors_are_not_treated_as_failures(make_app, recorder):
    app = _add_routes(make_app(recover=True))
    client = app.test_client()

    assert client.get('/forbidden').status_code == 403
    assert client.get('/does-not-exist').status_code == 404
    assert recorder.of_kind("error") == []


def test_app_handler_for_a_specific_exception_still_wins(make_app, recorder):
    app = make_app(recover=True)

    @app.errorhandler(KeyError)
    def missing_key(error):
        return "teapot", 418

    @app.route('/lookup')
    def lookup():
        start_job("lookup")
        raise KeyError("sku")

    response = app.test_client().get('/lookup')

    assert response.status_code == 418
    assert recorder.of_kind("error") == []
    completions = recorder.of_kind("complete")
    assert [(c[1], c[2]) for c in completions] == [("lookup", CompletionStatus.SUCCESS)]


def test_exception_handler_registered_later_replaces_recovery(make_app, recorder):
    app = _add_routes(make_app(recover=True))

    @app.errorhandler(Exception)
    def host_handler(error):
        return "handled by host", 503

    response = app.test_client().get('/boom')

    assert response.status_code == 503
    assert recorder.of_kind("error") == []


def test_without_recovery_exceptions_propagate(make_app, recorder):
    app = _add_routes(make_app(recover=False))

    with pytest.raises(RuntimeError, match="kaboom"):
        app.test_client().get('/boom')

    assert recorder.of_kind("error") == []
    completions = recorder.of_kind("complete")
    assert [(c[1], c[2]) for c in completions] == [("boom", CompletionStatus.ERROR)]


def test_without_recovery_flask_answers_500_when_not_testing(make_app):
    app = _add_routes(make_app(recover=False))
    app.testing = False

    assert app.test_client().get('/boom').status_code == 500


def test_health_extension(stream, recorder):
    app = Flask(__name__)
    health = Health(stream=stream)
    health.init_app(app)
    _add_routes(app)

    assert app.extensions["health"] is health
    assert app.test_client().get('/boom').status_code == 500
    assert len(recorder.of_kind("error")) == 1


def test_time_since_is_small_and_non_negative():
    start = time.time_ns()

    elapsed = time_since(start)

    assert 0 <= elapsed < 10_000_000


def test_time_since_future_start_is_negative():
    assert time_since(time.time_ns() + 60_000_000_000) < 0
