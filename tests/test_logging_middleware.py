import io
import json
import time

from metrical.logger import new_logger
from metrical.logging_middleware import logging_middleware
from metrical.web import Request, Response


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_logging_middleware_passes_response_through(capsys):
    def handler(request):
        response = Response(status=200)
        response.write(b"test response")
        return response

    wrapped = logging_middleware()(handler)
    response = wrapped(
        Request(method="GET", path="/test", remote_addr="127.0.0.1:12345", headers={"User-Agent": "test-agent"})
    )

    assert response.status == 200
    assert bytes(response.body) == b"test response"
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [line["message"] for line in lines] == ["HTTP request started", "HTTP request completed"]


def test_logging_middleware_with_logger():
    stream = io.StringIO()

    def handler(request):
        time.sleep(0.001)
        response = Response(status=201)
        response.write(b"created")
        return response

    wrapped = logging_middleware(new_logger(stream))(handler)
    response = wrapped(
        Request(method="POST", path="/create", remote_addr="127.0.0.1:54321", headers={"User-Agent": "test-client"})
    )

    assert response.status == 201
    assert bytes(response.body) == b"created"

    started, completed = _records(stream)
    assert started["message"] == "HTTP request started"
    assert started["method"] == "POST"
    assert started["uri"] == "/create"
    assert started["remote_addr"] == "127.0.0.1:54321"
    assert started["user_agent"] == "test-client"
    assert completed["message"] == "HTTP request completed"
    assert completed["status_code"] == 201
    assert completed["response_size"] == len(b"created")
    assert completed["duration"] >= 0


def test_logging_middleware_with_error_status():
    stream = io.StringIO()

    def handler(request):
        response = Response(status=500)
        response.write(b"error occurred")
        return response

    wrapped = logging_middleware(new_logger(stream))(handler)
    response = wrapped(Request(method="GET", path="/error", remote_addr="127.0.0.1:12345"))

    assert response.status == 500
    assert bytes(response.body) == b"error occurred"
    completed = _records(stream)[-1]
    assert completed["status_code"] == 500
    assert completed["response_size"] == len(b"error occurred")


def test_logged_uri_includes_query():
    stream = io.StringIO()
    wrapped = logging_middleware(new_logger(stream))(lambda request: Response())
    wrapped(Request(path="/value", query="a=1"))
    records = _records(stream)
    assert {record["uri"] for record in records} == {"/value?a=1"}
    assert records[-1]["response_size"] == 0
    assert records[-1]["status_code"] == 200