from metrical.web import Request, Response, text_response


def test_request_header_lookup_ignores_case():
    request = Request(headers={"user-agent": "test-agent"})
    assert request.header("User-Agent") == "test-agent"
    assert request.user_agent == "test-agent"


def test_request_missing_header_is_empty():
    request = Request()
    assert request.header("Accept-Encoding") == ""


def test_request_uri_includes_query():
    request = Request(path="/value", query="a=1")
    assert request.request_uri == "/value?a=1"
    assert Request(path="/value").request_uri == "/value"


def test_headers_are_stored_canonically():
    response = Response(headers={"content-type": "application/json"})
    assert list(response.headers) == ["Content-Type"]
    response.headers["CONTENT-ENCODING"] = "gzip"
    assert response.headers["content-encoding"] == "gzip"


def test_response_defaults_to_ok():
    response = Response()
    assert response.status == 200
    assert bytes(response.body) == b""


def test_response_write_accumulates_and_reports_size():
    response = Response()
    payload = "test response"
    assert response.write(payload.encode()) == len(payload)
    assert response.write(b"!") == 1
    assert bytes(response.body) == b"test response!"


def test_response_write_encodes_text_as_utf8():
    response = Response()
    written = response.write("é")
    assert written == len("é".encode("utf-8"))
    assert bytes(response.body).decode("utf-8") == "é"


def test_text_response_sets_status_type_and_body():
    response = text_response(404, "404 page not found\n")
    assert response.status == 404
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert bytes(response.body) == b"404 page not found\n"


def test_text_response_custom_content_type():
    response = text_response(200, b"<p>ok</p>", "text/html")
    assert response.headers["Content-Type"] == "text/html"
    assert bytes(response.body) == b"<p>ok</p>"