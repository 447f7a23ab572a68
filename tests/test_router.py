import io

import pytest

from metrical.router import Router
from metrical.web import Request, Response, text_response


def _ok_handler(calls):
    def handler(request):
        calls.append(request)
        return Response(status=200)

    return handler


def test_handle_func_calls_handler():
    router = Router()
    calls = []
    router.handle_func("/test", _ok_handler(calls))

    response = router.serve(Request(method="GET", path="/test"))

    assert len(calls) == 1
    assert response.status == 200


def test_handle_accepts_handler_object():
    calls = []

    class Endpoint:
        def serve(self, request):
            calls.append(request.path)
            return Response(status=200)

    router = Router()
    router.handle("/test", Endpoint())
    response = router.serve(Request(method="GET", path="/test"))

    assert calls == ["/test"]
    assert response.status == 200


def test_handle_accepts_plain_callable():
    router = Router()
    calls = []
    router.handle("/test", _ok_handler(calls))
    response = router.serve(Request(method="DELETE", path="/test"))
    assert len(calls) == 1
    assert response.status == 200


def test_handle_accepts_sub_router():
    inner = Router()
    inner.get("/health", lambda request: text_response(200, "OK"))
    outer = Router()
    outer.handle("/health", inner)

    response = outer.serve(Request(method="GET", path="/health"))
    assert response.status == 200
    assert bytes(response.body) == b"OK"


def test_path_params_are_passed_to_handler():
    router = Router()
    router.post(
        "/update/{type}/{name}/{value}",
        lambda request: text_response(200, f"{request.params['type']}|{request.params['name']}|{request.params['value']}"),
    )
    response = router.serve(Request(method="POST", path="/update/gauge/temp/23.5"))
    assert bytes(response.body) == b"gauge|temp|23.5"


def test_unknown_path_is_404():
    router = Router()
    router.get("/ping", lambda request: text_response(200, "pong"))
    response = router.serve(Request(method="GET", path="/nonexistent"))
    assert response.status == 404
    assert bytes(response.body) == b"404 page not found\n"


def test_wrong_method_is_405_with_allow():
    router = Router()
    router.post("/update/{type}/{name}/{value}", lambda request: Response())
    response = router.serve(Request(method="GET", path="/update/gauge/test/123.45"))
    assert response.status == 405
    assert response.headers["Allow"] == "POST"


def test_empty_segment_still_matches_pattern():
    router = Router()
    router.post("/update/{type}/{name}/{value}", lambda request: Response())
    response = router.serve(Request(method="GET", path="/update/gauge//123.45"))
    assert response.status == 405


def test_missing_segment_is_404():
    router = Router()
    router.post("/update/{type}/{name}/{value}", lambda request: Response())
    response = router.serve(Request(method="POST", path="/update/gauge/temperature"))
    assert response.status == 404


def test_regexp_param():
    router = Router()
    router.get("/items/{id:[0-9]+}", lambda request: text_response(200, request.params["id"]))
    assert bytes(router.serve(Request(path="/items/12")).body) == b"12"
    assert router.serve(Request(path="/items/ab")).status == 404


def test_wildcard_captures_rest():
    router = Router()
    router.get("/static/*", lambda request: text_response(200, request.params["*"]))
    response = router.serve(Request(path="/static/css/site.css"))
    assert bytes(response.body) == b"css/site.css"


def test_static_route_preferred_over_param():
    router = Router()
    router.get("/value/{name}", lambda request: text_response(200, "param"))
    router.get("/value/all", lambda request: text_response(200, "static"))
    assert bytes(router.serve(Request(path="/value/all")).body) == b"static"
    assert bytes(router.serve(Request(path="/value/x")).body) == b"param"


def test_middleware_order_and_run_before_routing():
    order = []

    def make(label):
        def middleware(next_handler):
            def handler(request):
                order.append(label)
                return next_handler(request)

            return handler

        return middleware

    router = Router()
    router.use(make("outer"))
    router.use(make("inner"))
    router.get("/ping", lambda request: text_response(200, "pong"))

    response = router.serve(Request(path="/missing"))
    assert response.status == 404
    assert order == ["outer", "inner"]


def test_use_after_routes_raises():
    router = Router()
    router.get("/ping", lambda request: Response())
    with pytest.raises(RuntimeError):
        router.use(lambda next_handler: next_handler)


def test_pattern_must_start_with_slash():
    router = Router()
    with pytest.raises(ValueError):
        router.get("ping", lambda request: Response())


def test_wsgi_call():
    router = Router()

    def echo(request):
        response = text_response(200, request.body + request.header("X-Test").encode())
        return response

    router.post("/echo", echo)
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    environ = {
        "REQUEST_METHOD": "POST",
        "PATH_INFO": "/echo",
        "QUERY_STRING": "",
        "CONTENT_LENGTH": "4",
        "HTTP_X_TEST": "v",
        "wsgi.input": io.BytesIO(b"data"),
    }
    body = b"".join(router(environ, start_response))

    assert captured["status"] == "200 OK"
    assert captured["headers"]["Content-Type"] == "text/plain; charset=utf-8"
    assert body == b"datav"