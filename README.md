# metrical

The core parts of a small metrics collection server. It is written in pure
Python and has no runtime dependencies.

It supports two kinds of metric:

- **gauge**: a float that each update replaces.
- **counter**: a 64-bit integer that each update adds to.

## What is in the package

### `metrical.model`

- `MetricType`, with the values `GAUGE` and `COUNTER`.
- `Metrics`, the JSON shape of a metric. Its fields are `id`, `mtype`, `delta`, `value` and `hash`.
  - `to_dict()` leaves out the fields that are not set.
  - `from_dict()` checks the field types.
- `ValidationError`, a subclass of `ValueError`.
- `is_validation_error()`.

### `metrical.validation`

- `validate_metric_request(metric_type, name, value)` checks the type and the name. It then parses the value: as a float for a gauge, and as a 64-bit integer for a counter. It returns a `MetricRequest`.
- `validate_metric_name()` and `validate_metric_type()` check one field each.

All three raise `ValidationError` on bad input.

### `metrical.context`

- `background()` returns the root context, which never ends.
- `with_cancel(parent)` and `with_timeout(parent, seconds)` return child contexts.
- A context can be cancelled with `cancel()`. Using it as a `with` block also cancels it when the block ends.
- `error()` returns why the context ended, and `check()` raises that error.
- The errors are `ContextCancelledError` and `DeadlineExceededError`.

### `metrical.logger`

- `JsonLogger` writes one JSON object per line.
  - The levels are `LogLevel.DEBUG`, `INFO`, `WARN` and `ERROR`.
  - Fields are passed as key/value pairs after the message.
  - `with_fields()` and `with_context()` return a new logger that adds fields to every record.
- `NullLogger` formats its records and then drops them.
- `new_logger()` and `new_logger_with_config(LoggerConfig(...))` create loggers.
- `default_logger_config()` returns the default configuration.

### `metrical.repository`

- `InMemoryMetricsRepository(logger, file_storage_path, restore)` is a thread-safe store.
- Every operation takes a context. It raises the context's error if the context has already ended.
- `get_gauge()` and `get_counter()` return `None` for an unknown metric.
- `get_all_gauges()` and `get_all_counters()` return copies of the stored metrics.
- `save_to_file()` writes every metric to a JSON array.
- `load_from_file()` replaces the stored metrics with the contents of the file. If the file is missing it does nothing.
- With `restore=True`, the file is loaded when the repository is created. If loading fails, the failure is logged as a warning.
- `set_sync_save(True)` saves the file after every update.
- `MetricsRepository` is the protocol the service expects.

### `metrical.service`

`MetricsService(repository, logger)` has these methods:

- `update_metric(ctx, request)` applies a `MetricRequest`.
- `update_metric_json(ctx, metric)` applies a `Metrics`.
  - For a gauge it raises `ValueError` if `value` is missing.
  - For a counter it raises `ValueError` if `delta` is missing.
- `get_metric_json(ctx, metric)` returns a new `Metrics` that holds the current value. It raises `MetricNotFoundError` if there is no such metric.
- `get_gauge`, `get_counter`, `get_all_gauges` and `get_all_counters` read metrics.

An unknown metric type raises `UnsupportedMetricTypeError`.

### `metrical.template`

`MetricsTemplate().execute(MetricsData(...))` renders an HTML dashboard and returns it as UTF-8 bytes. The page lists the gauges and counters, sorted by name.

### `metrical.web` and `metrical.router`

`metrical.web` has:

- `Request`, `Response` and `text_response()`.
- Headers that are case-insensitive.

`metrical.router.Router` has:

- `get`, `post`, `handle_func` and `handle`, to register routes.
- `use`, to add middleware. All middleware must be added before the first route.
- `serve(request)`, which returns a `Response`.

Route patterns may contain:

- `{name}` segments.
- `{name:regexp}` segments.
- A trailing `*`.

Values taken from the path arrive in `request.params`.

A path that matches only routes for other methods gets 405 with an `Allow` header. A path that matches nothing gets 404.

A `Router` is also a WSGI application.

### Middleware

`metrical.gzip_middleware.gzip_middleware()` works in both directions:

- **Requests.** It unpacks request bodies sent with `Content-Encoding: gzip`. A body that cannot be unpacked gets 400.
- **Responses.** It gzips the response body whenever the client's `Accept-Encoding` mentions gzip. `Content-Encoding: gzip` is set only for JSON, HTML and plain-text responses.

`metrical.logging_middleware.logging_middleware(logger=None)` logs a record when each request starts and another when it completes. The completion record carries the status, the response size and the duration in milliseconds. Without a logger, it writes to standard output.

## Usage

```python
from metrical.context import background
from metrical.logger import new_logger
from metrical.repository import InMemoryMetricsRepository
from metrical.service import MetricsService
from metrical.validation import validate_metric_request

log = new_logger()
repo = InMemoryMetricsRepository(log, "/tmp/metrics.json", False)
service = MetricsService(repo, log)

ctx = background()
service.update_metric(ctx, validate_metric_request("gauge", "temperature", "23.5"))
service.update_metric(ctx, validate_metric_request("counter", "requests", "100"))
service.update_metric(ctx, validate_metric_request("counter", "requests", "50"))

print(service.get_counter(ctx, "requests"))   # 150
repo.save_to_file()
```

### Routing with middleware

```python
from metrical.gzip_middleware import gzip_middleware
from metrical.logging_middleware import logging_middleware
from metrical.router import Router
from metrical.web import Request, text_response

router = Router()
router.use(logging_middleware())
router.use(gzip_middleware())
router.get("/ping", lambda request: text_response(200, "pong", "text/plain"))

response = router.serve(Request(method="GET", path="/ping"))
print(response.status, bytes(response.body))   # 200 b'pong'
```

## What it does not do

The package has no command-line program, and it does not start a server. To serve a `Router`, give it to a WSGI server.

The package also has no ready-made routes:

- There are no request handlers that connect the routes to `MetricsService`.
- There are no metric update or value endpoints.
- No route serves the dashboard page.

You build those yourself from `Router`, `MetricsService` and `MetricsTemplate`.

Storage is in memory only. It can be mirrored to a JSON file with `save_to_file()` and `load_from_file()`.

## Running the tests

```
pip install .[test]
pytest
```