# naza

Small building blocks for Python programs. The package uses only the
standard library.

## Modules

- `naza.buffer`: `Buffer` is a growable first-in first-out byte buffer. You can
  read it in place (`bytes()`, `peek()`, `skip()`) or write it in place
  (`reserve_bytes()`, then `flush()`). It also has file-like `read()`,
  `readinto()`, `write()` and `write_string()`. The module also provides the
  clipped slicing helpers `sub` and `prefix`, and `round_up_power_of_two`.
- `naza.color`: wraps text in ANSI colour escapes. It provides `wrap`,
  `wrap_with_fg_color`, `wrap_red`, `wrap_green` and the other colours, plus the
  `Format`, `FgColor` and `BgColor` enums.
- `naza.errorutil`:
  - `combine_errors` returns the first argument that is not `None`.
  - `wrap` annotates an exception with the caller's file and line, returning a `WrappedError`.
  - `unwrap`, `is_error` and `as_error` walk the wrap chain.
- `naza.values`:
  - `is_nil` checks for `None`.
  - `equal` compares deeply and requires the same type. Byte-like values compare by content.
  - `equal_integer` compares two integers by value.
- `naza.md5sum`: `md5` returns the lower-case hex MD5 digest of some bytes.
- `naza.unique`: `SingleGenerator`, `MultiGenerator` and `gen_unique_key`
  produce keys such as `prefix1`, `prefix2`, ….
- `naza.log`: a levelled logger created with `new(**options)`. It can write to:
  - stdout, with the level in colour;
  - a file, rotated daily or hourly;
  - a hook function.

  The logger supports stacked prefixes (`with_prefix`) and `assert_equal`.
  `fatal` logs and raises `SystemExit(1)`. `panic` logs and raises `LogPanic`.
  Invalid options raise `LogError`. The options are the fields of `Option`.
- `naza.logglobal`: a process-wide logger with module-level functions (`info`,
  `warn`, …). Use `init` to reconfigure it, `set_global_logger` and
  `get_global_logger` to swap or fetch it, and `dummy_logger()` for a logger
  that outputs nothing.
- `naza.jsonutil`:
  - `Json.from_bytes(...).exist("a.b")` checks whether a dotted path exists.
  - `collect_not_exist_fields` lists the JSON keys declared by a dataclass that are missing from a document. A field's key comes from `field(metadata={"json": "key"})`. Use `metadata={"inline": True}` to merge a nested dataclass into its parent.
  - `marshal_json_file` and `unmarshal_json_file` write and read JSON files. `unmarshal_json_file` reads the first of several files that can be read.
- `naza.snowflake`: `Node` generates snowflake IDs. The bit widths, epoch and a
  positive-only mode are configurable. `InitialError` signals bad options and
  `GenError` signals a clock that moved backwards.
- `naza.httpheader`:
  - reads HTTP or RTSP headers and messages from a binary stream that has `readline()`: `read_http_header`, `read_http_message`, `read_http_request_message` and `read_http_response_message`;
  - parses first lines with `parse_http_request_line` and `parse_http_status_line`;
  - stores fields in `Headers`, a case-insensitive multi-valued mapping.
- `naza.httpclient`:
  - `get_http_file` fetches a URL.
  - `download_http_file` saves a URL to a file.
  - `post_json` returns `(status, body)`.
  - `unmarshal_request_json_body` decodes a JSON body and raises `ParamMissingError` when a required path is absent.
- `naza.ratelimit`: `LeakyBucket` and `TokenBucket`, both `RateLimiter`s, with
  `try_acquire` and `wait_until_acquire`. When nothing is available they raise
  `ResourceNotAvailableError` or `TokenNotEnoughError`.
- `naza.udpnet`:
  - `listen_udp` binds a UDP socket.
  - `AvailUdpConnPool` binds free ports, or pairs of consecutive ports, within a range.
  - `UdpConnection` has a blocking `run_loop`, `read_with_timeout`, and `write` / `write_to_addr`.
- `naza.slicebytepool`: `SliceBytePool` hands out reusable byte buffers, bucketed
  by power-of-two capacity, and reports its counters through `Status`.
  `SharedSliceByte` is a reference-counted buffer that returns to its pool on
  the last release. A default pool is reached through `get`, `put`,
  `retrieve_status` and `init`.

## Installation

```
pip install .
pip install ".[test]"   # with test dependencies
```

## Examples

```python
from naza.buffer import Buffer

buf = Buffer(8)
buf.write(b"hello world")
print(bytes(buf.peek(5)))   # b'hello'
buf.skip(6)
print(bytes(buf))           # b'world'
```

```python
from naza.snowflake import Node

node = Node(0, 0)
print(node.gen())
```

```python
from naza.ratelimit import LeakyBucket, ResourceNotAvailableError

lb = LeakyBucket(100)
try:
    lb.try_acquire()
except ResourceNotAvailableError:
    print("retry in", lb.maybe_available_interval_ms(), "ms")
```

```python
from naza import log

logger = log.new(level=log.Level.INFO)
logger.info("started %s", "service")
logger.with_prefix("db").warn("slow query")
```

## What it does not include

The package has no worker or task pool and no lock-debugging helpers. Use the
standard library's `concurrent.futures` and `threading` for those. It provides
no command-line program.

## Running the tests

```
pytest
```