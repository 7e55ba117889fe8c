"""Building blocks: buffers, colours, errors, logging, JSON, snowflake IDs, HTTP, rate limiting, UDP and byte-buffer pools."""

__version__ = "0.1.0"

__all__ = [
    "buffer",
    "color",
    "errorutil",
    "values",
    "md5sum",
    "unique",
    "log",
    "logglobal",
    "jsonutil",
    "snowflake",
    "httpheader",
    "httpclient",
    "ratelimit",
    "udpnet",
    "slicebytepool",
]