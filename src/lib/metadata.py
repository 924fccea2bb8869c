"""
Response wire formats

Each writer drains a page's metadata channel, writes the response header
in its format and returns the final HTTP status as a string. The caller
writes the body afterwards, and only when that status is "200".

Formats:
- structured: "<key> <value>" lines then "end-header" (read by the web
  server module)
- raw: an HTTP-style header block
- none: no header at all (the page writes its own)
"""

from typing import BinaryIO, Callable, Dict, Iterable, List, Tuple

from .runtime import KeyValue, STATUS_OK

OK_STATUS = str(STATUS_OK)

DEFAULT_MIME_TYPE = "text/html"

# Keys the structured format passes on
STRUCTURED_KEYS = (
    "mime-type",
    "http-status",
    "header-field",
    "keep-alive",
    "error-message",
    "debug-message",
)

MetadataWriter = Callable[[BinaryIO, Iterable[KeyValue]], str]


def sanitize(text: str) -> str:
    """Replace newlines, tabs and every other whitespace character with a space"""
    return "".join(" " if ch.isspace() else ch for ch in text)


def _line_write(out: BinaryIO, line: str) -> None:
    out.write((line + "\n").encode("utf-8"))


def header_parse(value: str) -> Tuple[bool, str, str]:
    """
    Split a header-field event value into (replace, name, field value)

    Example:
        >>> header_parse("true X-Frame-Options DENY")
        (True, 'X-Frame-Options', 'DENY')
    """
    parts = value.split(" ", 2)
    if len(parts) < 2 or parts[0] not in ("true", "false"):
        raise ValueError(f"Malformed header-field value {value!r}")
    return parts[0] == "true", parts[1], parts[2] if len(parts) > 2 else ""


def write_structured(out: BinaryIO, meta: Iterable[KeyValue]) -> str:
    """Write metadata in the line format expected by the web server module"""
    status = OK_STATUS
    for kv in meta:
        if kv.key in STRUCTURED_KEYS:
            _line_write(out, f"{sanitize(kv.key)} {sanitize(kv.value)}")
        if kv.key == "http-status":
            status = kv.value
    _line_write(out, "end-header")
    return status


def write_raw(out: BinaryIO, meta: Iterable[KeyValue]) -> str:
    """
    Write metadata as a raw HTTP header block

    Header fields render as "Name: value"; a field sent with replace set
    removes earlier fields of the same name. Unrecognised keys are kept as
    "key: value" lines.
    """
    content_type = DEFAULT_MIME_TYPE
    headers: List[Tuple[str, str]] = []  # (field name, rendered line)
    status = OK_STATUS
    for kv in meta:
        if kv.key == "mime-type":
            content_type = kv.value
        elif kv.key == "http-status":
            status = kv.value
        elif kv.key == "header-field":
            try:
                replace, name, value = header_parse(kv.value)
            except ValueError:
                headers.append(("", kv.value))
                continue
            if replace:
                headers = [h for h in headers if h[0].lower() != name.lower()]
            headers.append((name, f"{name}: {value}"))
        elif kv.key not in STRUCTURED_KEYS:
            headers.append((kv.key, f"{kv.key}: {kv.value}"))

    _line_write(out, f"Content-type: {content_type}")
    for _, line in headers:
        _line_write(out, line)
    _line_write(out, "")
    return status


def write_none(out: BinaryIO, meta: Iterable[KeyValue]) -> str:
    """
    Discard all metadata but the status

    Used when the page already writes a complete HTTP header, for instance
    when post-processing the output of a CGI script.
    """
    status = OK_STATUS
    for kv in meta:
        if kv.key == "http-status":
            status = kv.value
    return status


METADATA_WRITERS: Dict[str, MetadataWriter] = {
    "structured": write_structured,
    "mod_gosp": write_structured,
    "raw": write_raw,
    "none": write_none,
}


def writer_get(name: str) -> MetadataWriter:
    """Look up a metadata writer by format name"""
    try:
        return METADATA_WRITERS[name]
    except KeyError:
        raise ValueError(f"{name!r} is not a valid HTTP header format") from None
