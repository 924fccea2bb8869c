"""
Wire message models

A ServiceRequest arrives as one JSON object per connection (or per request
file). Field names follow the web-server module that sends them. Unknown
fields are ignored; missing or null fields take zero values.
"""

import json
import os
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..lib.errors import DecodeError, IncompleteRequest


def _nulls_drop(data: Any) -> Any:
    """Treat JSON nulls as absent so the field default applies"""
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


class RequestData(BaseModel):
    """
    Request information handed to a page generator

    Many fields come straight from the client and must be checked before
    they are used to make filesystem or privilege decisions.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    scheme: str = Field(default="", alias="Scheme", description='HTTP scheme ("http" or "https")')
    local_hostname: str = Field(default="", alias="LocalHostname")
    port: int = Field(default=0, alias="Port")
    uri: str = Field(default="", alias="Uri", description="Path portion of the URI")
    path_info: str = Field(default="", alias="PathInfo", description="Text following the page filename")
    query_args: str = Field(default="", alias="QueryArgs", description="Raw query string")
    url: str = Field(default="", alias="Url")
    method: str = Field(default="", alias="Method")
    request_line: str = Field(default="", alias="RequestLine")
    request_time: int = Field(default=0, alias="RequestTime", description="Nanoseconds since the epoch")
    remote_hostname: str = Field(default="", alias="RemoteHostname")
    remote_ip: str = Field(default="", alias="RemoteIp")
    filename: str = Field(default="", alias="Filename", description="Local filename of the page")
    post_data: Dict[str, str] = Field(default_factory=dict, alias="PostData")
    get_data: Dict[str, str] = Field(default_factory=dict, alias="GetData")
    header_data: Dict[str, str] = Field(default_factory=dict, alias="HeaderData")
    admin_email: str = Field(default="", alias="AdminEmail")
    environment: Dict[str, str] = Field(default_factory=dict, alias="Environment")

    @model_validator(mode="before")
    @classmethod
    def nulls_drop(cls, data: Any) -> Any:
        return _nulls_drop(data)

    @property
    def base_dir(self) -> Optional[str]:
        """Directory holding the requested page, or None if no page was named"""
        if self.filename == "":
            return None
        return os.path.dirname(os.path.abspath(self.filename))


class ServiceRequest(BaseModel):
    """
    Envelope sent by the web server

    When exit_now or get_pid is set the user data is ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_data: RequestData = Field(default_factory=RequestData, alias="UserData")
    get_pid: bool = Field(default=False, alias="GetPID")
    exit_now: bool = Field(default=False, alias="ExitNow")

    @model_validator(mode="before")
    @classmethod
    def nulls_drop(cls, data: Any) -> Any:
        return _nulls_drop(data)


# What a number can still be waiting for when the data stops
_NUMBER_TAIL_RE = re.compile(r'-|\.|[eE][+-]?')


def _truncated(e: json.JSONDecodeError) -> bool:
    """Return True if e only says that the JSON text stops too early"""
    rest = e.doc[e.pos:]
    if e.pos >= len(e.doc) or e.msg.startswith("Unterminated string"):
        return True
    if e.msg.startswith("Invalid \\uXXXX escape"):
        return len(rest) < 6
    if any(literal.startswith(rest) for literal in ("true", "false", "null")):
        return True
    return _NUMBER_TAIL_RE.fullmatch(rest) is not None


def serviceRequest_decode(data: bytes) -> ServiceRequest:
    """
    Decode the first JSON object in data as a ServiceRequest

    Anything after the first complete JSON value is ignored.

    Raises:
        IncompleteRequest: if data is a prefix of what may still become a
                           JSON value
        DecodeError: if data is malformed or of the wrong shape
    """
    try:
        text = data.decode("utf-8").lstrip()
    except UnicodeDecodeError as e:
        if e.reason == "unexpected end of data":
            raise IncompleteRequest(f"Incomplete service request: {e}") from e
        raise DecodeError(f"Malformed service request: {e}") from e
    try:
        obj, _ = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError as e:
        if _truncated(e):
            raise IncompleteRequest(f"Incomplete service request: {e}") from e
        raise DecodeError(f"Malformed service request: {e}") from e
    try:
        return ServiceRequest.model_validate(obj)
    except ValidationError as e:
        raise DecodeError(f"Malformed service request: {e}") from e
