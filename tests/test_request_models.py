"""
Service request decoding tests

Tests the JSON envelope sent by the web server module.
"""

import pytest

from gosp.lib.errors import DecodeError, IncompleteRequest
from gosp.models import RequestData, ServiceRequest, serviceRequest_decode


class TestDecode:
    """Test decoding of service requests"""

    def test_wire_names(self):
        """Fields are read under the web server's JSON names"""
        request = serviceRequest_decode(
            b'{"UserData": {"Scheme": "https", "Port": 443, "Uri": "/a.gosp",'
            b' "QueryArgs": "x=1", "Method": "GET", "RequestTime": 1500000000000000000,'
            b' "GetData": {"x": "1"}, "HeaderData": {"Host": "example.com"},'
            b' "Filename": "/var/www/a.gosp"}}'
        )
        data = request.user_data
        assert data.scheme == "https"
        assert data.port == 443
        assert data.uri == "/a.gosp"
        assert data.query_args == "x=1"
        assert data.method == "GET"
        assert data.request_time == 1500000000000000000
        assert data.get_data == {"x": "1"}
        assert data.header_data == {"Host": "example.com"}
        assert data.filename == "/var/www/a.gosp"

    def test_control_flags(self):
        """GetPID and ExitNow are decoded"""
        assert serviceRequest_decode(b'{"GetPID": true}').get_pid
        assert serviceRequest_decode(b'{"ExitNow": true}').exit_now

    def test_empty_object(self):
        """An empty object is an ordinary request with zero values"""
        request = serviceRequest_decode(b"{}")
        assert not request.get_pid
        assert not request.exit_now
        assert request.user_data == RequestData()

    def test_nulls_take_defaults(self):
        """JSON nulls fall back to field defaults"""
        request = serviceRequest_decode(b'{"UserData": {"PostData": null, "Uri": null}, "GetPID": null}')
        assert request.user_data.post_data == {}
        assert request.user_data.uri == ""
        assert not request.get_pid

    def test_unknown_fields_ignored(self):
        """Fields the model does not know are skipped"""
        request = serviceRequest_decode(b'{"Extra": 1, "UserData": {"Novel": "x", "Method": "POST"}}')
        assert request.user_data.method == "POST"

    def test_trailing_data_ignored(self):
        """Only the first JSON value is decoded"""
        request = serviceRequest_decode(b'  {"GetPID": true}\n{"ExitNow": true}')
        assert request.get_pid
        assert not request.exit_now

    @pytest.mark.parametrize("data", [b"", b"{", b"not json", b"[1, 2]", b'{"GetPID": "maybe"}', b"\xff\xfe"])
    def test_malformed(self, data):
        """Bad input of every kind is a DecodeError"""
        with pytest.raises(DecodeError):
            serviceRequest_decode(data)

    @pytest.mark.parametrize(
        "data",
        [b"", b"  ", b"{", b'{"GetPID"', b'{"GetPID": tr', b'{"a": "ab', b'{"a": -', b'{"a": 1e',
         b'{"a": "\\u00', b'{"a": "\xc3'],
    )
    def test_incomplete(self, data):
        """Data that more input could still complete"""
        with pytest.raises(IncompleteRequest):
            serviceRequest_decode(data)

    @pytest.mark.parametrize("data", [b"{not json", b'{"GetPID": "maybe"}', b"[1, 2]", b"\xff\xfe", b'{"a": trux'])
    def test_complete_but_malformed(self, data):
        """Data that no further input can repair"""
        with pytest.raises(DecodeError) as exc_info:
            serviceRequest_decode(data)
        assert not isinstance(exc_info.value, IncompleteRequest)


class TestRequestData:
    """Test the request model itself"""

    def test_python_names(self):
        """Fields are also reachable under their Python names"""
        data = RequestData(remote_ip="10.0.0.1", admin_email="root@example.com")
        assert data.remote_ip == "10.0.0.1"
        assert data.admin_email == "root@example.com"

    def test_base_dir(self):
        """base_dir is the directory holding the page"""
        assert RequestData(filename="/var/www/site/index.gosp").base_dir == "/var/www/site"

    def test_no_base_dir_without_filename(self):
        """No filename means no base directory"""
        assert RequestData().base_dir is None

    def test_immutable(self):
        """Request data cannot be modified by a page"""
        data = RequestData()
        with pytest.raises(Exception):
            data.uri = "/changed"

    def test_envelope_default(self):
        """A bare envelope carries empty request data"""
        assert ServiceRequest().user_data == RequestData()
