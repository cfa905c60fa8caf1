import io

import lxml.etree
import pytest

from httpmessage import exceptions
from httpmessage.http import Headers
from httpmessage.http import Message
from httpmessage.http import Request
from httpmessage.http import Response
from httpmessage.http import ServerRequest
from httpmessage.streams import Stream
from httpmessage.test import tutils
from httpmessage.uploads import UploadedFile
from httpmessage.uri import Uri


def _snapshot(m):
    return (
        m.protocol_version,
        m.get_headers(),
        m.body,
    )


class TestMessage:
    def test_init(self):
        m = Message()
        assert m.protocol_version == "1.1"
        assert m.get_headers() == {}
        assert bytes(m.body) == b""

        m = Message({"Content-Type": "text/plain"}, "content", "2.0")
        assert m.protocol_version == "2.0"
        assert m.get_header("content-type") == ["text/plain"]
        assert bytes(m.body) == b"content"

    def test_body_variants(self):
        s = Stream.from_bytes(b"stream")
        assert Message(body=s).body is s
        assert bytes(Message(body=b"bytes").body) == b"bytes"
        assert bytes(Message(body=io.BytesIO(b"handle")).body) == b"handle"
        with pytest.raises(exceptions.InvalidBody):
            Message(body=42)
        with pytest.raises(exceptions.InvalidBody):
            Message(body=["a"])

    def test_invalid_headers(self):
        with pytest.raises(exceptions.InvalidHeader):
            Message(headers="host: example.com")
        with pytest.raises(exceptions.InvalidHeader):
            Message().with_header(["host"], "example.com")

    def test_protocol_version(self):
        m = Message()
        for v in ("1.0", "1.1", "2.0"):
            assert m.with_protocol_version(v).protocol_version == v
        for v in ("1.2", "HTTP/1.1", 1.1, None):
            with pytest.raises(exceptions.InvalidProtocol):
                m.with_protocol_version(v)
        with pytest.raises(ValueError):
            Message(protocol_version="3.0")

    def test_headers(self):
        m = Message({"Accept": "text/html, text/plain"})
        assert m.has_header("ACCEPT")
        assert not m.has_header("host")
        assert m.get_header("accept") == ["text/html", "text/plain"]
        assert m.get_header("host") == []
        assert m.get_header_line("accept") == "text/html,text/plain"
        assert m.get_header_line("host") == ""

    def test_with_header(self):
        m = Message({"Accept": "text/html"})
        before = _snapshot(m)

        m2 = m.with_header("accept", "text/plain")
        assert m2.get_header("accept") == ["text/plain"]
        m3 = m.with_added_header("accept", ["text/plain", "*/*"])
        assert m3.get_header("accept") == ["text/html", "text/plain", "*/*"]
        m4 = m.without_header("accept")
        assert not m4.has_header("accept")
        m5 = m.with_body(b"new")
        assert bytes(m5.body) == b"new"

        assert _snapshot(m) == before
        for other in (m2, m3, m4, m5):
            assert other is not m

    def test_eq(self):
        s = Stream.empty()
        assert Message({"a": "1"}, s) == Message({"a": "1"}, s)
        assert Message({"a": "1"}, s) != Message({"a": "2"}, s)
        assert Message() != "message"
        assert "1.1" in repr(Message())


class TestRequest:
    def test_init(self):
        r = tutils.treq()
        assert r.method == "GET"
        assert str(r.uri) == "http://address:22/path?q=1"
        assert r.get_header("host") == ["address"]
        assert bytes(r.body) == b"content"
        assert "GET" in repr(r)

    def test_uri_from_string(self):
        r = Request("POST", "https://example.com/submit")
        assert r.uri == Uri("https", "example.com", None, "/submit")
        with pytest.raises(exceptions.InvalidUri):
            Request("GET", 42)

    def test_host_header_is_kept(self):
        r = tutils.treq(headers={"Host": "original.com"})
        assert r.get_header("host") == ["original.com"]
        r = tutils.treq(headers={"Host": ""})
        assert r.get_header("host") == ["address"]
        r = tutils.treq(uri=Uri(path="/relative"), headers={})
        assert not r.has_header("host")

    def test_method(self):
        r = tutils.treq()
        for m in ("GET", "POST", "DELETE", "PUT", "PATCH", "HEAD", "OPTIONS"):
            assert r.with_method(m).method == m
        for m in ("get", "CONNECT", "", None):
            with pytest.raises(exceptions.InvalidMethod):
                r.with_method(m)
        with pytest.raises(exceptions.InvalidMethod):
            tutils.treq(method="TRACE")

    def test_request_target(self):
        r = tutils.treq()
        assert r.request_target == "/path?q=1"
        assert r.with_request_target("*").request_target == "*"
        assert r.request_target == "/path?q=1"
        r = tutils.treq(uri=Uri("http", "example.com", None, ""))
        assert r.request_target == "/"
        r = tutils.treq(uri=Uri("http", "example.com", None, "/a"))
        assert r.request_target == "/a"

    def test_with_uri(self):
        r = tutils.treq(headers={"Host": "original.com"})
        new = Uri("https", "new.com", None, "/new")

        r2 = r.with_uri(new)
        assert r2.uri == new
        assert r2.get_header("host") == ["new.com"]
        assert r.get_header("host") == ["original.com"]

        r3 = r.with_uri(new, preserve_host=True)
        assert r3.get_header("host") == ["original.com"]

        r4 = r.without_header("host").with_uri(new, preserve_host=True)
        assert r4.get_header("host") == ["new.com"]

        r5 = r.with_uri(Uri(path="/no-host"))
        assert r5.get_header("host") == ["original.com"]

    def test_request_target_follows_uri(self):
        r = tutils.treq()
        r2 = r.with_uri(Uri("http", "address", None, "/other", "x=y"))
        assert r2.request_target == "/other?x=y"

    def test_message_accessors(self):
        r = tutils.treq()
        r2 = r.with_protocol_version("2.0").with_added_header("header", "second")
        assert r2.protocol_version == "2.0"
        assert r2.get_header("header") == ["qvalue", "second"]
        assert r2.get_header_line("header") == "qvalue,second"
        assert r.protocol_version == "1.1"
        assert r.get_header("header") == ["qvalue"]
        assert r2.method == r.method
        assert r2.uri == r.uri
        assert isinstance(r2, Request)
        assert isinstance(r2.message, Message)
        assert isinstance(r2.headers, Headers)

    def test_eq(self):
        s = Stream.empty()
        assert tutils.treq(body=s) == tutils.treq(body=s)
        assert tutils.treq(body=s) != tutils.treq(body=s).with_method("POST")
        assert tutils.treq(body=s) != tutils.tserverreq(body=s)


class TestServerRequest:
    def test_init(self):
        r = tutils.tserverreq()
        assert r.method == "GET"
        assert str(r.uri) == "http://test.com:1111/path/123?q=abc"
        assert r.server_params == {"REQUEST_METHOD": "GET", "HTTP_HOST": "test.com"}
        assert r.cookie_params == {}
        assert r.uploaded_files == {}
        assert r.attributes == {}
        assert "ServerRequest" in repr(r)

    def test_methods(self):
        r = tutils.tserverreq()
        for m in ("GET", "POST", "DELETE", "PUT", "PATCH"):
            assert r.with_method(m).method == m
        for m in ("HEAD", "OPTIONS"):
            with pytest.raises(exceptions.InvalidMethod):
                r.with_method(m)
            with pytest.raises(exceptions.InvalidMethod):
                tutils.tserverreq(method=m)

    def test_server_params_are_copies(self):
        r = tutils.tserverreq()
        r.server_params["HTTP_HOST"] = "mutated"
        assert r.server_params["HTTP_HOST"] == "test.com"

    def test_query_params(self):
        r = tutils.tserverreq()
        assert r.query_params == {"q": "abc"}

        r2 = r.with_query_params({"foo": "bar"})
        assert r2.query_params == {"foo": "bar"}
        assert r2.uri == r.uri
        assert r.query_params == {"q": "abc"}

        r3 = r.with_uri(r.uri.with_query("a[]=1&a[]=2&b[x]=3"))
        assert r3.query_params == {"a": ["1", "2"], "b": {"x": "3"}}

        r4 = r.with_uri(r.uri.with_query("q=a%20b"))
        assert r4.query_params == {"q": "a b"}

    def test_query_params_too_deep(self):
        r = tutils.tserverreq()
        r = r.with_uri(r.uri.with_query("a" + "[x]" * 3000 + "=1&b=2"))
        assert r.query_params == {"b": "2"}

    def test_cookie_params(self):
        r = tutils.tserverreq()
        r2 = r.with_cookie_params({"session": "abc"})
        assert r2.cookie_params == {"session": "abc"}
        assert r.cookie_params == {}

    def test_parsed_body(self):
        r = tutils.tserverreq(
            headers={"Content-Type": "application/json"},
            body=b'{"a": 1, "b": [1, 2]}',
        )
        assert r.parsed_body == {"a": 1, "b": [1, 2]}
        # Reading the body twice yields the same result.
        assert r.parsed_body == {"a": 1, "b": [1, 2]}

        r = tutils.tserverreq(
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"a=1&b=2",
        )
        assert r.parsed_body == {"a": "1", "b": "2"}

        r = tutils.tserverreq(headers={"Content-Type": "text/xml"}, body=b"<root><a>1</a></root>")
        assert isinstance(r.parsed_body, lxml.etree._Element)
        assert r.parsed_body.find("a").text == "1"

        r = tutils.tserverreq(headers={"Content-Type": "text/plain"}, body=b"x")
        assert r.parsed_body is None

        r = tutils.tserverreq(headers={}, body=b"x")
        assert r.parsed_body is None

    def test_parsed_body_keeps_body_position(self):
        s = Stream.from_bytes(b'{"a": 1}')
        r = tutils.tserverreq(headers={"Content-Type": "application/json"}, body=s)
        s.read(3)
        assert r.parsed_body == {"a": 1}
        assert r.body.tell() == 3
        assert s.read() == b": 1}"

    def test_parsed_body_follows_body(self):
        r = tutils.tserverreq(headers={"Content-Type": "application/json"}, body=b'{"a": 1}')
        r2 = r.with_body(b'{"a": 2}')
        assert r2.parsed_body == {"a": 2}
        assert r.parsed_body == {"a": 1}

    def test_with_parsed_body(self):
        r = tutils.tserverreq(headers={"Content-Type": "application/json"}, body=b'{"a": 1}')
        assert r.with_parsed_body({"b": 2}).parsed_body == {"b": 2}
        assert r.with_parsed_body([1, 2]).parsed_body == [1, 2]
        assert r.with_parsed_body(None).parsed_body is None

        class Obj:
            pass

        o = Obj()
        assert r.with_parsed_body(o).parsed_body is o

        for invalid in ("string", b"bytes", 42, 1.5, True):
            with pytest.raises(exceptions.InvalidParsedBody):
                r.with_parsed_body(invalid)
        assert r.parsed_body == {"a": 1}

    def test_uploaded_files(self, tmp_path):
        f = UploadedFile(str(tmp_path / "upload"), "a.txt", "text/plain", 3, 0)
        r = tutils.tserverreq()
        r2 = r.with_uploaded_files({"file": f, "nested": {"list": [f, f]}})
        assert r2.uploaded_files["file"] is f
        assert r.uploaded_files == {}

        with pytest.raises(exceptions.InvalidUploadedFiles):
            r.with_uploaded_files({"file": "not a file"})
        with pytest.raises(exceptions.InvalidUploadedFiles):
            r.with_uploaded_files({"nested": {"list": [f, 42]}})
        with pytest.raises(exceptions.InvalidUploadedFiles):
            r.with_uploaded_files("file")
        with pytest.raises(exceptions.InvalidUploadedFiles):
            tutils.tserverreq(uploaded_files={"file": None})

    def test_attributes(self):
        r = tutils.tserverreq()
        r2 = r.with_attribute("user", "alice")
        assert r2.get_attribute("user") == "alice"
        assert r2.attributes == {"user": "alice"}
        assert r.get_attribute("user") is None
        assert r.get_attribute("user", "default") == "default"

        r3 = r2.without_attribute("user")
        assert r3.get_attribute("user") is None
        assert r2.get_attribute("user") == "alice"
        assert r3.without_attribute("missing").attributes == {}

    def test_immutability(self):
        r = tutils.tserverreq(headers={"Host": "test.com"}, body=b"body")
        before = (
            r.method,
            r.uri,
            r.request_target,
            r.get_headers(),
            r.protocol_version,
            r.server_params,
            r.cookie_params,
            r.uploaded_files,
            r.query_params,
            r.attributes,
            r.body,
        )
        changed = [
            r.with_method("POST"),
            r.with_uri(Uri("http", "other.com")),
            r.with_request_target("*"),
            r.with_header("host", "x"),
            r.with_added_header("x-new", "1"),
            r.without_header("host"),
            r.with_protocol_version("2.0"),
            r.with_body(b"other"),
            r.with_cookie_params({"a": "b"}),
            r.with_query_params({"a": "b"}),
            r.with_uploaded_files({}),
            r.with_parsed_body({}),
            r.with_attribute("a", "b"),
            r.without_attribute("a"),
        ]
        after = (
            r.method,
            r.uri,
            r.request_target,
            r.get_headers(),
            r.protocol_version,
            r.server_params,
            r.cookie_params,
            r.uploaded_files,
            r.query_params,
            r.attributes,
            r.body,
        )
        assert before == after
        for c in changed:
            assert c is not r
            assert isinstance(c, ServerRequest)


class TestResponse:
    def test_init(self):
        r = tutils.tresp()
        assert r.status_code == 200
        assert r.reason_phrase == "OK"
        assert bytes(r.body) == b"message"
        assert repr(r) == "Response(200 OK)"

        r = Response()
        assert r.status_code == 200
        assert r.get_headers() == {}

        assert Response(404, reason_phrase="Gone Fishing").reason_phrase == "Gone Fishing"
        assert Response(599).reason_phrase == ""
        assert Response("201").status_code == 201

    def test_with_status(self):
        r = tutils.tresp()
        r2 = r.with_status(404)
        assert r2.status_code == 404
        assert r2.reason_phrase == "Not Found"
        assert r.status_code == 200

        r3 = r.with_status(418, "Short and stout")
        assert r3.reason_phrase == "Short and stout"
        assert r.with_status(418).reason_phrase == "I'm a teapot"
        assert r.with_status(100).status_code == 100
        assert r.with_status(599).status_code == 599

    def test_invalid_status(self):
        r = tutils.tresp()
        for code in (99, 600, 200.0, "abc", "20.5", None, True):
            with pytest.raises(exceptions.InvalidStatus):
                r.with_status(code)
        with pytest.raises(exceptions.InvalidStatus):
            Response(1000)

    def test_message_accessors(self):
        r = tutils.tresp()
        r2 = r.with_header("content-type", "text/plain").with_body("new")
        assert r2.get_header_line("content-type") == "text/plain"
        assert str(r2.body) == "new"
        assert r2.status_code == 200
        assert not r.has_header("content-type")
        assert bytes(r.body) == b"message"
