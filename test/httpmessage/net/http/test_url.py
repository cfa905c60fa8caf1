import pytest
from hypothesis import given
from hypothesis import strategies as st

from httpmessage.net.http import url


def test_quote():
    assert url.quote("/foo/bar") == "/foo/bar"
    assert url.quote("a b") == "a%20b"
    assert url.quote("ü") == "%C3%BC"
    assert url.quote("a=1&b=[2]") == "a=1&b=%5B2%5D"
    # Existing escapes are kept, a lone percent sign is not.
    assert url.quote("a%20b") == "a%20b"
    assert url.quote("100%") == "100%25"
    assert url.quote("%zz") == "%25zz"


@given(st.text())
def test_quote_idempotent(s):
    once = url.quote(s)
    assert url.quote(once) == once
    once.encode("ascii")


def test_unquote():
    assert url.unquote("a%20b") == "a b"
    assert url.unquote("%C3%BC") == "ü"
    assert url.unquote("a+b") == "a+b"


def test_split():
    assert url.split("http://user:pw@example.com:8080/p?q=1#f") == (
        "http",
        "example.com",
        8080,
        "/p",
        "q=1",
        "f",
        "user",
        "pw",
    )
    assert url.split("//example.com") == ("", "example.com", None, "/", "", "", "", "")
    assert url.split("") == ("", "", None, "/", "", "", "", "")
    assert url.split("/only/a/path?x") == ("", "", None, "/only/a/path", "x", "", "", "")

    with pytest.raises(ValueError):
        url.split("http://example.com:bar/")
    with pytest.raises(ValueError):
        url.split("http://example.com:99999/")


def test_default_port():
    assert url.default_port("http") == 80
    assert url.default_port("https") == 443
    assert url.default_port("ftp") is None
    assert url.default_port("") is None


def test_hostport():
    assert url.hostport("http", "example.com", None) == "example.com"
    assert url.hostport("http", "example.com", 80) == "example.com"
    assert url.hostport("http", "example.com", 8080) == "example.com:8080"
    assert url.hostport("https", "example.com", 80) == "example.com:80"


def test_parse_authority():
    assert url.parse_authority("example.com") == ("example.com", None)
    assert url.parse_authority("example.com:8080") == ("example.com", 8080)
    assert url.parse_authority("[::1]:80") == ("::1", 80)
    assert url.parse_authority("[::1]") == ("::1", None)
    # Malformed authorities come back unchanged.
    assert url.parse_authority("a:b:c") == ("a:b:c", None)


def test_decode():
    assert url.decode("a=1&b=&c") == [("a", "1"), ("b", ""), ("c", "")]
    assert url.decode("a+b=c%20d") == [("a b", "c d")]
    assert url.decode("") == []


class TestDecodeNested:
    def test_flat(self):
        assert url.decode_nested("a=1&b=2") == {"a": "1", "b": "2"}
        assert url.decode_nested("a=1&a=2") == {"a": "2"}
        assert url.decode_nested("") == {}

    def test_nested(self):
        assert url.decode_nested("a=1&b[x]=2&b[y]=3&c[]=4&c[]=5") == {
            "a": "1",
            "b": {"x": "2", "y": "3"},
            "c": ["4", "5"],
        }
        assert url.decode_nested("x[y][z]=1") == {"x": {"y": {"z": "1"}}}
        assert url.decode_nested("x[y][]=1&x[y][]=2") == {"x": {"y": ["1", "2"]}}

    def test_indices(self):
        assert url.decode_nested("a[0]=x&a[1]=y") == {"a": ["x", "y"]}
        # Gaps keep the container a mapping.
        assert url.decode_nested("a[0]=x&a[2]=y") == {"a": {"0": "x", "2": "y"}}
        assert url.decode_nested("a[]=x&a[5]=y&a[]=z") == {"a": {"0": "x", "5": "y", "6": "z"}}

    def test_scalar_replaced_by_container(self):
        assert url.decode_nested("a=1&a[b]=2") == {"a": {"b": "2"}}

    def test_malformed_keys(self):
        assert url.decode_nested("a[b=1") == {"a[b": "1"}
        assert url.decode_nested("[a]=1") == {"[a]": "1"}

    def test_nesting_limit(self):
        deepest = "a" + "[x]" * url.MAX_NESTING_LEVEL + "=1"
        d = url.decode_nested(deepest)["a"]
        for _ in range(url.MAX_NESTING_LEVEL):
            d = d["x"]
        assert d == "1"

        too_deep = "a" + "[x]" * (url.MAX_NESTING_LEVEL + 1) + "=1"
        assert url.decode_nested(too_deep + "&b=2") == {"b": "2"}
        assert url.decode_nested("a" + "[x]" * 3000 + "=1") == {}


def test_nest():
    assert url.nest([("a[]", 1), ("a[]", 2), ("b", None)]) == {"a": [1, 2], "b": None}
