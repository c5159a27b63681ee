"""
Unit tests for the request view.
"""

import pytest

from onionhttp import AppConfig, Application, HTTPError


def view(app, make_exchange, **kwargs):
    return app.create_context(*make_exchange(**kwargs)[:2]).request


class TestURL:
    """Tests for url / path / querystring / query."""

    def test_decomposition(self, app, make_exchange):
        """Test url, path, querystring, search and query."""
        request = view(app, make_exchange, url="/search/users?q=alice&tag=a&tag=b")

        assert request.path == "/search/users"
        assert request.querystring == "q=alice&tag=a&tag=b"
        assert request.search == "?q=alice&tag=a&tag=b"
        assert request.query == {"q": "alice", "tag": ["a", "b"]}

    def test_url_encoded_query(self, app, make_exchange):
        """Test percent-decoding and blank values."""
        request = view(app, make_exchange, url="/search?q=hello%20world&empty=")

        assert request.query == {"q": "hello world", "empty": ""}

    def test_no_query(self, app, make_exchange):
        """Test a URL without a query string."""
        request = view(app, make_exchange, url="/plain")

        assert request.query == {}
        assert request.search == ""

    def test_set_path_keeps_query(self, app, make_exchange):
        """Test that setting path keeps the query string."""
        request = view(app, make_exchange, url="/a?x=1")
        request.path = "/b"

        assert request.url == "/b?x=1"

    def test_set_querystring_keeps_path(self, app, make_exchange):
        """Test that setting querystring keeps the path."""
        request = view(app, make_exchange, url="/a?x=1")
        request.querystring = "y=2"

        assert request.url == "/a?y=2"
        assert request.query == {"y": "2"}

    def test_set_empty_querystring_drops_question_mark(self, app, make_exchange):
        """Test that an empty querystring drops the "?"."""
        request = view(app, make_exchange, url="/a?x=1")
        request.querystring = ""

        assert request.url == "/a"

    def test_set_query_encodes_dict(self, app, make_exchange):
        """Test that setting query encodes a dict."""
        request = view(app, make_exchange, url="/items")
        request.query = {"page": 2, "tag": ["a", "b"]}

        assert request.url == "/items?page=2&tag=a&tag=b"
        assert request.query == {"page": "2", "tag": ["a", "b"]}

    def test_set_method_uppercases(self, app, make_exchange):
        """Test that the method is stored uppercase."""
        request = view(app, make_exchange)
        request.method = "post"

        assert request.method == "POST"
        assert request.req.method == "POST"


class TestHeadersAndPeer:
    """Tests for header lookups, host and ip."""

    def test_get_is_case_insensitive(self, app, make_exchange):
        """Test case-insensitive header lookup."""
        request = view(app, make_exchange, headers={"Content-Type": "application/json; charset=utf-8"})

        assert request.get("CONTENT-TYPE") == "application/json; charset=utf-8"
        assert request.type == "application/json"

    def test_referrer_alias(self, app, make_exchange):
        """Test that Referrer reads Referer."""
        request = view(app, make_exchange, headers={"Referer": "http://example.com"})

        assert request.get("Referrer") == "http://example.com"

    def test_host_and_hostname(self, app, make_exchange):
        """Test host and hostname."""
        request = view(app, make_exchange, headers={"Host": "example.com:8080"})

        assert request.host == "example.com:8080"
        assert request.hostname == "example.com"

    def test_ipv6_hostname(self, app, make_exchange):
        """Test hostname for an IPv6 literal."""
        request = view(app, make_exchange, headers={"Host": "[::1]:3000"})

        assert request.hostname == "::1"

    def test_ip_ignores_forwarded_for_by_default(self, app, make_exchange):
        """Test that X-Forwarded-For is ignored without proxy trust."""
        request = view(
            app,
            make_exchange,
            headers={"X-Forwarded-For": "10.0.0.1"},
            client_address=("192.168.1.5", 1234),
        )

        assert request.ip == "192.168.1.5"

    def test_ip_trusts_forwarded_for_behind_proxy(self, make_exchange):
        """Test forwarded headers behind a trusted proxy."""
        app = Application(AppConfig(port=0, proxy=True))
        request = view(
            app,
            make_exchange,
            headers={"X-Forwarded-For": "10.0.0.1, 10.0.0.2", "X-Forwarded-Host": "public.example"},
        )

        assert request.ip == "10.0.0.1"
        assert request.host == "public.example"


class TestBody:
    """Tests for body access."""

    def test_json_body(self, app, make_exchange):
        """Test JSON body decoding."""
        request = view(
            app,
            make_exchange,
            method="POST",
            headers={"Content-Type": "application/json", "Content-Length": "13"},
            body=b'{"name": "a"}',
        )

        assert request.json == {"name": "a"}
        assert request.length == 13

    def test_invalid_json_is_a_400(self, app, make_exchange):
        """Test that invalid JSON raises a 400."""
        request = view(app, make_exchange, method="POST", body=b"{not json")

        with pytest.raises(HTTPError) as exc_info:
            request.json

        assert exc_info.value.status_code == 400

    def test_empty_body_json_is_none(self, app, make_exchange):
        """Test that an empty body decodes to None."""
        assert view(app, make_exchange).json is None
