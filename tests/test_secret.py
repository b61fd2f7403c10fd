"""Tests for secret resolution from files, URIs and literals."""

from unittest.mock import patch

import httpx
import pytest

from secure_data_bag.errors import (
    InvalidSecret,
    SecretMissing,
    SecretNotFound,
    SecretUnavailable,
)
from secure_data_bag.secret import is_remote, load_secret, read_secret


class TestIsRemote:
    @pytest.mark.parametrize("source", ["https://a/b", "http://a", "s3://bucket/key"])
    def test_uris(self, source):
        assert is_remote(source)

    @pytest.mark.parametrize("source", ["/etc/secret", "relative/secret", "C:\\secret"])
    def test_paths(self, source):
        assert not is_remote(source)


class TestLoadFromFile:
    def test_reads_and_strips(self, secret_file, key):
        assert load_secret(secret_file) == key

    def test_accepts_str_path(self, secret_file, key):
        assert load_secret(str(secret_file)) == key

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope"
        with pytest.raises(SecretNotFound, match="not found") as exc_info:
            load_secret(missing)
        assert exc_info.value.source == str(missing)

    def test_whitespace_only_is_invalid(self, tmp_path):
        path = tmp_path / "blank"
        path.write_text("  \n\t\n")
        with pytest.raises(InvalidSecret, match="zero length"):
            load_secret(path)

    def test_no_source_no_default(self):
        with pytest.raises(SecretMissing, match="No secret specified"):
            load_secret()

    def test_falls_back_to_configured_file(self, secret_file, key, monkeypatch):
        monkeypatch.setenv("SECURE_BAG_SECRET_FILE", str(secret_file))
        assert load_secret() == key


class TestLoadFromUri:
    URL = "https://keys.example/bag-secret"

    def test_fetches_and_strips(self):
        resp = httpx.Response(200, content=b"  remote-key\n", request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp) as mock_get:
            assert load_secret(self.URL) == b"remote-key"
        mock_get.assert_called_once_with(self.URL, timeout=10.0, follow_redirects=True)

    def test_explicit_timeout(self):
        resp = httpx.Response(200, content=b"k", request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp) as mock_get:
            load_secret(self.URL, timeout=1.5)
        assert mock_get.call_args.kwargs["timeout"] == 1.5

    def test_configured_timeout(self, monkeypatch):
        monkeypatch.setenv("SECURE_BAG_SECRET_TIMEOUT", "3")
        resp = httpx.Response(200, content=b"k", request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp) as mock_get:
            load_secret(self.URL)
        assert mock_get.call_args.kwargs["timeout"] == 3.0

    def test_not_found(self):
        resp = httpx.Response(404, request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp):
            with pytest.raises(SecretNotFound, match="404") as exc_info:
                load_secret(self.URL)
        assert exc_info.value.source == self.URL

    def test_server_error_is_not_found(self):
        resp = httpx.Response(500, request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp):
            with pytest.raises(SecretNotFound):
                load_secret(self.URL)

    def test_unreachable(self):
        url = "https://unreachable.example/key"
        with patch("httpx.get", side_effect=httpx.ConnectError("Connection refused")):
            with pytest.raises(SecretUnavailable, match="unreachable.example") as exc_info:
                load_secret(url)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_is_unavailable(self):
        with patch("httpx.get", side_effect=httpx.ReadTimeout("timed out")) as mock_get:
            with pytest.raises(SecretUnavailable):
                load_secret(self.URL)
        assert mock_get.call_count == 1  # no retry

    def test_redirect_loop_is_unavailable(self):
        with patch("httpx.get", side_effect=httpx.TooManyRedirects("loop")):
            with pytest.raises(SecretUnavailable) as exc_info:
                load_secret(self.URL)
        assert isinstance(exc_info.value.__cause__, httpx.TooManyRedirects)

    def test_undecodable_body_is_unavailable(self):
        with patch("httpx.get", side_effect=httpx.DecodingError("bad gzip")):
            with pytest.raises(SecretUnavailable):
                load_secret(self.URL)

    def test_empty_body_is_invalid(self):
        resp = httpx.Response(200, content=b"\n", request=httpx.Request("GET", self.URL))
        with patch("httpx.get", return_value=resp):
            with pytest.raises(InvalidSecret):
                load_secret(self.URL)


class TestReadSecret:
    def test_literal_wins_over_file(self, secret_file):
        assert read_secret("literal", secret_file) == b"literal"

    def test_literal_bytes(self):
        assert read_secret(b"raw") == b"raw"

    def test_falls_back_to_file(self, secret_file, key):
        assert read_secret(None, secret_file) == key

    def test_empty_literal_is_invalid(self, secret_file):
        with pytest.raises(InvalidSecret):
            read_secret("", secret_file)

    def test_nothing_configured(self):
        with pytest.raises(SecretMissing):
            read_secret()
