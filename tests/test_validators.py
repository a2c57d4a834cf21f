"""Tests for URL and short code validation."""

from shortener.core.validators import (
    is_valid_url,
    sanitize_short_code,
    url_rejection_reason,
    validate_url_length,
)


class TestURLValidation:
    """Test URL validation function."""

    def test_valid_urls(self):
        """Test that valid URLs are accepted."""
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
            "https://example.com/a/b",
            "http://localhost:3000/dashboard",
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"

    def test_invalid_urls(self):
        """Test that invalid URLs are rejected."""
        invalid_urls = [
            "not-a-url",
            "ftp://example.com",  # FTP not supported
            "example.com",  # Missing scheme
            "",
            "http://",  # Missing domain
            "javascript:alert(1)",
            "data:text/html,hello",
            "https://exa mple.com",
            "http://[::1",  # Broken IPv6 literal
            "https://intranet/path",  # Bare hostname
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url}"

    def test_rejection_reason_names_the_scheme_problem(self):
        assert url_rejection_reason("ftp://example.com") == "URL must use http:// or https://"
        assert url_rejection_reason("https://example.com") is None

    def test_url_length_limit(self):
        long_url = "https://example.com/" + "a" * 3000
        assert not is_valid_url(long_url)
        assert not validate_url_length("")
        assert validate_url_length("https://example.com", max_length=50)


class TestShortCodeSanitization:

    def test_accepts_codes_from_the_alphabet(self):
        assert sanitize_short_code("aZ3k9Q") == "aZ3k9Q"
        assert sanitize_short_code("  aZ3k9Q ") == "aZ3k9Q"

    def test_rejects_foreign_characters(self):
        for code in ["abc/def", "../etc", "abc;drop", "ab c", "", None]:
            assert sanitize_short_code(code) is None, f"Should be rejected: {code!r}"

    def test_custom_alphabet(self):
        assert sanitize_short_code("ab-_", alphabet="ab-_") == "ab-_"
        assert sanitize_short_code("abc", alphabet="ab") is None

    def test_rejects_overlong_codes(self):
        assert sanitize_short_code("a" * 33) is None
