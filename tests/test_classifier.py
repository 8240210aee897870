import pytest

from soc_chat.classifier import (
    VALIDATION_MESSAGE,
    InputKind,
    check_input_format,
    classify,
    hash_algorithm,
    is_url,
)


@pytest.mark.parametrize(
    "text", ["1.1.1.1", "192.168.0.10", "999.999.999.999", "  8.8.8.8  "]
)
def test_ipv4_syntax_classifies_as_ip(text):
    assert classify(text).kind is InputKind.IP


def test_strict_ipv4_rejects_out_of_range_octets():
    assert classify("999.999.999.999", strict_ipv4=True).kind is InputKind.UNKNOWN
    assert classify("255.0.0.1", strict_ipv4=True).kind is InputKind.IP


@pytest.mark.parametrize("text", ["1.1.1", "1.1.1.1.1", "1234.1.1.1", "1.1.1.1\n2"])
def test_not_quite_ipv4_is_not_ip(text):
    assert classify(text).kind is not InputKind.IP


@pytest.mark.parametrize(
    "text",
    ["https://example.com", "http://evil.example/login?x=1", "HTTPS://Example.com/path"],
)
def test_http_urls_classify_as_url(text):
    assert classify(text).kind is InputKind.URL


@pytest.mark.parametrize(
    "text",
    [
        "ftp://example.com",
        "example.com",
        "mailto:a@b.c",
        "https://",
        "https://a b",
        "http://a.com:abc",
        "http://a.com:99999",
        "http://exa<mple.com",
        "https://a.com:-1/x",
        "http://a|b.com/",
        "http:example.com",
    ],
)
def test_other_schemes_and_bare_hosts_are_not_urls(text):
    assert not is_url(text)
    assert classify(text).kind is not InputKind.URL


@pytest.mark.parametrize(
    "length, algorithm", [(32, "md5"), (40, "sha1"), (64, "sha256")]
)
def test_hex_of_hash_lengths_classify_as_hash(length, algorithm):
    value = ("aB3" * 30)[:length]
    result = classify(value)
    assert result.kind is InputKind.HASH
    assert result.hash_algorithm == algorithm


@pytest.mark.parametrize("length", [31, 33, 39, 41, 63, 65])
def test_hex_of_other_lengths_is_unknown(length):
    value = "f" * length
    assert hash_algorithm(value) is None
    assert classify(value).kind is InputKind.UNKNOWN


def test_free_text_is_unknown_and_keeps_trimmed_text():
    result = classify("  what is lateral movement?  ")
    assert result.kind is InputKind.UNKNOWN
    assert result.raw_text == "what is lateral movement?"
    assert not result.kind.is_enrichable


def test_format_rule_accepts_iocs_and_long_questions():
    assert check_input_format("1.1.1.1") is None
    assert check_input_format("https://x.io") is None
    assert check_input_format("d41d8cd98f00b204e9800998ecf8427e") is None
    assert check_input_format("how do I triage?") is None


def test_format_rule_rejects_short_unclassified_text():
    assert check_input_format("hi") == VALIDATION_MESSAGE
    # exactly at the threshold is still too short
    assert check_input_format("12345678") == VALIDATION_MESSAGE
    assert check_input_format("123456789") is None


def test_format_rule_ignores_empty_input():
    assert check_input_format("   ") is None
