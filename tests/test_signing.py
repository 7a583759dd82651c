# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for SigV4 header signing.

Expected values come from the AWS S3 documentation examples, which use
the same secret key, region and date as these tests.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta, timezone

import pytest

from s3filelink.digest import hex_encode
from s3filelink.signing import (
    SigningRequest,
    build_canonical_request,
    build_string_to_sign,
    compute_signature,
    credential_scope,
    derive_signing_key,
    format_amz_date,
    parse_auth_header,
    sign,
    uri_encode_component,
    uri_encode_rfc3986,
)
from tests.vectors import (
    ACCESS_KEY,
    DOC_GET_SIGNATURE,
    DOC_GET_STRING_TO_SIGN,
    DOC_NOW,
    DOC_PUT_PAYLOAD_HASH,
    DOC_PUT_SIGNATURE,
    DOC_SIGNING_KEY_HEX,
    IAM_SECRET_KEY,
    IAM_SIGNING_KEY_HEX,
    SECRET_KEY,
)


def _doc_put_request() -> SigningRequest:
    return SigningRequest(
        method="PUT",
        path="/test%24file.text",
        query="",
        host="examplebucket.s3.amazonaws.com",
        region="us-east-1",
        payload_hash=DOC_PUT_PAYLOAD_HASH,
        access_key=ACCESS_KEY,
        secret_key=SECRET_KEY,
    )


# ---------------------------------------------------------------------------
# URI encoding
# ---------------------------------------------------------------------------


class TestUriEncodeComponent:
    """Tests for the baseline component encoder."""

    def test_unreserved_chars_not_encoded(self) -> None:
        """Letters, digits and -_.~ pass through unchanged."""
        assert uri_encode_component("abcXYZ019-_.~") == "abcXYZ019-_.~"

    def test_baseline_leaves_sub_delims(self) -> None:
        """The baseline encoder leaves !'()* alone."""
        assert uri_encode_component("!'()*") == "!'()*"

    def test_space_encoded_as_percent20(self) -> None:
        """Spaces are encoded as %20, not +."""
        assert uri_encode_component("a b") == "a%20b"

    def test_reserved_chars_encoded(self) -> None:
        """Reserved characters are percent-encoded with upper-case hex."""
        assert uri_encode_component("a/b?c=d&e#f@") == (
            "a%2Fb%3Fc%3Dd%26e%23f%40"
        )

    def test_non_ascii_utf8_bytes(self) -> None:
        """Non-ASCII characters are encoded byte by byte as UTF-8."""
        assert uri_encode_component("ä€") == "%C3%A4%E2%82%AC"


class TestUriEncodeRfc3986:
    """Tests for the strict RFC 3986 encoder."""

    def test_extra_chars_escaped(self) -> None:
        """!'()* are escaped on top of the baseline."""
        assert uri_encode_rfc3986("!'()*") == "%21%27%28%29%2A"

    def test_unreserved_untouched(self) -> None:
        """Unreserved characters still pass through."""
        assert uri_encode_rfc3986("file-name_1.0~x") == "file-name_1.0~x"

    def test_file_name(self) -> None:
        """A typical file name with spaces and parentheses."""
        assert uri_encode_rfc3986("report (final)*.pdf") == (
            "report%20%28final%29%2A.pdf"
        )

    def test_existing_percent_is_encoded(self) -> None:
        """A literal % is encoded, never treated as an escape."""
        assert uri_encode_rfc3986("100%") == "100%25"


# ---------------------------------------------------------------------------
# Timestamps and scope
# ---------------------------------------------------------------------------


class TestFormatAmzDate:
    """Tests for format_amz_date."""

    def test_utc(self) -> None:
        """UTC datetime is formatted without punctuation."""
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        assert format_amz_date(now) == "20260102T030405Z"

    def test_microseconds_dropped(self) -> None:
        """Sub-second precision is not included."""
        now = datetime(2026, 1, 2, 3, 4, 5, 987654, tzinfo=UTC)
        assert format_amz_date(now) == "20260102T030405Z"

    def test_aware_converted_to_utc(self) -> None:
        """Non-UTC aware datetimes are converted, crossing the date."""
        tz = timezone(timedelta(hours=2))
        now = datetime(2026, 1, 2, 1, 0, 0, tzinfo=tz)
        assert format_amz_date(now) == "20260101T230000Z"

    def test_naive_taken_as_utc(self) -> None:
        """Naive datetimes are formatted as-is."""
        assert format_amz_date(datetime(2026, 1, 2)) == "20260102T000000Z"


class TestCredentialScope:
    """Tests for credential_scope."""

    def test_scope(self) -> None:
        """Scope binds date, region and the s3 service."""
        assert credential_scope("20130524", "eu-west-1") == (
            "20130524/eu-west-1/s3/aws4_request"
        )


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


class TestBuildCanonicalRequest:
    """Tests for build_canonical_request."""

    def test_field_order(self) -> None:
        """Fields appear newline-joined in the SigV4 order."""
        result = build_canonical_request(
            "put",
            "/key",
            "",
            "bucket.example.com",
            "20260102T030405Z",
            "abc123",
        )
        assert result == (
            "PUT\n"
            "/key\n"
            "\n"
            "host:bucket.example.com\n"
            "x-amz-date:20260102T030405Z\n"
            "\n"
            "host;x-amz-date\n"
            "abc123"
        )

    def test_query_kept_verbatim(self) -> None:
        """Query string is placed on its own line unchanged."""
        result = build_canonical_request(
            "GET", "/", "a=1&b=2", "h", "20260102T030405Z", "x"
        )
        assert result.split("\n")[2] == "a=1&b=2"


class TestBuildStringToSign:
    """Tests for build_string_to_sign."""

    def test_doc_example(self) -> None:
        """Matches the GET object string to sign from the AWS docs."""
        canonical = (
            "GET\n"
            "/test.txt\n"
            "\n"
            "host:examplebucket.s3.amazonaws.com\n"
            "range:bytes=0-9\n"
            "x-amz-content-sha256:"
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855\n"
            "x-amz-date:20130524T000000Z\n"
            "\n"
            "host;range;x-amz-content-sha256;x-amz-date\n"
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
        result = build_string_to_sign(
            "20130524T000000Z",
            "20130524/us-east-1/s3/aws4_request",
            canonical,
        )
        assert result == DOC_GET_STRING_TO_SIGN


class TestDeriveSigningKey:
    """Tests for derive_signing_key."""

    def test_iam_doc_vector(self) -> None:
        """Matches the published key derivation example."""
        key = derive_signing_key(IAM_SECRET_KEY, "20120215", "us-east-1", "iam")
        assert hex_encode(key) == IAM_SIGNING_KEY_HEX

    def test_s3_doc_key(self) -> None:
        """S3 documentation key for 2013-05-24 in us-east-1."""
        key = derive_signing_key(SECRET_KEY, "20130524", "us-east-1")
        assert hex_encode(key) == DOC_SIGNING_KEY_HEX

    def test_raw_bytes(self) -> None:
        """Key is 32 raw bytes, not hex."""
        key = derive_signing_key(SECRET_KEY, "20130524", "us-east-1")
        assert isinstance(key, bytes)
        assert len(key) == 32


class TestComputeSignature:
    """Tests for compute_signature."""

    def test_doc_get_signature(self) -> None:
        """Reproduces the GET object signature from the AWS docs."""
        key = derive_signing_key(SECRET_KEY, "20130524", "us-east-1")
        assert compute_signature(key, DOC_GET_STRING_TO_SIGN) == (
            DOC_GET_SIGNATURE
        )


# ---------------------------------------------------------------------------
# sign()
# ---------------------------------------------------------------------------


class TestSign:
    """Tests for the full signing pipeline."""

    def test_put_authorization_header(self) -> None:
        """Full header for a documented PUT signing host and x-amz-date."""
        result = sign(_doc_put_request(), DOC_NOW)
        assert result == (
            "AWS4-HMAC-SHA256 "
            f"Credential={ACCESS_KEY}/20130524/us-east-1/s3/aws4_request, "
            "SignedHeaders=host;x-amz-date, "
            f"Signature={DOC_PUT_SIGNATURE}"
        )

    def test_method_case_insensitive(self) -> None:
        """Lower-case method signs the same as upper-case."""
        request = replace(_doc_put_request(), method="put")
        assert sign(request, DOC_NOW) == sign(_doc_put_request(), DOC_NOW)

    def test_deterministic(self) -> None:
        """Identical inputs give identical output."""
        assert sign(_doc_put_request(), DOC_NOW) == sign(
            _doc_put_request(), DOC_NOW
        )

    @pytest.mark.parametrize(
        "changes",
        [
            {"method": "POST"},
            {"path": "/other"},
            {"query": "x=1"},
            {"host": "other.s3.amazonaws.com"},
            {"region": "eu-west-1"},
            {"payload_hash": "0" * 64},
            {"secret_key": "other-secret"},
        ],
    )
    def test_any_field_changes_signature(self, changes: dict) -> None:
        """Varying a single signed field changes the signature."""
        base = parse_auth_header(sign(_doc_put_request(), DOC_NOW))
        changed = parse_auth_header(
            sign(replace(_doc_put_request(), **changes), DOC_NOW)
        )
        assert base is not None and changed is not None
        assert base.signature != changed.signature

    def test_timestamp_changes_signature(self) -> None:
        """A different second gives a different signature."""
        later = DOC_NOW + timedelta(seconds=1)
        assert sign(_doc_put_request(), DOC_NOW) != sign(
            _doc_put_request(), later
        )

    def test_access_key_only_in_credential(self) -> None:
        """Access key changes the credential but not the signature."""
        base = parse_auth_header(sign(_doc_put_request(), DOC_NOW))
        other = parse_auth_header(
            sign(replace(_doc_put_request(), access_key="AKIAOTHER"), DOC_NOW)
        )
        assert base is not None and other is not None
        assert base.signature == other.signature
        assert other.access_key == "AKIAOTHER"


class TestParseAuthHeader:
    """Tests for parse_auth_header."""

    def test_parses_signed_header(self) -> None:
        """Fields of a generated header are recovered."""
        parsed = parse_auth_header(sign(_doc_put_request(), DOC_NOW))
        assert parsed is not None
        assert parsed.algorithm == "AWS4-HMAC-SHA256"
        assert parsed.access_key == ACCESS_KEY
        assert parsed.scope == "20130524/us-east-1/s3/aws4_request"
        assert parsed.date == "20130524"
        assert parsed.region == "us-east-1"
        assert parsed.signed_headers == "host;x-amz-date"
        assert parsed.signature == DOC_PUT_SIGNATURE

    def test_rejects_other_schemes(self) -> None:
        """Non-SigV4 values return None."""
        assert parse_auth_header("Bearer abc") is None
