# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""AWS Signature Version 4 for S3 object requests.

All functions here are pure: the same spec and keys always give the same
signature. The caller supplies the clock through the spec's timestamp.
"""

import hashlib
import hmac
from datetime import datetime, timezone
from urllib.parse import quote

from .models import CanonicalRequestSpec, SignedRequestHeaders

ALGORITHM = "AWS4-HMAC-SHA256"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def encode_uri_path(path: str) -> str:
    """Percent-encode each path segment once, keeping the slashes."""
    return quote(path, safe="/~")


def format_timestamps(when: datetime) -> tuple[str, str]:
    """Return (timestamp, date_stamp) for a moment in UTC."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)
    return when.strftime("%Y%m%dT%H%M%SZ"), when.strftime("%Y%m%d")


def canonical_spec_for_get(
    host: str,
    path: str,
    when: datetime,
    region: str,
    session_token: str | None = None,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> CanonicalRequestSpec:
    """Build the canonical request spec for an S3 object GET.

    The host must be the exact host of the request line. Every x-amz-* header
    that will be sent is part of the signed set.
    """
    timestamp, date_stamp = format_timestamps(when)
    headers = [
        ("host", host),
        ("x-amz-content-sha256", payload_hash),
        ("x-amz-date", timestamp),
    ]
    if session_token:
        headers.append(("x-amz-security-token", session_token))
    return CanonicalRequestSpec(
        method="GET",
        canonical_uri=encode_uri_path(path),
        canonical_query="",
        headers=tuple(headers),
        timestamp=timestamp,
        date_stamp=date_stamp,
        region=region,
        payload_hash=payload_hash,
    )


def build_canonical_request(spec: CanonicalRequestSpec) -> str:
    return "\n".join(
        [
            spec.method,
            spec.canonical_uri,
            spec.canonical_query,
            spec.canonical_headers,
            spec.signed_headers,
            spec.payload_hash,
        ]
    )


def hash_canonical_request(spec: CanonicalRequestSpec) -> str:
    return hashlib.sha256(build_canonical_request(spec).encode("utf-8")).hexdigest()


def build_string_to_sign(spec: CanonicalRequestSpec) -> str:
    return "\n".join([ALGORITHM, spec.timestamp, spec.credential_scope, hash_canonical_request(spec)])


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str = "s3") -> bytes:
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def sign(
    spec: CanonicalRequestSpec,
    access_key: str,
    secret_key: str,
    session_token: str | None = None,
) -> SignedRequestHeaders:
    """Sign a canonical request and return the headers that carry the signature."""
    signing_key = derive_signing_key(secret_key, spec.date_stamp, spec.region, spec.service)
    signature = hmac.new(signing_key, build_string_to_sign(spec).encode("utf-8"), hashlib.sha256).hexdigest()
    authorization = (
        f"{ALGORITHM} Credential={access_key}/{spec.credential_scope}, "
        f"SignedHeaders={spec.signed_headers}, Signature={signature}"
    )
    return SignedRequestHeaders(
        authorization=authorization,
        amz_date=spec.timestamp,
        content_sha256=spec.payload_hash,
        security_token=session_token,
    )
