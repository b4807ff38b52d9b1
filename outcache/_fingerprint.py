from __future__ import annotations

import base64
import hashlib
import typing as tp
import uuid

__all__ = ("compute_fingerprint", "format_etag", "parse_etag")


def compute_fingerprint(payload: tp.Optional[bytes], deterministic: bool) -> str:
    """
    Computes the fingerprint (ETag value) of a response payload.

    With ``deterministic`` set and a non-empty payload, the fingerprint is the
    base64 encoded SHA-256 digest of the payload, so a client holding the same
    content can be answered with ``304 Not Modified``. Otherwise a fresh random
    token is returned; empty payloads never share a fingerprint.

    Args:
        payload: The response body. ``None`` is treated as empty.
        deterministic: Whether to hash the content.

    Returns:
        The unquoted fingerprint.
    """
    if deterministic and payload:
        return base64.b64encode(hashlib.sha256(payload).digest()).decode("ascii")
    return str(uuid.uuid4())


def format_etag(fingerprint: str) -> str:
    return '"' + fingerprint.replace('"', "") + '"'


def parse_etag(value: str) -> str:
    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    return value.strip('"')
