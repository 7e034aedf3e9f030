"""Webhook signature and token validation."""

from __future__ import annotations

import hmac

from selfpm.utils.logging import get_logger

log = get_logger(__name__)


def _raw(value: str) -> bytes:
    # aiohttp decodes undecodable header bytes as lone surrogates
    return value.encode("utf-8", "surrogatepass")


def github_digest(body: bytes, secret: str, algorithm: str = "sha1") -> str | None:
    """Compute the ``<algorithm>=<hexdigest>`` value GitHub sends.

    Returns None if the digest algorithm is not available.
    """
    try:
        mac = hmac.new(secret.encode(), body, algorithm)
    except (ValueError, TypeError):
        log.warning("webhook_digest_unavailable", algorithm=algorithm)
        return None
    return f"{algorithm}={mac.hexdigest()}"


def validate_github_signature(
    body: bytes, signature: str, secret: str, algorithm: str = "sha1"
) -> bool:
    """Validate a GitHub webhook HMAC signature over the raw body.

    Returns False if no secret is configured (rejects unauthenticated requests).
    """
    if not secret:
        return False
    if not signature:
        return False
    expected = github_digest(body, secret, algorithm)
    log.debug("webhook_signature", received=signature, calculated=expected)
    if expected is None:
        return False
    return hmac.compare_digest(_raw(expected), _raw(signature))


def validate_gitlab_token(presented: str, token: str) -> bool:
    """GitLab sends the project's static secret token verbatim.

    Returns False if no token is configured (rejects unauthenticated requests).
    """
    if not token:
        return False
    if not presented:
        return False
    return hmac.compare_digest(_raw(presented), _raw(token))
