"""Fetch remote plugin sources and verify Subresource Integrity hashes."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pagedmd._constants import REMOTE_FETCH_TIMEOUT_SECONDS

from .models import PluginLoadError, PluginSecurityError

logger = logging.getLogger(__name__)

SRI_ALGORITHMS = ("sha256", "sha384", "sha512")


def build_session() -> requests.Session:
    """Return a session that retries transient failures on GET and HEAD."""
    session = requests.Session()
    retry = Retry(
        total=5,
        read=5,
        connect=3,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def fetch_remote_source(
    url: str,
    *,
    session: requests.Session | None = None,
    timeout: float = REMOTE_FETCH_TIMEOUT_SECONDS,
) -> bytes:
    """Download the raw bytes of a remote plugin.

    Parameters
    ----------
    url : str
        http(s) location of the plugin source.
    session : requests.Session, optional
        Session to reuse; a retrying session is created and closed otherwise.
    timeout : float, optional
        Per-request timeout in seconds.

    Returns
    -------
    bytes
        The response body, unmodified so integrity can be checked on it.

    Raises
    ------
    PluginLoadError
        If the request fails or returns an error status.
    """
    owned = session is None
    active = session or build_session()
    try:
        resp = active.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.content
    except requests.RequestException as exc:
        msg = f"Failed to fetch remote plugin {url}: {exc}"
        raise PluginLoadError(msg, locator=url) from exc
    finally:
        if owned:
            active.close()


def verify_integrity(payload: bytes, integrity: str, *, locator: str) -> None:
    """Check ``payload`` against an SRI string such as ``sha384-<base64>``.

    Several space-separated hashes may be given; the payload must match at
    least one of those using the strongest algorithm present, as browsers do.

    Raises
    ------
    PluginSecurityError
        If the integrity string is malformed or no hash matches.

    Examples
    --------
    >>> digest = base64.b64encode(hashlib.sha256(b"x").digest()).decode()
    >>> verify_integrity(b"x", f"sha256-{digest}", locator="demo")
    """
    expected: dict[str, list[bytes]] = {}
    for token in integrity.split():
        algorithm, sep, encoded = token.partition("-")
        if not sep or algorithm not in SRI_ALGORITHMS:
            msg = f"Unsupported integrity value {token!r} for {locator}."
            raise PluginSecurityError(msg, locator=locator)
        try:
            expected.setdefault(algorithm, []).append(
                base64.b64decode(encoded, validate=True)
            )
        except binascii.Error as exc:
            msg = f"Malformed integrity digest for {locator}."
            raise PluginSecurityError(msg, locator=locator) from exc
    if not expected:
        msg = f"Empty integrity value for {locator}."
        raise PluginSecurityError(msg, locator=locator)

    strongest = max(expected, key=SRI_ALGORITHMS.index)
    actual = hashlib.new(strongest, payload).digest()
    if not any(hmac.compare_digest(actual, digest) for digest in expected[strongest]):
        msg = f"Integrity check failed for {locator} ({strongest})."
        raise PluginSecurityError(msg, locator=locator)
    logger.debug("integrity verified for %s (%s)", locator, strongest)


__all__ = ["build_session", "fetch_remote_source", "verify_integrity"]
