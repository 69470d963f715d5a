"""Resolve the anonymous caller identity (its IP address)."""

from __future__ import annotations

import ipaddress
import logging
from typing import Any, Mapping, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

FALLBACK_IDENTITY = '127.0.0.1'
UNKNOWN_CLIENT_IP = '0.0.0.0'

_FORWARD_HEADERS = ('x-forwarded-for', 'cf-connecting-ip', 'x-real-ip')


class IdentityResolver(Protocol):
    """Anything that can produce an identity for the current visitor."""

    async def resolve(self) -> str:
        ...


def _as_ip(candidate: Any) -> Optional[str]:
    # в JSON ответа lookup поле ip может оказаться числом или списком
    if not isinstance(candidate, str) or not candidate:
        return None
    candidate = candidate.strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def client_ip_from_headers(
    headers: Mapping[str, str],
    client_host: Optional[str] = None,
    default: str = UNKNOWN_CLIENT_IP,
) -> str:
    """Pick the caller IP from proxy headers, then from the socket peer.

    X-Forwarded-For may carry a chain of addresses; the first one is
    the original client.
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in _FORWARD_HEADERS:
        raw = lowered.get(name, '')
        ip = _as_ip(raw.split(',')[0])
        if ip:
            return ip
    return _as_ip(client_host) or default


def _ip_from_payload(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        return _as_ip(payload)
    if isinstance(payload, dict):
        return _as_ip(payload.get('ip') or payload.get('clientIp'))
    return None


class HeaderIdentityResolver:
    """Identity taken from the request that opened the session."""

    def __init__(
        self,
        headers: Mapping[str, str],
        client_host: Optional[str] = None,
    ) -> None:
        self._headers = headers
        self._client_host = client_host

    async def resolve(self) -> str:
        return client_ip_from_headers(
            self._headers,
            self._client_host,
            default=FALLBACK_IDENTITY,
        )


class HttpIdentityResolver:
    """Identity fetched from an external ``GET -> {"ip": ...}`` lookup.

    Never raises: every failure mode degrades to ``FALLBACK_IDENTITY``,
    which means all such visitors share one dedup key.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 3.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _fetch(self) -> Any:
        if self._client is not None:
            response = await self._client.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            return response.json()

    async def resolve(self) -> str:
        try:
            payload = await self._fetch()
        except (httpx.HTTPError, ValueError) as error:
            logger.warning(
                'identity_lookup_failed',
                extra={'url': self.url, 'err': str(error)},
            )
            return FALLBACK_IDENTITY

        ip = _ip_from_payload(payload)
        if ip is None:
            logger.warning(
                'identity_lookup_malformed',
                extra={'url': self.url},
            )
            return FALLBACK_IDENTITY
        return ip
