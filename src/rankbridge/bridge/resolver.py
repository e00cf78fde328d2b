"""Profile URL -> global id resolution for onboarding.

Community profile pages have an XML rendition (``?xml=1``) whose
top-level ``steamID64`` element holds the 64-bit id::

    <profile>
        <steamID64>76561198000000000</steamID64>
        <steamID><![CDATA[someone]]></steamID>
        ...
    </profile>

Unknown profiles come back as ``<response><error>...</error></response>``,
which resolves to ``None``. No retries happen here; callers decide.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from xml.etree import ElementTree

import httpx

from rankbridge.core.errors import FetchError, ParseError
from rankbridge.core.logging import get_logger

logger = get_logger(__name__)

ID_ELEMENT = "steamID64"
DEFAULT_COMMUNITY_URL = "https://steamcommunity.com"

# /id/<vanity> or /profiles/<id>, optionally with a trailing slash
_COMMUNITY_PATH = re.compile(r"^/(id|profiles)/[^/]+/?$")


def xml_profile_url(profile_url: str) -> str:
    """Return the XML rendition of a community profile URL.

    Only plain community profile paths are rewritten. Any other URL, or
    one that already carries an ``xml`` parameter, is returned as given.
    """
    url = profile_url.strip()
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if not _COMMUNITY_PATH.match(parts.path) or any(key == "xml" for key, _ in query):
        return url

    path = parts.path if parts.path.endswith("/") else parts.path + "/"
    query.append(("xml", "1"))
    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(query), parts.fragment))


def profile_url_for(global_id: int, base_url: str = DEFAULT_COMMUNITY_URL) -> str:
    """Canonical community URL of a global id."""
    return f"{base_url.rstrip('/')}/profiles/{global_id}"


def parse_profile_document(document: str) -> int | None:
    """Extract the global id from a profile XML document.

    Raises:
        ParseError: The document is not XML or the id is not numeric.
    """
    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as e:
        raise ParseError("profile document is not valid XML", cause=e) from e

    element = root.find(ID_ELEMENT)
    if element is None or not (element.text or "").strip():
        return None

    text = element.text.strip()
    try:
        return int(text)
    except ValueError as e:
        raise ParseError(f"{ID_ELEMENT} is not numeric: {text!r}", cause=e) from e


class IdentityResolver:
    """Resolves a public profile URL to a global id with one fetch.

    Args:
        timeout: HTTP timeout in seconds.
        client: Optional shared ``httpx.AsyncClient``; one is created per
            call when omitted.
    """

    def __init__(self, *, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._client = client

    async def resolve(self, profile_url: str) -> int | None:
        """Return the global id behind ``profile_url``, or None.

        Raises:
            FetchError: Transport failure or non-2xx status.
            ParseError: The fetched document is not a parseable profile.
        """
        url = xml_profile_url(profile_url)
        document = await self._fetch(url)
        try:
            global_id = parse_profile_document(document)
        except ParseError as e:
            raise e.with_context(url=url)

        logger.info("profile_resolved", url=url, global_id=global_id)
        return global_id

    async def _fetch(self, url: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(url)
                response.raise_for_status()
                return response.text

            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            logger.warning("profile_fetch_failed", url=url, error=str(e))
            raise FetchError(f"could not fetch profile: {e}", cause=e).with_context(url=url) from e


__all__ = [
    "IdentityResolver",
    "ID_ELEMENT",
    "parse_profile_document",
    "profile_url_for",
    "xml_profile_url",
]
