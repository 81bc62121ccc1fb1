import logging
import re
from typing import Optional

import aiohttp

log = logging.getLogger("terabox-client")

DEFAULT_API_BASE = "https://terabox.hnn.workers.dev"

_SHORT_CODE_RE = re.compile(r"[A-Za-z0-9_-]+")
_SHARE_URL_RE = re.compile(r"(?:/s/|shorturl=)([A-Za-z0-9_-]+)", re.IGNORECASE)


class TeraboxError(RuntimeError):
    pass


class InvalidShareUrl(ValueError):
    pass


class MetadataFetchFailed(RuntimeError):
    pass


class DownloadLinkFetchFailed(RuntimeError):
    pass


def extract_short_url(text: str) -> Optional[str]:
    """
    Return the share code from a full Terabox link, or the input itself
    if it already is a bare short code. None when nothing matches.
    """
    if _SHORT_CODE_RE.fullmatch(text):
        return text
    m = _SHARE_URL_RE.search(text)
    return m.group(1) if m else None


def get_headers(origin: str) -> dict:
    """Browser-like headers; the proxy answers 403 without them."""
    return {
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Origin": origin,
        "Referer": origin + "/",
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36"
        ),
    }


async def _get_json(resp: aiohttp.ClientResponse) -> dict:
    resp.raise_for_status()
    data = await resp.json(content_type=None)
    return data if isinstance(data, dict) else {}


async def _resolve(session: aiohttp.ClientSession, short_url: str, api_base: str) -> dict:
    async with session.get(
        f"{api_base}/api/get-info-new",
        params={"shorturl": short_url},
        headers=get_headers(api_base),
    ) as r:
        info = await _get_json(r)

    if not info.get("ok") or not info.get("list"):
        raise MetadataFetchFailed("Failed to retrieve file info from Terabox.")

    # multi-file shares: only the first entry is served
    file = info["list"][0]
    payload = {
        "shareid": info.get("shareid"),
        "uk": info.get("uk"),
        "sign": info.get("sign"),
        "timestamp": info.get("timestamp"),
        "fs_id": file.get("fs_id"),
    }

    async with session.post(
        f"{api_base}/api/get-download",
        json=payload,
        headers={**get_headers(api_base), "Content-Type": "application/json"},
    ) as r:
        data = await _get_json(r)

    if not data.get("ok"):
        raise DownloadLinkFetchFailed("Failed to get download URL from Terabox.")

    # the proxy is not consistent about the field name
    download_url = data.get("downloadLink") or data.get("url") or data.get("link")
    if not download_url:
        raise DownloadLinkFetchFailed("Terabox response did not include a download link.")

    return {
        "filename": file.get("server_filename"),
        "size": file.get("size"),
        "download_url": download_url,
    }


async def fetch_terabox(
    input_url: str,
    api_base: str = DEFAULT_API_BASE,
    session: Optional[aiohttp.ClientSession] = None,
) -> dict:
    """
    Resolve a Terabox share link or short code into
    {'filename': str, 'size': int, 'download_url': str}.
    The proxy's `downloadLink` / `url` / `link` ends up under 'download_url'.
    Input is matched as given; callers strip chat text themselves.

    Two requests are made in order: share info, then the download link.
    Every failure, including transport errors, is re-raised as TeraboxError
    with the original exception chained.
    """
    api_base = api_base.rstrip("/")
    try:
        short_url = extract_short_url(input_url)
        if not short_url:
            raise InvalidShareUrl("Invalid Terabox URL or short code.")

        log.info(f"Resolving Terabox share {short_url}")
        if session is not None:
            return await _resolve(session, short_url, api_base)
        async with aiohttp.ClientSession() as sess:
            return await _resolve(sess, short_url, api_base)
    except Exception as e:
        log.warning(f"Terabox resolve failed for {input_url!r}: {e}")
        raise TeraboxError(f"Terabox API request failed: {e}") from e
