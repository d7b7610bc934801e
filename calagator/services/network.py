"""
Fetching remote calendars over HTTP.
"""

import asyncio
from typing import Optional

import aiohttp

from calagator.config import get_settings
from calagator.exceptions import FetchError
from calagator.logging_config import get_logger

logger = get_logger("services.network")

DEFAULT_HEADERS = {
    "User-Agent": "Calagator/1.0 (+http://calagator.org/)",
    "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.1",
}


async def fetch_url(url: str, timeout: Optional[float] = None) -> str:
    """
    Download a document, failing fast instead of retrying.

    Args:
        url: Address to fetch
        timeout: Total timeout in seconds, defaults to ``FETCH_TIMEOUT``

    Returns:
        Response body as text

    Raises:
        FetchError: On timeout, connection failure or a non-2xx status
    """
    settings = get_settings()
    client_timeout = aiohttp.ClientTimeout(total=timeout or settings.FETCH_TIMEOUT)
    loop = asyncio.get_running_loop()
    start_time = loop.time()

    try:
        async with aiohttp.ClientSession(timeout=client_timeout, headers=DEFAULT_HEADERS) as session:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    logger.error(f"HTTP {response.status} error for {url}")
                    raise FetchError(url, f"HTTP {response.status}", status=response.status)

                content = await response.text()
                logger.debug(
                    f"Request to {url} succeeded. "
                    f"Status: {response.status}, "
                    f"Size: {len(content)} chars, "
                    f"Time: {loop.time() - start_time:.2f}s"
                )
                return content

    except asyncio.TimeoutError as e:
        logger.error(f"Request timeout to {url}")
        raise FetchError(url, "request timed out") from e
    except aiohttp.ClientError as e:
        logger.error(f"Network error for {url}: {str(e)}")
        raise FetchError(url, str(e)) from e
