"""Direct HTTP download of Google Drive auto-generated captions."""

import logging

import httpx

from transcript_collector.config import get_settings
from transcript_collector.core.errors import AuthenticationError, TransportError
from transcript_collector.services.rate_limiter import RateLimiter
from transcript_collector.services.webvtt import CaptionSegment, is_html_content, parse_webvtt

settings = get_settings()
logger = logging.getLogger(__name__)

CAPTION_URL = "https://drive.google.com/uc"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class DriveCaptionService:
    """Fetch ASR captions for Drive videos using forwarded browser cookies."""

    def __init__(
        self,
        cookies: str | None = None,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            cookies: Cookie header value from a signed-in browser session
            rate_limiter: Spacing for caption requests, independent of other providers
            transport: Optional httpx transport (used by tests)
            timeout: Request timeout in seconds
        """
        self.cookies = cookies if cookies is not None else settings.google_browser_cookies
        self.rate_limiter = rate_limiter or RateLimiter.from_milliseconds(
            settings.caption_min_request_interval_ms
        )
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.cookies)

    async def download_captions(self, file_id: str) -> list[CaptionSegment] | None:
        """Download and parse captions for one video.

        Returns:
            Parsed segments, or None when the response carried no captions

        Raises:
            AuthenticationError: No cookies, or Drive answered with a sign-in page
            TransportError: Network failure or non-2xx response
        """
        if not self.is_configured:
            raise AuthenticationError(
                "Browser authentication required. Provide Google browser cookies first."
            )

        await self.rate_limiter.wait()

        params = {
            "id": file_id,
            "export": "timedtext",
            "ttkind": "asr",
            "ttlang": "en",
        }
        headers = {
            "Cookie": self.cookies,
            "User-Agent": BROWSER_USER_AGENT,
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout,
                follow_redirects=True,
            ) as client:
                response = await client.get(CAPTION_URL, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Caption download for {file_id} failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Caption download for {file_id} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        content = response.text
        if not content.strip():
            logger.debug(f"No caption content received for video {file_id}")
            return None

        if is_html_content(content):
            raise AuthenticationError(
                "Authentication failed. Browser cookies are invalid or expired; "
                "re-authenticate and update the stored cookies."
            )

        return parse_webvtt(content)
