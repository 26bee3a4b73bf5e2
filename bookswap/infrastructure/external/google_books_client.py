"""
Google Books API client implementing the BookInfoProvider port.

Looks up bibliographic data by ISBN so that owners can pre-fill a new
listing. The HTTP session is injectable: production code uses a
requests.Session, tests pass a fake that returns canned responses.
"""

import logging
import random
import time
from typing import Any, Callable, List, Optional

import requests

from bookswap.domain.value_objects import BookInfo

logger = logging.getLogger(__name__)


class GoogleBooksClient:
    """
    Google Books API client for ISBN lookups.

    Transient failures (timeouts, connection errors, 429 and 5xx) are
    retried a few times with jittered exponential backoff; anything else
    fails immediately.

    Usage:
        # Production
        client = GoogleBooksClient(api_key="your-api-key")
        info = client.lookup_isbn("9780441013593")

        # Testing (with fake session)
        client = GoogleBooksClient(session=fake_session, sleep=lambda _: None)
    """

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[Any] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the Google Books client.

        Args:
            api_key: Optional Google API key for higher rate limits.
                    Without a key, requests are limited but still work.
            session: Optional HTTP session for dependency injection.
                    If None, creates a new requests.Session().
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts after a transient failure
            sleep: Backoff function (injectable for tests)
        """
        self._api_key = api_key
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._max_retries = max_retries
        self._sleep = sleep

    def lookup_isbn(self, isbn: str) -> Optional[BookInfo]:
        """
        Fetch data for an ISBN.

        Args:
            isbn: Normalized ISBN-10 or ISBN-13

        Returns:
            BookInfo built from the first matching volume, or None when
            Google Books has no volume for the ISBN

        Raises:
            ValueError: If isbn is empty or blank
            RuntimeError: If the API request fails
        """
        if not isbn or not isbn.strip():
            raise ValueError("isbn cannot be empty")

        params = {"q": f"isbn:{isbn.strip()}", "maxResults": 1}
        if self._api_key:
            params["key"] = self._api_key

        data = self._get_json(params)

        for item in data.get("items", []):
            info = self._parse_volume(isbn.strip(), item)
            if info is not None:
                return info

        logger.info(f"No Google Books volume found for ISBN {isbn}")
        return None

    def get_source_name(self) -> str:
        return "Google Books"

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _get_json(self, params: dict) -> dict:
        attempt = 0
        while True:
            try:
                response = self._session.get(self.BASE_URL, params=params, timeout=self._timeout)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.HTTPError as e:
                status_code = getattr(getattr(e, "response", None), "status_code", None)
                if status_code in self.RETRYABLE_STATUSES and attempt < self._max_retries:
                    attempt = self._back_off(attempt, f"HTTP {status_code}")
                    continue
                raise RuntimeError(f"Google Books API request failed: {e}") from e
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt < self._max_retries:
                    attempt = self._back_off(attempt, type(e).__name__)
                    continue
                raise RuntimeError(f"Google Books API request failed: {e}") from e
            except (requests.exceptions.RequestException, ValueError) as e:
                # ValueError covers a body that is not valid JSON
                raise RuntimeError(f"Google Books API request failed: {e}") from e

    def _back_off(self, attempt: int, reason: str) -> int:
        sleep_s = 0.5 * (2 ** attempt) + random.uniform(0, 0.2)
        logger.warning(
            f"Google Books API transient failure ({reason}); retrying in {sleep_s:.2f}s "
            f"(attempt {attempt + 1}/{self._max_retries})"
        )
        self._sleep(sleep_s)
        return attempt + 1

    def _parse_volume(self, isbn: str, volume: dict) -> Optional[BookInfo]:
        """
        Parse a Google Books volume JSON object into BookInfo.

        A volume without a title is skipped. Missing authors default to
        ["Unknown"].
        """
        volume_info = volume.get("volumeInfo") or {}

        title = volume_info.get("title")
        if not title:
            return None

        authors: List[str] = volume_info.get("authors") or ["Unknown"]

        page_count = volume_info.get("pageCount")
        if not isinstance(page_count, int) or page_count <= 0:
            page_count = None

        image_links = volume_info.get("imageLinks") or {}
        cover_image_url = image_links.get("thumbnail") or image_links.get("smallThumbnail")

        return BookInfo(
            isbn=self._pick_isbn(isbn, volume_info),
            title=title,
            authors=list(authors),
            description=volume_info.get("description"),
            publisher=volume_info.get("publisher"),
            published_date=volume_info.get("publishedDate"),
            page_count=page_count,
            language=volume_info.get("language"),
            categories=list(volume_info.get("categories") or []),
            cover_image_url=cover_image_url,
        )

    @staticmethod
    def _pick_isbn(requested: str, volume_info: dict) -> str:
        """Prefer the volume's ISBN-13, then ISBN-10, then what was asked for."""
        by_type = {
            identifier.get("type"): identifier.get("identifier")
            for identifier in volume_info.get("industryIdentifiers") or []
        }
        return by_type.get("ISBN_13") or by_type.get("ISBN_10") or requested
