"""
Synology Update Checker - HTTP Transport
Fetches catalog pages and downloads artifacts with requests.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from requests import exceptions as req_exc

logger = logging.getLogger(__name__)


@dataclass
class HttpConfig:
    """Timeout and retry settings for catalog and download requests."""
    timeout: int = 15
    download_timeout: int = 300
    retries: int = 1
    user_agent: str = "synopkg-update-checker/1.0"

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "HttpConfig":
        data = data or {}
        return cls(
            timeout=int(data.get("timeout", cls.timeout)),
            download_timeout=int(data.get("download_timeout", cls.download_timeout)),
            retries=int(data.get("retries", cls.retries)),
            user_agent=data.get("user_agent", cls.user_agent),
        )


class HttpFetcher:
    """
    Thin wrapper around requests.Session.

    Transport failures are never raised to callers: fetch() returns None
    and download() returns False, so an unreachable catalog reads the same
    as a catalog without updates.
    """

    def __init__(self, config: Optional[HttpConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or HttpConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def _get(self, url: str, timeout: int, stream: bool = False) -> Optional[requests.Response]:
        attempts = self.config.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self.session.get(url, timeout=timeout, stream=stream)
            except (req_exc.Timeout, req_exc.ConnectionError) as e:
                logger.debug(f"GET {url} failed (attempt {attempt}/{attempts}): {e}")
            except req_exc.RequestException as e:
                logger.debug(f"GET {url} failed: {e}")
                return None
        return None

    def fetch(self, url: str) -> Optional[str]:
        """Fetch a document body, or None when it cannot be retrieved."""
        response = self._get(url, self.config.timeout)
        if response is None:
            return None
        if response.status_code != 200:
            logger.debug(f"GET {url} returned HTTP {response.status_code}")
            return None
        body = response.text
        return body if body and body.strip() else None

    def __call__(self, url: str) -> Optional[str]:
        return self.fetch(url)

    def download(self, url: str, destination: Path) -> bool:
        """Stream url into destination; a partial file is removed on failure."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        response = self._get(url, self.config.download_timeout, stream=True)
        if response is None:
            return False

        try:
            response.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=65536):
                    if chunk:
                        f.write(chunk)
            logger.info(f"Downloaded {url} to {destination}")
            return True
        except (req_exc.RequestException, OSError) as e:
            logger.warning(f"Download of {url} failed: {e}")
            if destination.exists():
                try:
                    destination.unlink()
                except OSError as cleanup_error:
                    logger.warning(f"Failed to clean up {destination}: {cleanup_error}")
            return False
        finally:
            response.close()
