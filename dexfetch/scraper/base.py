"""
HTTP fetcher for dexfetch.

:class:`PokemonFetcher` issues exactly one GET per call and streams the body
into a caller-supplied temporary path.  It never retries: the session's
transport-level retries are switched off because
:class:`~dexfetch.batch.retry.RetryController` owns the retry policy, and it
needs to see every failure to classify it.

Failures are raised as :class:`~dexfetch.errors.FetchError` subclasses:

  - HTTP 404                          → NotFoundError (the only fail-fast case)
  - connect / read timeout, max time  → FetchTimeoutError (also a read timeout
                                        surfacing mid-body as ConnectionError)
  - DNS failure, connection refused   → NetworkError
  - any other HTTP status or failure  → UnclassifiedFetchError
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import ReadTimeoutError
from urllib3.util.retry import Retry

from dexfetch.configs.constants import Constants
from dexfetch.errors import (
    FetchError,
    FetchTimeoutError,
    NetworkError,
    NotFoundError,
    UnclassifiedFetchError,
)

# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------


@dataclass
class FetchConfig:
    """
    Configuration for :class:`PokemonFetcher`.

    Parameters
    ----------
    base_url : str
        Endpoint the item identifier is appended to.
    connect_timeout : float
        Seconds allowed to establish the connection.
    max_time : float
        Upper bound in seconds for the whole request, body included.
    user_agent : str
        Sent with every request so upstream can identify the client.
    chunk_size : int
        Bytes read per iteration while streaming the body to disk.
    """

    base_url: str = Constants.POKEMON_ENDPOINT
    connect_timeout: float = Constants.CONNECT_TIMEOUT
    max_time: float = Constants.MAX_TIME
    user_agent: str = Constants.USER_AGENT
    chunk_size: int = field(default=8192, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.connect_timeout <= 0 or self.max_time <= 0:
            raise ValueError("timeouts must be positive")


def _is_read_timeout(exc: requests.ConnectionError) -> bool:
    # requests wraps a read timeout hit inside iter_content as ConnectionError
    chain = (exc.__cause__, exc.__context__, *exc.args)
    return any(isinstance(link, ReadTimeoutError) for link in chain)


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class PokemonFetcher:
    """
    One-shot GET of ``<base_url>/<item>`` into a temporary file.

    Example
    -------
    ::

        fetcher = PokemonFetcher(FetchConfig())
        body = fetcher.fetch("pikachu", Path("/tmp/pikachu.json.tmp"))
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or FetchConfig()
        self._session = session or self._build_session()
        self.logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    def _build_session(self) -> requests.Session:
        """Build a requests.Session with transport retries disabled."""
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=Retry(total=0, read=False, redirect=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        session.headers["User-Agent"] = self.config.user_agent
        session.headers["Accept"] = "application/json"
        return session

    def close(self) -> None:
        self._session.close()

    def url_for(self, item: str) -> str:
        return f"{self.config.base_url}/{item}"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def fetch(self, item: str, dest: Path) -> Path:
        """
        GET *item* and write the raw body to *dest*.

        The body may still be syntactically invalid; validation is the
        caller's job.  On any failure *dest* is removed and a classified
        :class:`~dexfetch.errors.FetchError` is raised.
        """
        url = self.url_for(item)
        deadline = time.monotonic() + self.config.max_time
        self.logger.debug(f"GET {url} → {dest}")

        try:
            self._download(item, url, dest, deadline)
        except FetchError:
            dest.unlink(missing_ok=True)
            raise
        except requests.Timeout as exc:
            dest.unlink(missing_ok=True)
            raise FetchTimeoutError(item, f"Timeout fetching {item}: {exc}") from exc
        except requests.ConnectionError as exc:
            dest.unlink(missing_ok=True)
            if _is_read_timeout(exc):
                raise FetchTimeoutError(item, f"Timeout fetching {item}: {exc}") from exc
            raise NetworkError(item, f"Network error for {item}: {exc}") from exc
        except requests.HTTPError as exc:
            dest.unlink(missing_ok=True)
            code = exc.response.status_code if exc.response is not None else "?"
            raise UnclassifiedFetchError(item, f"HTTP {code} fetching {url}") from exc
        except requests.RequestException as exc:
            dest.unlink(missing_ok=True)
            raise UnclassifiedFetchError(item, f"Request failed for {url}: {exc}") from exc

        return dest

    def _download(self, item: str, url: str, dest: Path, deadline: float) -> None:
        timeout = (self.config.connect_timeout, self.config.max_time)
        with self._session.get(url, timeout=timeout, stream=True) as resp:
            if resp.status_code == 404:
                raise NotFoundError(item, f"HTTP 404: Pokémon '{item}' not found")
            resp.raise_for_status()

            with open(dest, "wb") as fh:
                for chunk in resp.iter_content(chunk_size=self.config.chunk_size):
                    if time.monotonic() > deadline:
                        raise FetchTimeoutError(
                            item,
                            f"Timeout fetching {item}: exceeded {self.config.max_time:g}s",
                        )
                    fh.write(chunk)
