import time

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from conftest import BASE_URL, FakeResponse, FakeSession, ok
from dexfetch.errors import (
    FetchTimeoutError,
    NetworkError,
    NotFoundError,
    UnclassifiedFetchError,
)
from dexfetch.models import FailureReason
from dexfetch.scraper import FetchConfig, PokemonFetcher


def test_fetch_writes_raw_body_to_dest(tmp_path, make_fetcher):
    session = FakeSession()
    fetcher = make_fetcher(session)
    dest = tmp_path / "pikachu.tmp"

    assert fetcher.fetch("pikachu", dest) == dest
    assert b'"name": "pikachu"' in dest.read_bytes()
    assert session.calls == ["pikachu"]


def test_url_for_joins_base_and_item():
    fetcher = PokemonFetcher(FetchConfig(base_url=BASE_URL + "/"), session=FakeSession())
    assert fetcher.url_for("ditto") == f"{BASE_URL}/ditto"


def test_built_session_identifies_client():
    fetcher = PokemonFetcher(FetchConfig(user_agent="dexfetch-test/0.1"))
    try:
        assert fetcher._session.headers["User-Agent"] == "dexfetch-test/0.1"
    finally:
        fetcher.close()


def test_404_is_not_found_and_leaves_no_file(tmp_path, make_fetcher):
    fetcher = make_fetcher(FakeSession())
    dest = tmp_path / "missingno.tmp"

    with pytest.raises(NotFoundError) as info:
        fetcher.fetch("missingno", dest)

    assert info.value.reason is FailureReason.NOT_FOUND
    assert not info.value.retryable
    assert not dest.exists()


@pytest.mark.parametrize(
    "outcome,error_type,reason",
    [
        (requests.ConnectTimeout("connect timed out"), FetchTimeoutError, FailureReason.TIMEOUT),
        (requests.ReadTimeout("read timed out"), FetchTimeoutError, FailureReason.TIMEOUT),
        (requests.ConnectionError("Name or service not known"), NetworkError, FailureReason.NETWORK),
        (requests.TooManyRedirects("loop"), UnclassifiedFetchError, FailureReason.UNCLASSIFIED),
        (FakeResponse(500, b"oops"), UnclassifiedFetchError, FailureReason.UNCLASSIFIED),
        (FakeResponse(429, b"slow down"), UnclassifiedFetchError, FailureReason.UNCLASSIFIED),
    ],
)
def test_failures_are_classified(tmp_path, make_fetcher, outcome, error_type, reason):
    fetcher = make_fetcher(FakeSession({"pikachu": [outcome]}))
    dest = tmp_path / "pikachu.tmp"

    with pytest.raises(error_type) as info:
        fetcher.fetch("pikachu", dest)

    assert info.value.reason is reason
    assert info.value.retryable
    assert not dest.exists()


def test_max_time_bounds_the_whole_body(tmp_path, make_fetcher):
    def slow_chunks():
        yield b'{"name": '
        time.sleep(0.1)
        yield b'"pikachu"}'

    session = FakeSession({"pikachu": [FakeResponse(200, chunks=slow_chunks())]})
    fetcher = make_fetcher(session, max_time=0.05)
    dest = tmp_path / "pikachu.tmp"

    with pytest.raises(FetchTimeoutError):
        fetcher.fetch("pikachu", dest)
    assert not dest.exists()


class StalledBody(FakeResponse):
    """Headers arrive, then the socket read times out while the body streams."""

    def iter_content(self, chunk_size=1):
        yield b'{"name": '
        raise requests.ConnectionError(
            ReadTimeoutError(None, f"{BASE_URL}/pikachu", "Read timed out.")
        )


def test_read_timeout_while_streaming_is_a_timeout(tmp_path, make_fetcher):
    fetcher = make_fetcher(FakeSession({"pikachu": [StalledBody(200)]}))
    dest = tmp_path / "pikachu.tmp"

    with pytest.raises(FetchTimeoutError) as info:
        fetcher.fetch("pikachu", dest)

    assert info.value.reason is FailureReason.TIMEOUT
    assert info.value.retryable
    assert not dest.exists()


def test_fetch_does_not_retry_on_its_own(tmp_path, make_fetcher):
    session = FakeSession({"pikachu": [requests.ConnectionError("down"), ok("pikachu")]})
    fetcher = make_fetcher(session)

    with pytest.raises(NetworkError):
        fetcher.fetch("pikachu", tmp_path / "pikachu.tmp")
    assert session.calls == ["pikachu"]


def test_invalid_timeouts_rejected():
    with pytest.raises(ValueError):
        FetchConfig(connect_timeout=0)
