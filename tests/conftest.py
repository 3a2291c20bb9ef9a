import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import requests

from dexfetch.batch import BatchConfig
from dexfetch.scraper import FetchConfig, PokemonFetcher

BASE_URL = "https://pokeapi.test/api/v2/pokemon"

# name: (id, types, height dm, weight hg)
POKEMON = {
    "bulbasaur": (1, ["grass", "poison"], 7, 69),
    "ivysaur": (2, ["grass", "poison"], 10, 130),
    "venusaur": (3, ["grass", "poison"], 20, 1000),
    "charmander": (4, ["fire"], 6, 85),
    "charmeleon": (5, ["fire"], 11, 190),
    "squirtle": (7, ["water"], 5, 90),
    "pikachu": (25, ["electric"], 4, 60),
}

FIVE = ("bulbasaur", "ivysaur", "venusaur", "charmander", "charmeleon")


def pokemon_payload(name: str) -> dict:
    dex_id, types, height, weight = POKEMON[name]
    return {
        "id": dex_id,
        "name": name,
        "height": height,
        "weight": weight,
        "base_experience": 64,
        "types": [
            {"slot": slot, "type": {"name": t, "url": f"https://pokeapi.co/api/v2/type/{t}/"}}
            for slot, t in enumerate(types, start=1)
        ],
    }


def write_payload(path: Path, name: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(pokemon_payload(name)), encoding="utf-8")
    return path


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", chunks=None) -> None:
        self.status_code = status_code
        self.body = body
        self.chunks = chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        if self.chunks is not None:
            yield from self.chunks
        else:
            yield self.body


def ok(name: str) -> FakeResponse:
    return FakeResponse(200, json.dumps(pokemon_payload(name)).encode("utf-8"))


class FakeSession:
    """
    Stands in for requests.Session.

    Known Pokemon answer 200, anything else 404.  *script* overrides that per
    name with a sequence of responses / exceptions; the last entry repeats.
    """

    def __init__(self, script: Optional[Dict[str, List]] = None) -> None:
        self.script = {name: list(steps) for name, steps in (script or {}).items()}
        self.calls: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None, stream=False):
        name = url.rstrip("/").rsplit("/", 1)[-1]
        with self._lock:
            self.calls.append(name)
            steps = self.script.get(name)
            if steps:
                outcome = steps.pop(0) if len(steps) > 1 else steps[0]
            elif name in POKEMON:
                outcome = ok(name)
            else:
                outcome = FakeResponse(404, b'"Not Found"')
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_for(self, name: str) -> int:
        return self.calls.count(name)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_fetcher():
    def _make(session: FakeSession, **overrides) -> PokemonFetcher:
        return PokemonFetcher(FetchConfig(base_url=BASE_URL, **overrides), session=session)

    return _make


@pytest.fixture
def make_config(tmp_path):
    def _make(items=FIVE, **overrides) -> BatchConfig:
        options = dict(
            items=items,
            output_dir=tmp_path / "out",
            delay=0.0,
            retry_delay=0.0,
            fetch=FetchConfig(base_url=BASE_URL),
        )
        options.update(overrides)
        return BatchConfig(**options)

    return _make
