"""Fetching and validation of PokeAPI responses."""

from .base import FetchConfig, PokemonFetcher
from .pokeapi import validate_output, validate_response

__all__ = [
    "FetchConfig",
    "PokemonFetcher",
    "validate_output",
    "validate_response",
]
