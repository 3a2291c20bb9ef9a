"""dexfetch: batch PokeAPI fetcher with retries, bounded parallelism and CSV reports."""

__version__ = "1.0.0"
