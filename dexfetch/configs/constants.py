"""
Constants
"""

# Ignore pylint warnings
# pylint: disable = line-too-long


class Constants:
    """
    Constants configurations
    """

    POKEAPI_BASE_URL = "https://pokeapi.co/api/v2"
    POKEMON_ENDPOINT = f"{POKEAPI_BASE_URL}/pokemon"
    USER_AGENT = "dexfetch/1.0 (pokeapi-batch-fetcher)"

    # Fixed batch list shared by the sequential and parallel runners
    DEFAULT_POKEMON = (
        "bulbasaur",
        "ivysaur",
        "venusaur",
        "charmander",
        "charmeleon",
    )

    # Fields every stored record must carry
    REQUIRED_FIELDS = ("name", "id", "types", "height", "weight")

    OUTPUT_DIR = "pokemon_data"
    CSV_REPORT = "pokemon_report.csv"
    SUMMARY_REPORT = "summary.txt"
    ERROR_LOG = "errors.txt"
    ACTIVITY_LOG = "activity.log"
    CSV_HEADER = ("Name", "Height (m)", "Weight (kg)")

    CONNECT_TIMEOUT = 10.0
    MAX_TIME = 20.0
    MAX_ATTEMPTS = 3
    RETRY_DELAY = 2.0
    REQUEST_DELAY = 1.0
    CONCURRENCY = 3
    MAX_CONCURRENCY = 10
    MONITOR_INTERVAL = 1.0

    # Python modules the fetchers cannot run without
    REQUIRED_MODULES = ("requests", "urllib3", "pandas")
