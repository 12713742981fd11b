"""repscrape: scrape a paginated user listing into a CSV file."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("repscrape")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"
