"""Named defaults for the users crawl and the config object the CLI builds from them."""

from dataclasses import dataclass
from pathlib import Path

from repscrape.errors import ConfigurationError

USERS_URL = "https://stackoverflow.com/users"
PAGE_URL_TEMPLATE = "https://stackoverflow.com/users?page={page}&tab=Reputation&filter=month"

# Max simultaneous in-flight page fetches; visits beyond this block until a slot frees.
DEFAULT_PARALLELISM = 50
# Upper bound on users collected; enforced indirectly through the page range.
DEFAULT_RECORD_CAP = 1_000_000
DEFAULT_USERS_PER_PAGE = 36

DEFAULT_OUTPUT = "data.csv"
DEFAULT_TIMEOUT = 30.0
DEFAULT_DELAY = 0.0
DEFAULT_REPORT_EVERY = 1  # plain-text progress line every N users when the bar is off


@dataclass
class ScrapeConfig:
    """Everything one pipeline run needs. Defaults reproduce the reference crawl."""

    users_url: str = USERS_URL
    page_url_template: str = PAGE_URL_TEMPLATE
    parallelism: int = DEFAULT_PARALLELISM
    record_cap: int = DEFAULT_RECORD_CAP
    users_per_page: int = DEFAULT_USERS_PER_PAGE
    output: Path = Path(DEFAULT_OUTPUT)
    timeout: float = DEFAULT_TIMEOUT
    delay: float = DEFAULT_DELAY
    progress: bool = True
    report_every: int = DEFAULT_REPORT_EVERY
    escape_quotes: bool = False
    max_pages: int | None = None  # skip probing and use this as the discovered count

    def validate(self) -> "ScrapeConfig":
        for name in ("parallelism", "record_cap", "users_per_page", "report_every"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.max_pages is not None and self.max_pages < 1:
            raise ConfigurationError(f"max_pages must be at least 1, got {self.max_pages}")
        if self.timeout < 0 or self.delay < 0:
            raise ConfigurationError("timeout and delay must not be negative")
        if "{page}" not in self.page_url_template:
            raise ConfigurationError(f"page URL template has no {{page}} field: {self.page_url_template}")
        return self
