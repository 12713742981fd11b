"""Error taxonomy for the scrape pipeline. Parse failures are counted, never raised."""


class ScrapeError(Exception):
    """Base class for fatal pipeline errors."""


class ConfigurationError(ScrapeError):
    """Invalid limits or URL templates; raised before any work starts."""


class ProbeError(ScrapeError):
    """The page-count discovery fetch failed."""


class IssueError(ScrapeError):
    """A page fetch could not be issued (bad URL, closed collector)."""


class ExportError(ScrapeError):
    """Opening, writing, or closing the output file failed."""
