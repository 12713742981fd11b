"""Dependency checks: refuse to start a crawl when the fetch/parse/progress stack is not importable."""

import sys

# (import_name, pip_package_name)
REQUIRED = [
    ("httpx", "httpx"),
    ("bs4", "beautifulsoup4"),
    ("lxml", "lxml"),
    ("tqdm", "tqdm"),
]


def _import(name: str) -> bool:
    try:
        __import__(name)
        return True
    except ImportError:
        return False


def missing_required() -> list[str]:
    """pip names of required packages that cannot be imported."""
    return [pip_name for mod_name, pip_name in REQUIRED if not _import(mod_name)]


def check_required() -> bool:
    """Exit 1 with a pip command naming the missing packages; nothing is fetched before this passes."""
    missing = missing_required()
    if not missing:
        return True
    print(
        f"repscrape cannot fetch or parse listing pages without: {', '.join(missing)}\n"
        f"  pip install {' '.join(missing)}\n"
        "  (or `pip install -e .` from a source checkout)",
        file=sys.stderr,
    )
    sys.exit(1)
