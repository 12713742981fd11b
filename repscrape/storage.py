"""Write scraped users to a comma-delimited text file."""

from pathlib import Path
from typing import Iterable

from repscrape.errors import ExportError
from repscrape.models import User

CSV_HEADER = "Id,Name,Location,Reputation,Skill1,Skill2,Skill3"


def _quote(value: str, escape_quotes: bool) -> str:
    # Unescaped by default so output stays byte-compatible with existing data.csv files
    if escape_quotes:
        value = value.replace('"', '""')
    return f'"{value}"'


def format_row(index: int, user: User, *, escape_quotes: bool = False) -> str:
    """One output line (without newline). index is the 1-based row id; reputation is unquoted."""
    fields = [str(index)]
    fields.append(_quote(user.name, escape_quotes))
    fields.append(_quote(user.location, escape_quotes))
    fields.append(str(user.reputation))
    fields.extend(_quote(skill, escape_quotes) for skill in user.skills)
    return ",".join(fields)


def write_csv(users: Iterable[User], path: Path, *, escape_quotes: bool = False) -> None:
    """
    Write header plus one line per user, in input order, replacing any existing file.
    Raises ExportError on open/write/close failure; the file handle is always closed.
    """
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(CSV_HEADER + "\n")
            for i, user in enumerate(users, start=1):
                f.write(format_row(i, user, escape_quotes=escape_quotes) + "\n")
    except OSError as e:
        raise ExportError(f"Error writing {path}: {e}") from e
