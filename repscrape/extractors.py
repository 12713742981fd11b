"""Extract users and the pagination extent from listing markup."""

from typing import Iterator

from bs4 import BeautifulSoup, Tag

from repscrape.fetcher import Page
from repscrape.models import SKILL_SLOTS, User
from repscrape.parsing import ParseStats, parse_page_number, parse_reputation

USER_SECTION_SELECTOR = ".user-info"
PAGINATION_SELECTOR = ".s-pagination"
PAGINATION_ITEM_SELECTOR = ".s-pagination--item"

# div class labels inside a user section
DETAILS_CLASS = "user-details"
FLAIR_CLASS = "-flair"
TAGS_CLASS = "user-tags"


def _child_text(tag: Tag, selector: str) -> str:
    """Concatenated text of every match under tag, stripped (empty when nothing matches)."""
    return "".join(el.get_text() for el in tag.select(selector)).strip()


def _class_label(tag: Tag) -> str:
    return " ".join(tag.get("class") or [])


def extract_user(section: Tag, stats: ParseStats | None = None) -> User:
    """
    Build one User from a .user-info section. Walks every div under the section
    and dispatches on its class: details (name, location), flair (reputation),
    tags (first SKILL_SLOTS links; extra links are dropped).
    """
    name = ""
    location = ""
    reputation = 0
    skills = [""] * SKILL_SLOTS

    for child in section.find_all("div"):
        label = _class_label(child)
        if label == DETAILS_CLASS:
            name = _child_text(child, "a")
            location = _child_text(child, ".user-location")
        elif label == FLAIR_CLASS:
            reputation = parse_reputation(_child_text(child, ".reputation-score"), stats)
        elif label == TAGS_CLASS:
            for i, link in enumerate(child.find_all("a")):
                if i < SKILL_SLOTS:
                    skills[i] = link.get_text()

    return User(name=name, location=location, reputation=reputation, skills=tuple(skills))


def iter_users(page: Page | BeautifulSoup, stats: ParseStats | None = None) -> Iterator[User]:
    """Yield one User per .user-info section, in document order."""
    if isinstance(page, Page):
        sections = page.iter_matches(USER_SECTION_SELECTOR)
    else:
        sections = page.css.iselect(USER_SECTION_SELECTOR)
    for section in sections:
        yield extract_user(section, stats)


def find_max_page(soup: BeautifulSoup) -> int:
    """Highest numeric item in the pagination control; 1 when there is none."""
    max_page = 1
    for control in soup.select(PAGINATION_SELECTOR):
        for item in control.select(PAGINATION_ITEM_SELECTOR):
            num = parse_page_number(item.get_text())
            if num is not None and num > max_page:
                max_page = num
    return max_page
