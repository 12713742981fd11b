"""User record scraped from one listing section."""

from dataclasses import dataclass

SKILL_SLOTS = 3


@dataclass(frozen=True)
class User:
    """One user row. Skills always has SKILL_SLOTS entries; missing ones are ""."""

    name: str = ""
    location: str = ""
    reputation: int = 0
    skills: tuple[str, str, str] = ("", "", "")

    def __post_init__(self) -> None:
        if len(self.skills) != SKILL_SLOTS:
            raise ValueError(f"skills must have {SKILL_SLOTS} slots, got {len(self.skills)}")

    def __str__(self) -> str:
        s1, s2, s3 = self.skills
        return (
            f"Name: {self.name}\nLocation: {self.location}\nReputation: {self.reputation}\n"
            f"Skill1: {s1}, Skill2: {s2}, Skill3: {s3}"
        )
