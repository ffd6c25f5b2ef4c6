"""Skill list editing rules."""

from __future__ import annotations

from collections.abc import Iterable

from nexus_profile.errors import ValidationError

MAX_SKILLS = 50


def clean_skills(skills: Iterable[str]) -> list[str]:
    """Trim entries, drop blanks and keep at most ``MAX_SKILLS``."""
    cleaned = [s.strip() for s in skills]
    return [s for s in cleaned if s][:MAX_SKILLS]


def add_skill(skills: list[str], skill: str) -> list[str]:
    """Return ``skills`` with ``skill`` appended.

    Raises ValidationError for a blank skill, a case-insensitive duplicate,
    or a list that is already full.
    """
    skill = skill.strip()
    if not skill:
        raise ValidationError("Skill cannot be empty")
    if skill.lower() in {s.lower() for s in skills}:
        raise ValidationError("Skill already exists")
    if len(skills) >= MAX_SKILLS:
        raise ValidationError(f"Maximum {MAX_SKILLS} skills allowed")
    return [*skills, skill]


def remove_skill(skills: list[str], skill: str) -> list[str]:
    """Drop exact matches of ``skill``; unknown skills leave the list unchanged."""
    return [s for s in skills if s != skill]
