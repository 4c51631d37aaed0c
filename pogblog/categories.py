# pogblog/categories.py
from __future__ import annotations

from typing import Iterable, List

CATEGORIES = (
    "Technology",
    "Science",
    "Travel",
    "Food & Cooking",
    "Health & Fitness",
    "Fashion & Style",
    "Anime News",
    "Manga",
    "Anime Reviews",
    "Cosplay",
    "Anime Recommendations",
    "Anime Memes",
    "Fan Art",
    "Anime Music",
    "Anime Conventions",
    "Coding Challenges",
    "Web Development",
    "Mobile App Development",
    "Software Engineering",
    "Programming Languages",
    "Algorithms & Data Structures",
    "Developer Tools & Libraries",
    "Tech News",
    "Arts & Crafts",
    "Business & Finance",
    "Sports",
    "Music",
    "Movies & TV Shows",
    "Books & Literature",
    "Gaming",
    "Home & Garden",
    "Photography",
    "Pets & Animals",
    "DIY & How-To Guides",
    "Education & Learning",
    "Parenting",
    "Environment & Sustainability",
)

_KNOWN = set(CATEGORIES)

MIN_PREFERRED_CATEGORIES = 3
MAX_BLOG_CATEGORIES = 5


def normalize_categories(values: Iterable[str]) -> List[str]:
    """
    Strip, de-duplicate (keeping first-seen order) and check every value
    against the fixed enumeration. Raises ValueError on an unknown category.
    """
    seen: List[str] = []
    for raw in values:
        name = (raw or "").strip()
        if not name:
            continue
        if name not in _KNOWN:
            raise ValueError(f"Unknown category: {name}")
        if name not in seen:
            seen.append(name)
    return seen
