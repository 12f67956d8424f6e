"""
Static curriculum resources: the Phase I video catalog and the Phase II
research topic catalog. Both are JSON files shipped with the package and
loaded once per process.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

_DESCRIPTION_PREVIEW_CHARS = 200
_MAX_SUGGESTIONS = 10


@lru_cache(maxsize=None)
def _load(name: str) -> dict:
    with open(RESOURCES_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)


# ─── Video catalog (Phase I) ──────────────────────────────────────────

def video_topics() -> list[dict]:
    return _load("video_catalog.json")["topics"]


def get_video_topic(topic_id: int) -> Optional[dict]:
    return next((t for t in video_topics() if t["id"] == topic_id), None)


def get_lesson(lesson_id: str) -> Optional[dict]:
    """Lesson by id such as "3.2", annotated with its topic id."""
    for topic in video_topics():
        for lesson in topic["lessons"]:
            if lesson["id"] == lesson_id:
                return {**lesson, "topic_id": topic["id"]}
    return None


def search_video_catalog(query: str) -> list[dict]:
    """Case-insensitive substring match over topic and lesson titles."""
    needle = query.lower()
    results = []
    for topic in video_topics():
        if needle in topic["title"].lower():
            results.append({
                "type": "video",
                "id": str(topic["id"]),
                "title": f"Topic {topic['id']}: {topic['title']}",
                "description": f"{len(topic['lessons'])} lessons",
                "score": 1.0,
            })
        for lesson in topic["lessons"]:
            if needle in lesson["title"].lower():
                results.append({
                    "type": "lesson",
                    "id": lesson["id"],
                    "title": lesson["title"],
                    "description": f"Topic {topic['id']}: {topic['title']}",
                    "score": 0.9,
                })
    return sorted(results, key=lambda r: r["score"], reverse=True)


def video_catalog_summary() -> str:
    lines = ["Video Curriculum (Phase I):"]
    for topic in video_topics():
        lines.append(f"\nTopic {topic['id']}: {topic['title']} ({len(topic['lessons'])} lessons)")
        for lesson in topic["lessons"]:
            lines.append(f"  {lesson['id']}. {lesson['title']}")
    return "\n".join(lines)


# ─── Research topics (Phase II) ───────────────────────────────────────

def research_categories() -> list[dict]:
    return _load("research_topics.json")["categories"]


def _topics_with_category():
    for category in research_categories():
        for topic in category["topics"]:
            yield {**topic, "category_id": category["id"], "category_title": category["title"]}


def get_research_topic(topic_id: str) -> Optional[dict]:
    return next((t for t in _topics_with_category() if t["id"] == topic_id), None)


def _preview(text: str) -> str:
    if len(text) <= _DESCRIPTION_PREVIEW_CHARS:
        return text
    return text[:_DESCRIPTION_PREVIEW_CHARS] + "..."


def search_research_topics(query: str, category: Optional[str] = None) -> list[dict]:
    """Match categories by title and topics by title or description."""
    needle = query.lower()
    category_filter = category.lower() if category else None
    results = []

    for cat in research_categories():
        if category_filter and category_filter not in cat["title"].lower():
            continue
        if needle in cat["title"].lower():
            results.append({
                "type": "research_category",
                "id": str(cat["id"]),
                "title": cat["title"],
                "description": f"{len(cat['topics'])} research topics",
                "score": 0.9,
            })
        for topic in cat["topics"]:
            title_match = needle in topic["title"].lower()
            if title_match or needle in topic["description"].lower():
                results.append({
                    "type": "research_topic",
                    "id": topic["id"],
                    "title": topic["title"],
                    "description": _preview(topic["description"]),
                    "category_title": cat["title"],
                    "score": 1.0 if title_match else 0.7,
                })

    return sorted(results, key=lambda r: r["score"], reverse=True)


def suggest_topics(interests: list[str]) -> list[dict]:
    """Topics ranked by how many of the interests they mention, best ten."""
    scored = []
    for topic in _topics_with_category():
        haystack = f"{topic['title']} {topic['description']} {topic['category_title']}".lower()
        score = sum(1 for interest in interests if str(interest).lower() in haystack)
        if score:
            scored.append((score, topic))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [topic for _, topic in scored[:_MAX_SUGGESTIONS]]


def research_topics_summary() -> str:
    lines = ["Research Topics (Phase II):"]
    for cat in research_categories():
        lines.append(f"\n{cat['id']}. {cat['title']}")
        for topic in cat["topics"]:
            lines.append(f"   {topic['id']} {topic['title']}")
    return "\n".join(lines)
