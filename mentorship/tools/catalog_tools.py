"""Catalog tools: Phase I video curriculum and Phase II research topics."""
from mentorship.services import catalog_service
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult, require


def search_video_catalog(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "query")
    if invalid:
        return invalid
    query = str(tool_input["query"])
    results = catalog_service.search_video_catalog(query)
    return ToolResult.ok({"query": query, "results": results, "count": len(results)})


def get_lesson_details(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "lesson_id")
    if invalid:
        return invalid
    lesson_id = str(tool_input["lesson_id"])

    lesson = catalog_service.get_lesson(lesson_id)
    if not lesson:
        return ToolResult.fail(f"Lesson {lesson_id} not found")

    topic = catalog_service.get_video_topic(lesson["topic_id"])
    return ToolResult.ok({
        "lesson": lesson,
        "topic": {
            "id": topic["id"],
            "title": topic["title"],
            "lesson_count": len(topic["lessons"]),
        } if topic else None,
    })


def search_research_topics(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "query")
    if invalid:
        return invalid
    query = str(tool_input["query"])
    category = tool_input.get("category") or None
    results = catalog_service.search_research_topics(query, category)
    return ToolResult.ok({"query": query, "category": category, "results": results, "count": len(results)})


def get_topic_details(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "topic_id")
    if invalid:
        return invalid
    topic_id = str(tool_input["topic_id"])

    topic = catalog_service.get_research_topic(topic_id)
    if not topic:
        return ToolResult.fail(f"Research topic {topic_id} not found")
    return ToolResult.ok({"topic": topic})


def suggest_topics(tool_input: dict, context: ToolContext) -> ToolResult:
    interests = tool_input.get("interests")
    if not interests or not isinstance(interests, list):
        return ToolResult.fail("Missing required parameter: interests (must be an array)")

    suggestions = catalog_service.suggest_topics(interests)
    return ToolResult.ok({"interests": interests, "suggestions": suggestions, "count": len(suggestions)})


VIDEO_CATALOG_TOOLS = [
    ToolDefinition(
        name="search_video_catalog",
        description=(
            "Search the video curriculum for lessons matching a query. Use this when a "
            "student asks about a specific topic to find relevant lessons."
        ),
        handler=search_video_catalog,
        properties={"query": {"type": "string", "description": "Search query (topic, keyword, or concept)"}},
        required=["query"],
    ),
    ToolDefinition(
        name="get_lesson_details",
        description="Get full details of a specific lesson by ID.",
        handler=get_lesson_details,
        properties={"lesson_id": {"type": "string", "description": "Lesson ID (e.g. '3.2' for Topic 3, Lesson 2)"}},
        required=["lesson_id"],
    ),
]

RESEARCH_TOPIC_TOOLS = [
    ToolDefinition(
        name="search_research_topics",
        description=(
            "Search available research topics by keyword or category. Use when helping a "
            "student choose their research project."
        ),
        handler=search_research_topics,
        properties={
            "query": {"type": "string", "description": "Search query or interest area"},
            "category": {"type": "string", "description": "Optional category filter (e.g. 'Healthcare', 'Finance')"},
        },
        required=["query"],
    ),
    ToolDefinition(
        name="get_topic_details",
        description="Get full details of a specific research topic.",
        handler=get_topic_details,
        properties={"topic_id": {"type": "string", "description": "Topic ID (e.g. '1.2' for Category 1, Topic 2)"}},
        required=["topic_id"],
    ),
    ToolDefinition(
        name="suggest_topics",
        description="Get topic suggestions based on student interests and background.",
        handler=suggest_topics,
        properties={
            "interests": {
                "type": "array",
                "items": {"type": "string"},
                "description": "List of student interests (e.g. ['healthcare', 'agents'])",
            },
        },
        required=["interests"],
    ),
]
