"""
Research roadmap generation for Phase II students.

The roadmap model returns a structured JSON document; it is rendered to PDF,
uploaded to blob storage and recorded against the student.
"""
import json
import logging
import re
import time
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.exceptions import LLMServiceError, ToolExecutionError
from mentorship.prompts.loader import PromptLoader
from mentorship.services.catalog_service import get_research_topic
from mentorship.services.roadmap_renderer import render_roadmap_pdf
from shared.models.entities import Roadmap
from shared.repositories import RoadmapRepository, StudentRepository
from shared.services.llm_service import LLMService
from shared.services.storage_service import StorageService
from shared.utils.constants import DEFAULT_ROADMAP_WEEKS, ROADMAP_DURATIONS, ROADMAPS_PREFIX
from shared.utils.exceptions import (
    InvalidInputException,
    RoadmapNotFoundException,
    StudentNotFoundException,
    UpstreamUnavailableException,
)

logger = logging.getLogger(__name__)

_TOOL_NAME = "generate_roadmap"


def strip_code_fences(text: str) -> str:
    """Models sometimes wrap JSON in ```json fences even in JSON mode."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def roadmap_filename(topic: str, stamp: int) -> str:
    safe = re.sub(r"[^a-zA-Z0-9]", "_", topic)[:30]
    return f"roadmap_{safe}_{stamp}.pdf"


def find_milestone(roadmap: Roadmap, number: int) -> Optional[dict]:
    for milestone in (roadmap.content or {}).get("milestones") or []:
        if milestone.get("number") == number:
            return milestone
    return None


class RoadmapService:

    def __init__(self, db: DBSession, llm: Optional[LLMService] = None, storage: Optional[StorageService] = None):
        self.db = db
        self.llm = llm
        self.storage = storage
        self.roadmaps = RoadmapRepository(db)
        self.students = StudentRepository(db)

    def generate(
        self,
        student_id: str,
        topic: str,
        duration_weeks: int = DEFAULT_ROADMAP_WEEKS,
        custom_requirements: Optional[str] = None,
    ) -> Roadmap:
        """
        Generate, render, upload and record a roadmap.

        `topic` may be a research topic id from the catalog ("1.2") or free text.

        Raises:
            InvalidInputException: blank topic or unsupported duration
            StudentNotFoundException: unknown student
            UpstreamUnavailableException: the roadmap model failed
            ToolExecutionError: the model output could not be parsed, rendered or uploaded
        """
        if not topic or not topic.strip():
            raise InvalidInputException("topic")
        if duration_weeks not in ROADMAP_DURATIONS:
            raise InvalidInputException(
                "duration_weeks",
                f"duration_weeks must be one of {list(ROADMAP_DURATIONS)}",
            )

        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)

        settings = get_settings()
        topic_title = topic.strip()
        topic_details = custom_requirements or f"Research project on {topic_title}"
        catalog_topic = get_research_topic(topic_title)
        if catalog_topic:
            topic_title = catalog_topic["title"]
            topic_details = catalog_topic.get("description") or ""

        prompt = PromptLoader.format(
            "roadmap_generation",
            duration_weeks=duration_weeks,
            program_name=settings.program_name,
            student_name=student.user.name if student.user else "Student",
            mentor_name=settings.mentor_name,
            topic=topic_title,
            topic_details=topic_details,
            custom_requirements=custom_requirements or "None",
            date=datetime.utcnow().strftime("%B %d, %Y"),
        )

        logger.info(json.dumps({
            "step": "ROADMAP_GENERATION",
            "status": "starting",
            "student_id": student_id,
            "topic": topic_title,
            "duration_weeks": duration_weeks,
        }))

        llm = self.llm or LLMService.from_settings(settings, settings.roadmap_provider, settings.roadmap_model)
        try:
            response = llm.call(prompt, json_mode=True)
        except LLMServiceError as e:
            raise UpstreamUnavailableException("Roadmap model", e) from e

        try:
            content = response.get("parsed") or json.loads(strip_code_fences(response.get("output_text") or ""))
        except json.JSONDecodeError as e:
            raise ToolExecutionError(_TOOL_NAME, "parse", str(e)) from e

        try:
            pdf_bytes = render_roadmap_pdf(content)
        except Exception as e:
            raise ToolExecutionError(_TOOL_NAME, "render", str(e)) from e

        stamp = int(time.time() * 1000)
        key = f"{ROADMAPS_PREFIX}/{student_id}/{roadmap_filename(topic_title, stamp)}"
        storage = self.storage
        if storage is None:
            from shared.services.storage_service import get_storage
            storage = get_storage()
        try:
            pdf_url = storage.upload(key, pdf_bytes, content_type="application/pdf")
        except Exception as e:
            raise ToolExecutionError(_TOOL_NAME, "upload", str(e)) from e

        content = {**content, "pdf_url": pdf_url, "generated_at": datetime.utcnow().isoformat()}
        roadmap = self.roadmaps.create(student_id, topic_title, content, pdf_path=key, pdf_url=pdf_url)
        self.students.update(student_id, research_topic=topic_title, current_milestone=1)

        logger.info(json.dumps({
            "step": "ROADMAP_GENERATION",
            "status": "complete",
            "student_id": student_id,
            "roadmap_id": roadmap.id,
            "milestones": len(content.get("milestones") or []),
        }))
        return roadmap

    def latest(self, student_id: str) -> Optional[Roadmap]:
        return self.roadmaps.latest_for_student(student_id)

    def accept(self, student_id: str) -> Roadmap:
        """
        Mark the student's latest roadmap as accepted.

        Raises:
            RoadmapNotFoundException: student has no roadmap
        """
        roadmap = self.roadmaps.latest_for_student(student_id)
        if not roadmap:
            raise RoadmapNotFoundException(student_id)
        roadmap = self.roadmaps.mark_accepted(roadmap)
        logger.info(json.dumps({"step": "ROADMAP_ACCEPTED", "student_id": student_id, "roadmap_id": roadmap.id}))
        return roadmap
