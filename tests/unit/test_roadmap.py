"""Unit tests for roadmap generation, rendering and the roadmap tools."""
import json
from unittest.mock import MagicMock, patch

import pytest

from mentorship.exceptions import LLMServiceError, ToolExecutionError
from mentorship.services.roadmap_renderer import render_roadmap_pdf
from mentorship.services.roadmap_service import (
    RoadmapService,
    find_milestone,
    roadmap_filename,
    strip_code_fences,
)
from mentorship.tools.roadmap_tools import (
    NO_ROADMAP,
    generate_roadmap,
    get_milestone_details,
    get_roadmap_status,
)
from mentorship.tools.types import ToolContext
from shared.models.entities import Roadmap
from shared.utils.exceptions import (
    InvalidInputException,
    RoadmapNotFoundException,
    StudentNotFoundException,
    UpstreamUnavailableException,
)

ROADMAP_DOC = {
    "title": "10-Week Research Roadmap",
    "subtitle": "LLM-as-a-judge reliability",
    "researcher": "Asha Rao",
    "mentor": "Dr. Raj",
    "date": "March 01, 2026",
    "abstract": "We study when model judges agree with people.",
    "scope": {"goal": "Quantify judge bias", "questions": ["Does position matter?", "Does length matter?"]},
    "dataset": {"name": "MT-Bench", "description": "Pairwise human preferences", "optional": "Chatbot Arena"},
    "milestones": [
        {
            "number": n,
            "title": f"Milestone {n} title",
            "weeks": f"Weeks {2 * n - 1}-{2 * n}",
            "objectives": [f"objective {n}.1", f"objective {n}.2", f"objective {n}.3"],
            "reading_list": ["Zheng et al. 2023"],
            "deliverables": [f"deliverable {n}"],
        }
        for n in range(1, 6)
    ],
    "deliverables_summary": [{"week": "Week 10", "deliverable": "Paper draft"}],
    "appendix": ["Compute: one consumer GPU"],
}


def _llm(parsed=None, output_text=None):
    llm = MagicMock()
    llm.call.return_value = {
        "output_text": output_text if output_text is not None else json.dumps(ROADMAP_DOC),
        "reasoning": None,
        "parsed": parsed,
    }
    return llm


# ---------------------------------------------------------------------------
# Helpers and renderer
# ---------------------------------------------------------------------------

class TestHelpers:

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_roadmap_filename(self):
        assert roadmap_filename("LLM-as-a-judge reliability", 123) == "roadmap_LLM_as_a_judge_reliability_123.pdf"

    def test_find_milestone(self):
        roadmap = Roadmap(content=ROADMAP_DOC)
        assert find_milestone(roadmap, 3)["title"] == "Milestone 3 title"
        assert find_milestone(roadmap, 9) is None


class TestRenderer:

    def test_renders_pdf_bytes(self):
        pdf = render_roadmap_pdf(ROADMAP_DOC)
        assert isinstance(pdf, bytes)
        assert pdf.startswith(b"%PDF")

    def test_minimal_document(self):
        assert render_roadmap_pdf({}).startswith(b"%PDF")

    def test_non_latin1_text_is_replaced(self):
        doc = {"title": "Roadmap — 中文", "abstract": "Smart “quotes”"}
        assert render_roadmap_pdf(doc).startswith(b"%PDF")


# ---------------------------------------------------------------------------
# RoadmapService
# ---------------------------------------------------------------------------

class TestRoadmapService:

    def test_generate_records_roadmap(self, db_session, student, storage):
        llm = _llm(parsed=ROADMAP_DOC)
        roadmap = RoadmapService(db_session, llm=llm, storage=storage).generate(
            student.id, "LLM-as-a-judge reliability", duration_weeks=10
        )

        assert roadmap.topic == "LLM-as-a-judge reliability"
        assert roadmap.accepted is False
        assert roadmap.pdf_path.startswith(f"roadmaps/{student.id}/roadmap_LLM_as_a_judge")
        assert storage.objects[roadmap.pdf_path].startswith(b"%PDF")
        assert storage.content_types[roadmap.pdf_path] == "application/pdf"
        assert roadmap.content["pdf_url"] == roadmap.pdf_url
        assert len(roadmap.content["milestones"]) == 5

        db_session.refresh(student)
        assert student.research_topic == "LLM-as-a-judge reliability"
        assert student.current_milestone == 1

        prompt = llm.call.call_args[0][0]
        assert "10-week research roadmap" in prompt
        assert llm.call.call_args[1]["json_mode"] is True

    def test_catalog_topic_id_is_resolved(self, db_session, student, storage):
        llm = _llm(parsed=ROADMAP_DOC)
        roadmap = RoadmapService(db_session, llm=llm, storage=storage).generate(student.id, "4.2")
        assert roadmap.topic == "LLM-as-a-judge reliability"

    def test_fenced_output_is_parsed(self, db_session, student, storage):
        llm = _llm(parsed=None, output_text="```json\n" + json.dumps(ROADMAP_DOC) + "\n```")
        roadmap = RoadmapService(db_session, llm=llm, storage=storage).generate(student.id, "Topic")
        assert roadmap.content["title"] == ROADMAP_DOC["title"]

    def test_unparseable_output(self, db_session, student, storage):
        llm = _llm(parsed=None, output_text="not json at all")
        with pytest.raises(ToolExecutionError) as exc_info:
            RoadmapService(db_session, llm=llm, storage=storage).generate(student.id, "Topic")
        assert exc_info.value.stage == "parse"
        assert storage.objects == {}
        assert db_session.query(Roadmap).count() == 0

    def test_upload_failure(self, db_session, student, failing_storage):
        with pytest.raises(ToolExecutionError) as exc_info:
            RoadmapService(db_session, llm=_llm(parsed=ROADMAP_DOC), storage=failing_storage).generate(
                student.id, "Topic"
            )
        assert exc_info.value.stage == "upload"
        assert db_session.query(Roadmap).count() == 0

    def test_model_failure(self, db_session, student, storage):
        llm = MagicMock()
        llm.call.side_effect = LLMServiceError("rate limited")
        with pytest.raises(UpstreamUnavailableException):
            RoadmapService(db_session, llm=llm, storage=storage).generate(student.id, "Topic")

    @pytest.mark.parametrize("topic,weeks", [("", 10), ("  ", 10), ("Topic", 6)])
    def test_invalid_input_before_any_call(self, db_session, student, storage, topic, weeks):
        llm = _llm()
        with pytest.raises(InvalidInputException):
            RoadmapService(db_session, llm=llm, storage=storage).generate(student.id, topic, duration_weeks=weeks)
        llm.call.assert_not_called()

    def test_unknown_student(self, db_session, storage):
        with pytest.raises(StudentNotFoundException):
            RoadmapService(db_session, llm=_llm(), storage=storage).generate("missing", "Topic")

    def test_accept(self, db_session, student, storage):
        service = RoadmapService(db_session, llm=_llm(parsed=ROADMAP_DOC), storage=storage)
        service.generate(student.id, "Topic")
        assert service.accept(student.id).accepted is True

    def test_accept_without_roadmap(self, db_session, student):
        with pytest.raises(RoadmapNotFoundException):
            RoadmapService(db_session).accept(student.id)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class TestRoadmapTools:

    @pytest.fixture
    def context(self, db_session, student, storage):
        return ToolContext(student_id=student.id, phase="phase2", db=db_session, storage=storage)

    def test_generate(self, context):
        with patch("mentorship.services.roadmap_service.LLMService.from_settings",
                   return_value=_llm(parsed=ROADMAP_DOC)):
            result = generate_roadmap({"topic": "Judge bias", "duration_weeks": 8}, context)

        assert result.success is True
        assert result.data["milestone_count"] == 5
        assert result.data["duration"] == "8 weeks"
        assert result.data["download_link"] == f"[Download Your Research Roadmap (PDF)]({result.data['pdf_url']})"
        assert result.data["message"].startswith('Research roadmap generated successfully for "Judge bias"')

    @pytest.mark.parametrize("tool_input,error", [
        ({}, "Missing required parameter: topic"),
        ({"topic": 12}, "Missing required parameter: topic"),
        ({"topic": "x", "duration_weeks": 9}, "Invalid parameter: duration_weeks must be one of [8, 10, 12]"),
    ])
    def test_generate_validates_before_side_effects(self, context, storage, tool_input, error):
        with patch("mentorship.services.roadmap_service.LLMService.from_settings") as from_settings:
            result = generate_roadmap(tool_input, context)
        assert result.error == error
        from_settings.assert_not_called()
        assert storage.objects == {}

    def test_generate_parse_failure_is_error_result(self, context):
        with patch("mentorship.services.roadmap_service.LLMService.from_settings",
                   return_value=_llm(parsed=None, output_text="{broken")):
            result = generate_roadmap({"topic": "Judge bias"}, context)
        assert result.success is False
        assert result.error.startswith("parse failed:")

    def test_status_without_roadmap(self, context):
        result = get_roadmap_status({}, context)
        assert result.success is True
        assert result.data["has_roadmap"] is False

    def test_milestone_without_roadmap(self, context):
        assert get_milestone_details({"milestone_number": 1}, context).error == NO_ROADMAP

    @pytest.mark.parametrize("value", [None, "2", True])
    def test_milestone_number_must_be_int(self, context, value):
        result = get_milestone_details({"milestone_number": value}, context)
        assert result.error == "Missing required parameter: milestone_number"

    def test_milestone_and_status_with_roadmap(self, db_session, student, storage, context):
        RoadmapService(db_session, llm=_llm(parsed=ROADMAP_DOC), storage=storage).generate(student.id, "Topic")

        details = get_milestone_details({"milestone_number": 1}, context)
        assert details.data["milestone"]["title"] == "Milestone 1 title"
        assert details.data["is_current_milestone"] is True
        assert get_milestone_details({"milestone_number": 2}, context).data["is_current_milestone"] is False
        assert get_milestone_details({"milestone_number": 7}, context).error == "Milestone 7 not found in the roadmap."

        status = get_roadmap_status({}, context)
        assert status.data["has_roadmap"] is True
        assert status.data["milestone_count"] == 5
        assert status.data["accepted"] is False
