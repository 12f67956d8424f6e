"""Render a roadmap document (the JSON produced by the roadmap model) to PDF."""
from fpdf import FPDF
from fpdf.enums import XPos, YPos

_FONT = "Helvetica"


def _latin1(text) -> str:
    """Core PDF fonts are latin-1 only; replace anything outside it."""
    return str(text or "").encode("latin-1", "replace").decode("latin-1")


class RoadmapPDF(FPDF):
    def __init__(self, heading: str):
        super().__init__()
        self.heading = _latin1(heading)
        self.set_auto_page_break(auto=True, margin=15)

    def header(self):
        self.set_font(_FONT, "B", 9)
        self.set_text_color(100, 100, 100)
        self.cell(0, 8, self.heading, align="R")
        self.ln(10)

    def footer(self):
        self.set_y(-15)
        self.set_font(_FONT, "I", 8)
        self.set_text_color(128, 128, 128)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="C")

    def section_title(self, title, size=14):
        self.set_font(_FONT, "B", size)
        self.set_text_color(30, 30, 30)
        self.multi_cell(0, 8, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)

    def body_text(self, text):
        self.set_font(_FONT, "", 10)
        self.set_text_color(40, 40, 40)
        self.multi_cell(0, 5.5, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)

    def bold_text(self, label, value):
        self.set_font(_FONT, "B", 10)
        self.set_text_color(40, 40, 40)
        label = _latin1(label)
        self.cell(self.get_string_width(label) + 2, 6, label)
        self.set_font(_FONT, "", 10)
        self.multi_cell(0, 6, _latin1(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def bullets(self, items):
        self.set_font(_FONT, "", 10)
        self.set_text_color(40, 40, 40)
        for item in items or []:
            self.multi_cell(0, 5.5, _latin1(f"- {item}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)


def render_roadmap_pdf(roadmap: dict) -> bytes:
    """PDF bytes for a roadmap document."""
    pdf = RoadmapPDF(roadmap.get("title") or "Research Roadmap")
    pdf.alias_nb_pages()
    pdf.add_page()

    pdf.section_title(roadmap.get("title") or "Research Roadmap", size=18)
    if roadmap.get("subtitle"):
        pdf.section_title(roadmap["subtitle"], size=13)
    for label, key in (("Researcher: ", "researcher"), ("Mentor: ", "mentor"), ("Date: ", "date")):
        if roadmap.get(key):
            pdf.bold_text(label, roadmap[key])
    pdf.ln(4)

    if roadmap.get("abstract"):
        pdf.section_title("Abstract")
        pdf.body_text(roadmap["abstract"])

    scope = roadmap.get("scope") or {}
    if scope:
        pdf.section_title("Scope")
        if scope.get("goal"):
            pdf.bold_text("Goal: ", scope["goal"])
        pdf.bullets(scope.get("questions"))

    dataset = roadmap.get("dataset") or {}
    if dataset:
        pdf.section_title("Dataset")
        if dataset.get("name"):
            pdf.bold_text("Primary: ", dataset["name"])
        if dataset.get("description"):
            pdf.body_text(dataset["description"])
        if dataset.get("optional"):
            pdf.bold_text("Optional: ", dataset["optional"])

    for milestone in roadmap.get("milestones") or []:
        pdf.section_title(
            f"Milestone {milestone.get('number', '')}: {milestone.get('title', '')} ({milestone.get('weeks', '')})",
            size=12,
        )
        if milestone.get("objectives"):
            pdf.bold_text("Objectives", "")
            pdf.bullets(milestone["objectives"])
        if milestone.get("reading_list"):
            pdf.bold_text("Reading list", "")
            pdf.bullets(milestone["reading_list"])
        if milestone.get("deliverables"):
            pdf.bold_text("Deliverables", "")
            pdf.bullets(milestone["deliverables"])

    summary = roadmap.get("deliverables_summary") or []
    if summary:
        pdf.section_title("Deliverables Summary")
        pdf.bullets(f"{row.get('week', '')}: {row.get('deliverable', '')}" for row in summary)

    if roadmap.get("appendix"):
        pdf.section_title("Appendix")
        pdf.bullets(roadmap["appendix"])

    return bytes(pdf.output())
