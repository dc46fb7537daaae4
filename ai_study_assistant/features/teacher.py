"""Concept teaching."""

from .base import BaseFeature, require_field
from .requests import ConceptRequest


class ConceptTeacher(BaseFeature):
    """Teaches a programming concept at a requested depth."""
    name = "teacher"
    title = "Concept Teacher"
    prompt_file = "concept-teacher.txt"
    temperature = 0.5
    max_tokens = 600
    payload_type = ConceptRequest

    def build_message(self, payload: ConceptRequest) -> str:
        concept = require_field("concept", payload.concept)

        lines = []
        if payload.language:
            lines.append(f"Tech stack: {payload.language}")
        if payload.level:
            lines.append(f"Depth: {payload.level}")
        if lines:
            lines.append("")
        lines.append(f"Please explain the following concept: {concept}")
        return "\n".join(lines)
