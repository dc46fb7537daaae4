"""Interactive question-and-answer tutoring."""

from .base import BaseFeature, require_field
from .requests import TutorRequest


class InteractiveTutor(BaseFeature):
    """Answers programming questions, optionally with extra context."""
    name = "tutor"
    title = "Interactive Tutor"
    prompt_file = "tutor.txt"
    temperature = 0.7
    payload_type = TutorRequest

    def build_message(self, payload: TutorRequest) -> str:
        question = require_field("question", payload.question)
        if payload.context:
            return f"Context: {payload.context}\n\nQuestion: {question}"
        return question
