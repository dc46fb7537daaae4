"""Code generation from a written requirement."""

from .base import BaseFeature, require_field
from .requests import GenerateRequest


class CodeGenerator(BaseFeature):
    """Generates commented, runnable code for a requirement."""
    name = "generator"
    title = "Code Generator"
    prompt_file = "code-generator.txt"
    temperature = 0.2
    max_tokens = 1000
    payload_type = GenerateRequest

    def build_message(self, payload: GenerateRequest) -> str:
        requirement = require_field("requirement", payload.requirement)

        lines = []
        if payload.language:
            lines.append(f"Language: {payload.language}")
        if payload.framework:
            lines.append(f"Framework/library: {payload.framework}")
        if lines:
            lines.append("")
        lines.append(f"Requirement: {requirement}")
        return "\n".join(lines)
