"""Code explanation."""

from .base import BaseFeature, require_field
from .requests import ExplainRequest


class CodeExplainer(BaseFeature):
    """Explains what a piece of code does and how."""
    name = "explainer"
    title = "Code Explainer"
    prompt_file = "code-explainer.txt"
    temperature = 0.3
    max_tokens = 800
    payload_type = ExplainRequest

    def build_message(self, payload: ExplainRequest) -> str:
        code = require_field("code", payload.code)

        lines = []
        if payload.language:
            lines.append(f"Language: {payload.language}")
        if payload.question:
            lines.append(f"Question: {payload.question}")
        else:
            lines.append("Please explain the following code:")
        lines.append("")
        lines.append(f"```\n{code}\n```")
        return "\n".join(lines)
