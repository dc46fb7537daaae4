"""
Request types for the learning features.

A FeatureRequest pairs a FeatureKind with the payload shape that kind
expects, so routing is a single lookup instead of per-mode argument juggling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ai_study_assistant.core.errors import InvalidArgumentError


class FeatureKind(Enum):
    """Available learning modes."""
    TUTOR = "tutor"
    EXPLAINER = "explainer"
    TEACHER = "teacher"
    GENERATOR = "generator"

    @classmethod
    def parse(cls, value: str) -> "FeatureKind":
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError):
            valid = [kind.value for kind in cls]
            raise InvalidArgumentError(f"mode must be one of: {valid}, got {value!r}")


@dataclass(frozen=True)
class TutorRequest:
    question: str
    context: Optional[str] = None


@dataclass(frozen=True)
class ExplainRequest:
    code: str
    language: Optional[str] = None
    question: Optional[str] = None


@dataclass(frozen=True)
class ConceptRequest:
    concept: str
    language: Optional[str] = None
    level: Optional[str] = None


@dataclass(frozen=True)
class GenerateRequest:
    requirement: str
    language: Optional[str] = None
    framework: Optional[str] = None


FeaturePayload = Union[TutorRequest, ExplainRequest, ConceptRequest, GenerateRequest]

PAYLOAD_TYPES = {
    FeatureKind.TUTOR: TutorRequest,
    FeatureKind.EXPLAINER: ExplainRequest,
    FeatureKind.TEACHER: ConceptRequest,
    FeatureKind.GENERATOR: GenerateRequest,
}


@dataclass(frozen=True)
class FeatureRequest:
    """A payload tagged with the feature that should handle it."""
    kind: FeatureKind
    payload: FeaturePayload

    def __post_init__(self):
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise InvalidArgumentError(
                f"{self.kind.value} expects {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )

    @classmethod
    def from_text(cls, kind: FeatureKind, text: str) -> "FeatureRequest":
        """Wrap free text in the payload's primary field."""
        payload = {
            FeatureKind.TUTOR: lambda: TutorRequest(question=text),
            FeatureKind.EXPLAINER: lambda: ExplainRequest(code=text),
            FeatureKind.TEACHER: lambda: ConceptRequest(concept=text),
            FeatureKind.GENERATOR: lambda: GenerateRequest(requirement=text),
        }[kind]()
        return cls(kind=kind, payload=payload)
