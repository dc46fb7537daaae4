"""
Learning features for the AI Study Assistant.

Tutoring, code explanation, concept teaching and code generation, all
behind one ``execute(payload)`` interface and dispatched by FeatureRouter.
"""

from .base import BaseFeature, FeatureResult
from .explainer import CodeExplainer
from .generator import CodeGenerator
from .requests import (
    ConceptRequest,
    ExplainRequest,
    FeatureKind,
    FeatureRequest,
    GenerateRequest,
    TutorRequest,
)
from .router import ChatOutcome, FeatureRouter
from .teacher import ConceptTeacher
from .tutor import InteractiveTutor

__all__ = [
    "BaseFeature",
    "ChatOutcome",
    "CodeExplainer",
    "CodeGenerator",
    "ConceptRequest",
    "ConceptTeacher",
    "ExplainRequest",
    "FeatureKind",
    "FeatureRequest",
    "FeatureResult",
    "FeatureRouter",
    "GenerateRequest",
    "InteractiveTutor",
    "TutorRequest",
]
