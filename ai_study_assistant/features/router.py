"""
Routing of feature requests to learning features.

The router owns one feature instance per kind and a shared budget tracker.
Usage is billed only after the chat API returns successfully.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ai_study_assistant.core.budget import BudgetStatus, BudgetTracker
from ai_study_assistant.core.conversation import DEFAULT_MAX_HISTORY_TOKENS
from ai_study_assistant.core.pricing import CostBreakdown
from ai_study_assistant.sdk.chat_client import ChatClient

from .base import BaseFeature
from .explainer import CodeExplainer
from .generator import CodeGenerator
from .requests import FeatureKind, FeatureRequest
from .teacher import ConceptTeacher
from .tutor import InteractiveTutor

logger = logging.getLogger(__name__)

FEATURE_CLASSES = {
    FeatureKind.TUTOR: InteractiveTutor,
    FeatureKind.EXPLAINER: CodeExplainer,
    FeatureKind.TEACHER: ConceptTeacher,
    FeatureKind.GENERATOR: CodeGenerator,
}


@dataclass(frozen=True)
class ChatOutcome:
    """Result of one routed round trip."""
    kind: FeatureKind
    response: str
    cost: CostBreakdown
    budget: BudgetStatus


class FeatureRouter:
    """Dispatches tagged requests and bills their usage."""

    def __init__(
        self,
        client: ChatClient,
        tracker: BudgetTracker,
        max_history_tokens: int = DEFAULT_MAX_HISTORY_TOKENS,
    ):
        self.client = client
        self.tracker = tracker
        self.max_history_tokens = max_history_tokens
        self._features: Dict[FeatureKind, BaseFeature] = {}

    def get_feature(self, kind: FeatureKind) -> BaseFeature:
        """Return the feature for ``kind``, creating it on first use."""
        feature = self._features.get(kind)
        if feature is None:
            feature = FEATURE_CLASSES[kind](
                self.client, max_history_tokens=self.max_history_tokens
            )
            self._features[kind] = feature
        return feature

    def handle(self, request: FeatureRequest) -> ChatOutcome:
        """Execute a request, bill its usage and report budget status.

        Raises:
            InvalidArgumentError: If the payload is invalid
            ChatClientError: If the chat API call fails; nothing is billed
        """
        feature = self.get_feature(request.kind)
        result = feature.execute(request.payload)

        cost = self.tracker.add_usage(
            result.usage.input_tokens, result.usage.output_tokens, result.model
        )
        status = self.tracker.check_budget()
        if status.should_warn:
            logger.warning(
                "Budget %.1f%% used ($%.6f remaining)",
                status.usage_percentage, status.remaining,
            )
        return ChatOutcome(kind=request.kind, response=result.response, cost=cost, budget=status)

    def clear(self, kind: Optional[FeatureKind] = None) -> None:
        """Clear one feature's conversation, or all of them."""
        kinds = [kind] if kind is not None else list(self._features)
        for k in kinds:
            if k in self._features:
                self._features[k].clear_conversation()
