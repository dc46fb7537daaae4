"""
Configuration management and loading.

Handles application settings from a YAML file and environment variables.
Configuration is read and validated once at startup and passed down
explicitly; core modules never read the environment.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from ai_study_assistant.core.conversation import DEFAULT_MAX_HISTORY_TOKENS
from ai_study_assistant.core.errors import InvalidConfigurationError
from ai_study_assistant.core.pricing import (
    DEFAULT_MODEL_NAME,
    PRICING_TABLE,
    ModelPricing,
    PricingTable,
)

DEFAULT_DAILY_BUDGET = 0.50
DEFAULT_MAX_TOKENS = 1024
DEFAULT_HISTORY_FILE = "data/history.json"

ENV_DAILY_BUDGET = "DAILY_BUDGET"
ENV_DEFAULT_MODEL = "DEFAULT_MODEL"
ENV_DEFAULT_MAX_TOKENS = "DEFAULT_MAX_TOKENS"
ENV_BASE_URL = "STUDY_ASSISTANT_BASE_URL"


@dataclass(frozen=True)
class BudgetConfig:
    """Daily spend limit."""
    daily: float = DEFAULT_DAILY_BUDGET

    def __post_init__(self):
        """Validate budget is finite and positive."""
        if not math.isfinite(self.daily) or self.daily <= 0:
            raise InvalidConfigurationError("daily budget must be > 0")


@dataclass(frozen=True)
class ModelConfig:
    """Chat model selection."""
    default: str = DEFAULT_MODEL_NAME
    max_tokens: int = DEFAULT_MAX_TOKENS
    base_url: Optional[str] = None

    def __post_init__(self):
        if not self.default or not self.default.strip():
            raise InvalidConfigurationError("model.default cannot be empty")
        if self.max_tokens <= 0:
            raise InvalidConfigurationError("model.max_tokens must be > 0")


@dataclass(frozen=True)
class HistoryConfig:
    """Conversation trimming and session history storage."""
    max_tokens: int = DEFAULT_MAX_HISTORY_TOKENS
    file: str = DEFAULT_HISTORY_FILE

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise InvalidConfigurationError("history.max_tokens must be > 0")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    pricing: PricingTable = PRICING_TABLE


def load_app_config(path: Optional[str] = None,
                    environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load and validate application configuration.

    Strict validation ensures no silent misconfigurations that could
    lead to unexpected cost overruns.

    Args:
        path: Optional path to a YAML configuration file
        environ: Environment mapping for overrides (defaults to os.environ)

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        InvalidConfigurationError: If configuration is invalid
    """
    raw_config: Dict = {}
    if path is not None:
        raw_config = _read_yaml(path)

    allowed_top_keys = {'budget', 'model', 'history', 'pricing'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise InvalidConfigurationError(f"Unknown configuration keys: {unknown_keys}")

    budget_data = _section(raw_config, 'budget', {'daily'})
    model_data = _section(raw_config, 'model', {'default', 'max_tokens', 'base_url'})
    history_data = _section(raw_config, 'history', {'max_tokens', 'file'})

    env = os.environ if environ is None else environ
    if env.get(ENV_DAILY_BUDGET):
        budget_data['daily'] = env[ENV_DAILY_BUDGET]
    if env.get(ENV_DEFAULT_MODEL):
        model_data['default'] = env[ENV_DEFAULT_MODEL]
    if env.get(ENV_DEFAULT_MAX_TOKENS):
        model_data['max_tokens'] = env[ENV_DEFAULT_MAX_TOKENS]
    if env.get(ENV_BASE_URL):
        model_data['base_url'] = env[ENV_BASE_URL]

    budget = BudgetConfig(
        daily=_number(budget_data.get('daily', DEFAULT_DAILY_BUDGET), 'budget.daily'),
    )
    model = ModelConfig(
        default=str(model_data.get('default', DEFAULT_MODEL_NAME)),
        max_tokens=_integer(model_data.get('max_tokens', DEFAULT_MAX_TOKENS), 'model.max_tokens'),
        base_url=model_data.get('base_url') or None,
    )
    history = HistoryConfig(
        max_tokens=_integer(history_data.get('max_tokens', DEFAULT_MAX_HISTORY_TOKENS),
                            'history.max_tokens'),
        file=str(history_data.get('file', DEFAULT_HISTORY_FILE)),
    )

    pricing_data = raw_config.get('pricing') or {}
    if not isinstance(pricing_data, dict):
        raise InvalidConfigurationError("'pricing' must be a dictionary")
    overrides = {
        str(name): _parse_model_pricing(data, f"pricing.{name}")
        for name, data in pricing_data.items()
    }
    pricing = PRICING_TABLE.with_overrides(overrides)
    if pricing.is_known(model.default):
        pricing = PricingTable(pricing.prices, model.default)

    return AppConfig(budget=budget, model=model, history=history, pricing=pricing)


def _read_yaml(path: str) -> Dict:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise InvalidConfigurationError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise InvalidConfigurationError("Configuration root must be a dictionary")
    return raw_config


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Return a copy of an optional section after rejecting unknown keys."""
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise InvalidConfigurationError(f"Unknown {name} keys: {unknown_keys}")
    return dict(data)


def _number(value, path: str) -> float:
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"'{path}' must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"'{path}' must be a number, got {value!r}")


def _integer(value, path: str) -> int:
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"'{path}' must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidConfigurationError(f"'{path}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidConfigurationError(f"'{path}' must be an integer, got {value!r}")


def _parse_model_pricing(data: Dict, path: str) -> ModelPricing:
    """Parse and validate one price table entry.

    Args:
        data: Mapping with 'input' and 'output' prices per million tokens
        path: Path for error messages

    Returns:
        Validated ModelPricing

    Raises:
        InvalidConfigurationError: If the entry is invalid
    """
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"'{path}' must be a dictionary")

    allowed_keys = {'input', 'output'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise InvalidConfigurationError(f"Unknown keys in {path}: {unknown_keys}")

    for key in ('input', 'output'):
        if key not in data:
            raise InvalidConfigurationError(f"Missing required '{key}' in {path}")

    return ModelPricing(
        input_price_per_million=_number(data['input'], f"{path}.input"),
        output_price_per_million=_number(data['output'], f"{path}.output"),
    )
