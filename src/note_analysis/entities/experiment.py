"""A/B experiment domain entities."""

from dataclasses import dataclass, field
from typing import Any

from .prompt_template import PromptTemplate


@dataclass
class ExperimentVariant:
    """One arm of an experiment.

    Attributes:
        id: Variant identifier, unique within the experiment
        prompt: The template served to users bucketed into this variant
        traffic_percentage: Share of traffic in percent (0-100)
        active: Inactive variants receive no traffic
    """

    id: str
    prompt: PromptTemplate
    traffic_percentage: float
    active: bool = True


@dataclass
class Experiment:
    """A prompt experiment splitting traffic between variants."""

    id: str
    name: str
    category: str
    variants: list[ExperimentVariant]
    active: bool = True
    description: str = ""
    start_date: str | None = None
    end_date: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def active_variants(self) -> list[ExperimentVariant]:
        return [v for v in self.variants if v.active]

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "active": self.active,
            "variants": [
                {
                    "id": v.id,
                    "promptId": v.prompt.id,
                    "trafficPercentage": v.traffic_percentage,
                    "active": v.active,
                }
                for v in self.variants
            ],
        }
