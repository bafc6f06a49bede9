"""A/B experiments over prompt templates.

Users are assigned to variants deterministically: the same user id always
lands in the same bucket of a given experiment, so nobody flips between
variants mid-experiment. The bucket hash is a simple polynomial string hash
and is not meant for anything security related.
"""

import copy
import dataclasses
import logging
import threading
from collections import Counter
from typing import Any

from note_analysis.entities import Experiment, ExperimentVariant, PromptSelection
from note_analysis.exceptions import (
    ExperimentInactiveError,
    ExperimentNotFoundError,
    ExperimentValidationError,
)
from note_analysis.utils import string_hash32

logger = logging.getLogger(__name__)

TRAFFIC_TOLERANCE = 0.01


def validate_experiment(experiment: Experiment) -> None:
    """Raise ExperimentValidationError unless ``experiment`` is well formed.

    Traffic is summed over all variants, active or not.
    """
    if not experiment.id or not experiment.name or not experiment.category:
        raise ExperimentValidationError("Experiment must have id, name, and category")

    if len(experiment.variants) < 2:
        raise ExperimentValidationError("Experiment must have at least 2 variants")

    variant_ids = [v.id for v in experiment.variants]
    if len(set(variant_ids)) != len(variant_ids):
        raise ExperimentValidationError("Variant ids must be unique within an experiment")

    total = sum(v.traffic_percentage for v in experiment.variants)
    if abs(total - 100) > TRAFFIC_TOLERANCE:
        raise ExperimentValidationError(f"Traffic percentages must sum to 100, got {total}")

    for variant in experiment.variants:
        if variant.traffic_percentage < 0:
            raise ExperimentValidationError(f"Variant {variant.id} has negative traffic")
        if variant.prompt.category != experiment.category:
            raise ExperimentValidationError(
                f"Variant {variant.id} category mismatch: expected {experiment.category}, "
                f"got {variant.prompt.category}"
            )


class ExperimentManager:
    """Registry of experiments and deterministic variant assignment."""

    def __init__(self) -> None:
        self._experiments: dict[str, Experiment] = {}
        self._lock = threading.Lock()

    def create_experiment(self, experiment: Experiment) -> Experiment:
        """Validate and register a new experiment.

        Raises:
            ExperimentValidationError: If invalid or the id is already taken
        """
        validate_experiment(experiment)
        with self._lock:
            if experiment.id in self._experiments:
                raise ExperimentValidationError(f"Experiment already exists: {experiment.id}")
            self._experiments[experiment.id] = experiment
        logger.info(
            "Experiment %s created with variants %s",
            experiment.id,
            {v.id: v.traffic_percentage for v in experiment.variants},
        )
        return experiment

    def _require(self, experiment_id: str) -> Experiment:
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            raise ExperimentNotFoundError(f"Experiment not found: {experiment_id}")
        return experiment

    def select_variant(self, experiment_id: str, user_id: str) -> ExperimentVariant:
        """Assign ``user_id`` to a variant of ``experiment_id``.

        The bucket is ``hash(user_id + experiment_id) % 100`` walked through
        the cumulative traffic of the active variants. If the active
        variants cover less than 100% the first active variant takes the rest.

        Raises:
            ExperimentNotFoundError: If the experiment does not exist
            ExperimentInactiveError: If it is inactive or has no active variants
        """
        with self._lock:
            experiment = self._require(experiment_id)
            if not experiment.active:
                raise ExperimentInactiveError(f"Experiment not active: {experiment_id}")

            active = experiment.active_variants
            if not active:
                raise ExperimentInactiveError(f"No active variants in experiment: {experiment_id}")

        bucket = string_hash32(user_id + experiment_id) % 100
        cumulative = 0.0
        for variant in active:
            cumulative += variant.traffic_percentage
            if bucket < cumulative:
                return variant
        return active[0]

    def select_for_category(self, category: str, user_id: str) -> PromptSelection | None:
        """Pick a template from the first active experiment for ``category``.

        Returns None when no active experiment covers the category.
        """
        for experiment in self.list_by_category(category):
            if not experiment.active or not experiment.active_variants:
                continue
            variant = self.select_variant(experiment.id, user_id)
            return PromptSelection(
                template=variant.prompt,
                from_experiment=True,
                experiment_id=experiment.id,
                variant_id=variant.id,
            )
        return None

    def get_experiment(self, experiment_id: str) -> Experiment | None:
        with self._lock:
            return self._experiments.get(experiment_id)

    def list_experiments(self, active_only: bool = False) -> list[Experiment]:
        with self._lock:
            experiments = list(self._experiments.values())
        return [e for e in experiments if e.active] if active_only else experiments

    def list_by_category(self, category: str) -> list[Experiment]:
        with self._lock:
            return [e for e in self._experiments.values() if e.category == category]

    def update_experiment(self, experiment_id: str, **changes: Any) -> Experiment:
        """Apply field changes, re-validating before anything is stored."""
        with self._lock:
            updated = dataclasses.replace(self._require(experiment_id), **changes)
            if updated.id != experiment_id:
                raise ExperimentValidationError("Experiment id cannot be changed")
            validate_experiment(updated)
            self._experiments[experiment_id] = updated
            return updated

    def activate(self, experiment_id: str) -> None:
        with self._lock:
            self._require(experiment_id).active = True

    def deactivate(self, experiment_id: str) -> None:
        with self._lock:
            self._require(experiment_id).active = False

    def delete_experiment(self, experiment_id: str) -> None:
        with self._lock:
            self._require(experiment_id)
            del self._experiments[experiment_id]

    def update_traffic(self, experiment_id: str, allocation: dict[str, float]) -> Experiment:
        """Change variant traffic shares.

        The new split is validated on a copy first, so a rejected update
        leaves the experiment untouched.

        Raises:
            ExperimentValidationError: If the new split does not sum to 100
        """
        with self._lock:
            experiment = self._require(experiment_id)
            unknown = set(allocation) - {v.id for v in experiment.variants}
            if unknown:
                raise ExperimentValidationError(f"Unknown variants: {sorted(unknown)}")

            candidate = copy.copy(experiment)
            candidate.variants = [
                dataclasses.replace(v, traffic_percentage=allocation.get(v.id, v.traffic_percentage))
                for v in experiment.variants
            ]
            validate_experiment(candidate)
            experiment.variants = candidate.variants
            return experiment

    def get_stats(self) -> dict[str, Any]:
        experiments = self.list_experiments()
        return {
            "total": len(experiments),
            "active": sum(1 for e in experiments if e.active),
            "inactive": sum(1 for e in experiments if not e.active),
            "byCategory": dict(Counter(e.category for e in experiments)),
            "totalVariants": sum(len(e.variants) for e in experiments),
            "experiments": [e.summary() for e in experiments],
        }

    def clear(self) -> None:
        with self._lock:
            self._experiments.clear()
