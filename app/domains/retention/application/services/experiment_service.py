"""
Experiment Service

Sticky A/B variant assignment backed by the cache. The first writer of an
assignment wins; later callers, including racing ones, read it back. An
impression is counted only by the caller whose write won, so each customer
counts once per experiment.
"""

import logging
import random
from collections.abc import Callable
from typing import Any

from app.config.experiments import ExperimentDefinition, ExperimentRegistry, load_experiment_registry
from app.core.domain.exceptions import ValidationException
from app.core.interfaces.cache import ICache

logger = logging.getLogger(__name__)


def assignment_key(experiment: str, customer_id: str) -> str:
    return f"abtest:{experiment}:{customer_id}"


def impressions_key(experiment: str, variant: str) -> str:
    return f"abtest:{experiment}:{variant}:impressions"


def conversions_key(experiment: str, variant: str) -> str:
    return f"abtest:{experiment}:{variant}:conversions"


def conversion_rate(conversions: float, impressions: float) -> float:
    return conversions / impressions * 100 if impressions else 0.0


class ExperimentService:
    """Assigns, counts and reports experiment variants."""

    def __init__(
        self,
        cache: ICache,
        registry: ExperimentRegistry | None = None,
        draw: Callable[[], float] | None = None,
    ):
        self.cache = cache
        self.registry = registry if registry is not None else load_experiment_registry()
        self._draw = draw or random.random

    def _definition(self, name: str) -> ExperimentDefinition:
        definition = self.registry.get(name)
        if definition is None:
            raise ValidationException(f"Unknown experiment '{name}'", field="experiment")
        return definition

    async def assign(self, experiment: str, customer_id: str) -> str | None:
        """
        Variant of `experiment` for a customer, assigning one on first exposure.

        Returns:
            The sticky variant, or None if the experiment is inactive
        """
        definition = self._definition(experiment)
        if not definition.active:
            return None

        key = assignment_key(experiment, customer_id)
        existing = await self.cache.get(key)
        if existing is not None:
            return existing

        candidate = definition.select_variant(self._draw())
        if await self.cache.set_if_not_exists(key, candidate):
            await self.cache.increment(impressions_key(experiment, candidate), 1)
            logger.debug(f"Customer {customer_id} assigned to {experiment}={candidate}")
            return candidate

        # Lost the race: another writer assigned first
        winner = await self.cache.get(key)
        return winner if winner is not None else candidate

    async def assign_all(self, customer_id: str) -> dict[str, str]:
        """Sticky variants for every active experiment."""
        assignments = {}
        for definition in self.registry.active():
            variant = await self.assign(definition.name, customer_id)
            if variant is not None:
                assignments[definition.name] = variant
        return assignments

    async def record_conversion(self, customer_id: str) -> dict[str, str]:
        """
        Count a conversion for every active experiment the customer is enrolled in.

        Returns:
            The experiments and variants credited
        """
        credited = {}
        for definition in self.registry.active():
            variant = await self.cache.get(assignment_key(definition.name, customer_id))
            if variant is None:
                continue
            await self.cache.increment(conversions_key(definition.name, variant), 1)
            credited[definition.name] = variant

        if credited:
            logger.info(f"Conversion recorded for customer {customer_id}: {credited}")
        return credited

    async def experiment_results(self, experiment: str) -> dict[str, Any]:
        """Impressions, conversions and conversion rate per variant."""
        definition = self._definition(experiment)
        variants = {}
        for variant in definition.variants:
            impressions = await self.cache.get(impressions_key(experiment, variant)) or 0
            conversions = await self.cache.get(conversions_key(experiment, variant)) or 0
            variants[variant] = {
                "impressions": int(impressions),
                "conversions": int(conversions),
                "conversion_rate": conversion_rate(float(conversions), float(impressions)),
            }
        return {"experiment": experiment, "active": definition.active, "variants": variants}
