"""
Experiment Configuration

Immutable A/B test definitions used by cart recovery. The registry is built
once per process and handed to the services that need it; nothing mutates it
afterwards.
"""

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class ExperimentDefinition:
    """
    A/B test definition.

    `weights[i]` is the probability of `variants[i]`; weights must sum to 1.0.

    Example:
        ```python
        timing = ExperimentDefinition("timing", ("immediate", "delayed"), (0.5, 0.5))
        timing.select_variant(0.7)  # "delayed"
        ```
    """

    name: str
    variants: tuple[str, ...]
    weights: tuple[float, ...]
    active: bool = True

    def __post_init__(self):
        if not self.variants:
            raise ValueError(f"Experiment '{self.name}' needs at least one variant")
        if len(self.variants) != len(self.weights):
            raise ValueError(f"Experiment '{self.name}' has {len(self.variants)} variants but {len(self.weights)} weights")
        if any(w < 0 for w in self.weights):
            raise ValueError(f"Experiment '{self.name}' has negative weights")
        if not math.isclose(sum(self.weights), 1.0, abs_tol=1e-6):
            raise ValueError(f"Experiment '{self.name}' weights must sum to 1.0, got {sum(self.weights)}")

    def select_variant(self, draw: float) -> str:
        """
        Walk the cumulative weights until they meet or exceed `draw` (in [0, 1)).

        Falls back to the last variant when rounding leaves the cumulative sum short.
        """
        cumulative = 0.0
        for variant, weight in zip(self.variants, self.weights):
            cumulative += weight
            if draw <= cumulative:
                return variant
        return self.variants[-1]


class ExperimentRegistry(Mapping[str, ExperimentDefinition]):
    """Read-only mapping of experiment name to definition, in registration order."""

    def __init__(self, experiments: list[ExperimentDefinition]):
        names = [e.name for e in experiments]
        if len(names) != len(set(names)):
            raise ValueError("Experiment names must be unique")
        self._experiments = MappingProxyType({e.name: e for e in experiments})

    def __getitem__(self, name: str) -> ExperimentDefinition:
        return self._experiments[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._experiments)

    def __len__(self) -> int:
        return len(self._experiments)

    def active(self) -> list[ExperimentDefinition]:
        return [e for e in self._experiments.values() if e.active]


DEFAULT_EXPERIMENTS = (
    ExperimentDefinition(
        name="timing",
        variants=("immediate", "delayed"),
        weights=(0.5, 0.5),
    ),
    ExperimentDefinition(
        name="message_style",
        variants=("persuasive", "informative", "urgent"),
        weights=(0.33, 0.33, 0.34),
    ),
    ExperimentDefinition(
        name="discount_offer",
        variants=("none", "10_percent", "20_percent"),
        weights=(0.33, 0.33, 0.34),
    ),
)

_registry: ExperimentRegistry | None = None


def load_experiment_registry() -> ExperimentRegistry:
    """Return the process-wide experiment registry, building it on first use."""
    global _registry
    if _registry is None:
        _registry = ExperimentRegistry(list(DEFAULT_EXPERIMENTS))
    return _registry
