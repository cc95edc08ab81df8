"""Model selector that scores and orders routing candidates"""

from typing import Optional, List, Sequence

from ...core.config import ScoringConfig, get_settings
from ...core.logger import CentralizedLogger
from ...models.routing import RoutingRequest
from .base_provider import ModelDescriptor
from .performance_metrics import PerformanceMetricsStore


class ModelSelector:
    """Ranks candidate models using static descriptors and live metrics

    Scoring is a weighted sum of priority, nominal reliability, live success
    rate, a latency bonus, a cost bonus and a provider preference bonus.
    Ranking is deterministic for a fixed metrics snapshot; equal scores keep
    registration order.
    """

    def __init__(
        self,
        metrics: PerformanceMetricsStore,
        scoring: Optional[ScoringConfig] = None
    ):
        """Initialize model selector

        Args:
            metrics: Live metrics store consulted while scoring
            scoring: Score weights (defaults to config)
        """
        self.metrics = metrics
        self.scoring = scoring or get_settings().routing.scoring
        self.logger = CentralizedLogger("ModelSelector")

    def score(
        self,
        descriptor: ModelDescriptor,
        preferred_provider: Optional[str] = None
    ) -> float:
        """Calculate model suitability score

        Args:
            descriptor: Candidate model
            preferred_provider: Provider earning the preference bonus

        Returns:
            Composite score, higher is better
        """
        weights = self.scoring
        snapshot = self.metrics.get_snapshot(descriptor.key)

        # Cold start: static reliability stands in for live success rate
        if snapshot.request_count == 0:
            success_rate = descriptor.reliability
            latency = descriptor.latency_ms
        else:
            success_rate = snapshot.success_rate
            latency = snapshot.average_latency_ms

        latency_bonus = 0.0
        if weights.latency_budget_ms > 0:
            latency_bonus = max(0.0, (weights.latency_budget_ms - latency) / weights.latency_budget_ms)

        cost_bonus = 0.0
        if weights.cost_baseline > 0:
            cost_bonus = max(0.0, (weights.cost_baseline - descriptor.cost_per_token) / weights.cost_baseline)

        score = (
            weights.priority_weight / max(descriptor.priority, 1) +
            weights.reliability_weight * descriptor.reliability +
            weights.success_rate_weight * success_rate +
            weights.latency_weight * latency_bonus +
            weights.cost_weight * cost_bonus
        )

        if preferred_provider and descriptor.provider == preferred_provider:
            score += weights.preference_bonus

        return score

    def rank(
        self,
        candidates: Sequence[ModelDescriptor],
        preferred_provider: Optional[str] = None
    ) -> List[ModelDescriptor]:
        """Order candidates by descending score

        Args:
            candidates: Models in registration order
            preferred_provider: Provider earning the preference bonus

        Returns:
            New list, best first
        """
        scored = [(self.score(c, preferred_provider), c) for c in candidates]
        # sorted() is stable, so ties keep registration order
        ranked = [c for _, c in sorted(scored, key=lambda item: item[0], reverse=True)]

        if ranked:
            self.logger.debug(
                f"Ranked {len(ranked)} candidates, top: {ranked[0].key} "
                f"(score: {max(s for s, _ in scored):.3f})"
            )
        return ranked

    def order_for_request(
        self,
        candidates: Sequence[ModelDescriptor],
        request: RoutingRequest,
        default_provider: Optional[str] = None
    ) -> List[ModelDescriptor]:
        """Build the execution order for a request

        Ranks with the request's preferred provider (or the adaptive default),
        then moves explicitly preferred models to the front in the caller's
        order, then moves an explicit preferred provider's models ahead of
        everything else.

        Args:
            candidates: Capability-matching models in registration order
            request: Routing request
            default_provider: Current adaptive default preferred provider

        Returns:
            Ordered candidates
        """
        ranked = self.rank(candidates, request.preferred_provider or default_provider)

        if request.model_preferences:
            by_key = {c.key: c for c in ranked}
            preferred = []
            for preference in request.model_preferences:
                model = by_key.get(preference.key)
                if model is not None and model not in preferred:
                    preferred.append(model)
            ranked = preferred + [c for c in ranked if c not in preferred]

        if request.preferred_provider:
            ranked = (
                [c for c in ranked if c.provider == request.preferred_provider] +
                [c for c in ranked if c.provider != request.preferred_provider]
            )

        return ranked

    def least_loaded(self, candidates: Sequence[ModelDescriptor]) -> ModelDescriptor:
        """Select the model with the lowest request count

        Args:
            candidates: Non-empty list of models in registration order

        Returns:
            Least loaded model; ties keep registration order
        """
        best = candidates[0]
        best_load = self.metrics.get_snapshot(best.key).request_count
        for candidate in candidates[1:]:
            load = self.metrics.get_snapshot(candidate.key).request_count
            if load < best_load:
                best, best_load = candidate, load

        self.logger.debug(f"Load-balance selected: {best.key} ({best_load} requests)")
        return best
