"""Execution strategies for routed requests"""

import asyncio
import math
import time
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ...core.logger import CentralizedLogger
from ...models.routing import (
    MemberResult,
    RoutingMetadata,
    RoutingRequest,
    RoutingResponse,
    RoutingStrategy,
)
from .base_provider import AttemptOutcome, ModelDescriptor, ProviderClient, ProviderResult
from .exceptions import (
    ConfigurationError,
    EnsembleExhaustedError,
    FallbackExhaustedError,
    ProviderError,
    ProviderTimeoutError,
    RoutingValidationError,
)
from .model_selector import ModelSelector
from .performance_metrics import PerformanceMetricsStore
from .result_combiner import ResultCombiner


ENSEMBLE_PROVIDER = "ensemble"


class StrategyExecutor:
    """Runs a request under one of the routing strategies

    Every provider attempt is recorded in the metrics store as soon as it
    resolves, before any error leaves this class. Attempts cancelled before
    resolving are not recorded.
    """

    def __init__(
        self,
        clients: Mapping[str, ProviderClient],
        metrics: PerformanceMetricsStore,
        selector: ModelSelector,
        combiner: ResultCombiner,
        ensemble_size: int = 3
    ):
        if ensemble_size < 1:
            raise ConfigurationError(f"Ensemble size must be at least 1, got {ensemble_size}")
        self.clients = clients
        self.metrics = metrics
        self.selector = selector
        self.combiner = combiner
        self.ensemble_size = ensemble_size
        self.logger = CentralizedLogger("StrategyExecutor")

        self._strategies: Dict[RoutingStrategy, Callable[..., Awaitable[RoutingResponse]]] = {
            RoutingStrategy.SINGLE: self.execute_single,
            RoutingStrategy.FALLBACK: self.execute_fallback,
            RoutingStrategy.ENSEMBLE: self.execute_ensemble,
            RoutingStrategy.LOAD_BALANCE: self.execute_load_balance,
        }

    async def execute(
        self,
        request: RoutingRequest,
        candidates: Sequence[ModelDescriptor],
        timeout_ms: float,
        default_provider: Optional[str] = None
    ) -> RoutingResponse:
        """Execute a request with its strategy

        Args:
            request: Routing request
            candidates: Capability-matching models in registration order
            timeout_ms: Timeout applied to each provider call
            default_provider: Adaptive default preferred provider

        Returns:
            Routing response
        """
        if not candidates:
            raise RoutingValidationError(
                f"No registered model supports capability '{request.task_type.value}'"
            )
        strategy = self._strategies[request.strategy]
        return await strategy(request, candidates, timeout_ms, default_provider)

    async def execute_single(
        self,
        request: RoutingRequest,
        candidates: Sequence[ModelDescriptor],
        timeout_ms: float,
        default_provider: Optional[str] = None
    ) -> RoutingResponse:
        """Run the top-ranked model once; failures propagate unchanged"""
        descriptor = self.selector.order_for_request(candidates, request, default_provider)[0]
        outcome = await self.attempt(descriptor, request, timeout_ms)
        return self._single_response(outcome, RoutingStrategy.SINGLE, attempted=[descriptor.key])

    async def execute_fallback(
        self,
        request: RoutingRequest,
        candidates: Sequence[ModelDescriptor],
        timeout_ms: float,
        default_provider: Optional[str] = None
    ) -> RoutingResponse:
        """Try models one after another until one succeeds"""
        chain = self.selector.order_for_request(candidates, request, default_provider)
        errors: List[ProviderError] = []

        for descriptor in chain:
            try:
                outcome = await self.attempt(descriptor, request, timeout_ms)
            except ProviderError as e:
                errors.append(e)
                continue

            if errors:
                self.logger.info(
                    f"Fallback succeeded on {descriptor.key} after {len(errors)} failed attempts"
                )
            return self._single_response(
                outcome,
                RoutingStrategy.FALLBACK,
                attempted=[e.model_key for e in errors] + [descriptor.key],
                fallbacks=[str(e) for e in errors]
            )

        raise FallbackExhaustedError(errors)

    async def execute_ensemble(
        self,
        request: RoutingRequest,
        candidates: Sequence[ModelDescriptor],
        timeout_ms: float,
        default_provider: Optional[str] = None
    ) -> RoutingResponse:
        """Run the top models concurrently and combine their results"""
        ranked = self.selector.order_for_request(candidates, request, default_provider)
        members = ranked[:min(self.ensemble_size, len(ranked))]

        # Wait for every member to settle; one failure never cancels siblings
        settled = await asyncio.gather(
            *(self.attempt(d, request, timeout_ms) for d in members),
            return_exceptions=True
        )

        successes: List[AttemptOutcome] = []
        errors: List[ProviderError] = []
        for descriptor, outcome in zip(members, settled):
            if isinstance(outcome, AttemptOutcome):
                successes.append(outcome)
            elif isinstance(outcome, ProviderError):
                errors.append(outcome)
            elif isinstance(outcome, asyncio.CancelledError):
                self.logger.debug(f"Ensemble member {descriptor.key} was cancelled")
            else:
                raise outcome

        if not successes:
            raise EnsembleExhaustedError(errors)

        combined = self.combiner.combine(successes, request.task_type)
        latency = max(s.latency_ms for s in successes)
        cost = sum(s.cost for s in successes) + sum(max(e.cost, 0.0) for e in errors)

        return RoutingResponse(
            result=combined.output,
            provider=ENSEMBLE_PROVIDER,
            model_id="+".join(d.model_id for d in members),
            confidence=combined.confidence,
            latency_ms=latency,
            cost=cost,
            metadata=RoutingMetadata(
                strategy=RoutingStrategy.ENSEMBLE,
                attempted=[d.key for d in members],
                all_results=[self._member_result(s) for s in successes],
                errors=[e.to_dict() for e in errors],
                combine_method=combined.method,
                performance={
                    "accuracy": combined.confidence,
                    "speed": latency,
                    "efficiency": cost,
                    "diversity": len(successes) / len(members),
                }
            )
        )

    async def execute_load_balance(
        self,
        request: RoutingRequest,
        candidates: Sequence[ModelDescriptor],
        timeout_ms: float,
        default_provider: Optional[str] = None
    ) -> RoutingResponse:
        """Run the least used model once, without fallback"""
        descriptor = self.selector.least_loaded(candidates)
        outcome = await self.attempt(descriptor, request, timeout_ms)
        return self._single_response(outcome, RoutingStrategy.LOAD_BALANCE, attempted=[descriptor.key])

    async def attempt(
        self,
        descriptor: ModelDescriptor,
        request: RoutingRequest,
        timeout_ms: float
    ) -> AttemptOutcome:
        """Call one model and record the outcome

        Args:
            descriptor: Model to call
            request: Routing request
            timeout_ms: Call timeout

        Returns:
            Successful outcome

        Raises:
            ProviderError: Call failed or timed out (already recorded)
        """
        client = self.clients[descriptor.provider]
        start = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                client.execute(
                    request.task_type,
                    request.payload,
                    descriptor.model_id,
                    timeout_ms,
                    max_tokens=descriptor.max_tokens,
                    temperature=descriptor.temperature,
                ),
                timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(descriptor.provider, descriptor.model_id, timeout_ms)
        except ProviderError as e:
            error = e
        except Exception as e:
            error = ProviderError(descriptor.provider, descriptor.model_id, str(e) or type(e).__name__)
            error.__cause__ = e
        else:
            return self._record_success(descriptor, result, start)

        latency_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_outcome(descriptor.key, False, latency_ms, error.cost, error.message)
        self.logger.warning(
            f"Provider call failed: {error}",
            extra={"provider": descriptor.provider, "model_id": descriptor.model_id}
        )
        raise error

    def _record_success(
        self,
        descriptor: ModelDescriptor,
        result: ProviderResult,
        start: float
    ) -> AttemptOutcome:
        measured_ms = (time.perf_counter() - start) * 1000
        latency_ms = result.latency_ms if result.latency_ms is not None else measured_ms
        cost = result.cost if result.cost is not None else self.estimate_cost(descriptor, result)
        cost = max(cost, 0.0)

        self.metrics.record_outcome(descriptor.key, True, latency_ms, cost)
        self.logger.debug(
            f"Provider call succeeded: {descriptor.key} in {latency_ms:.0f} ms",
            extra={"provider": descriptor.provider, "model_id": descriptor.model_id}
        )

        return AttemptOutcome(
            descriptor=descriptor,
            output=result.output,
            is_vector=result.vector is not None,
            confidence=result.confidence,
            latency_ms=latency_ms,
            cost=cost,
        )

    @staticmethod
    def estimate_cost(descriptor: ModelDescriptor, result: ProviderResult) -> float:
        """Estimate cost from token usage, roughly 4 characters per token"""
        if result.tokens is not None:
            tokens = result.tokens
        elif isinstance(result.content, str):
            tokens = math.ceil(len(result.content) / 4)
        else:
            tokens = 0
        return tokens * descriptor.cost_per_token

    def _single_response(
        self,
        outcome: AttemptOutcome,
        strategy: RoutingStrategy,
        attempted: List[str],
        fallbacks: Optional[List[str]] = None
    ) -> RoutingResponse:
        confidence = self.combiner.confidence_of(outcome)
        return RoutingResponse(
            result=outcome.output,
            provider=outcome.descriptor.provider,
            model_id=outcome.descriptor.model_id,
            confidence=confidence,
            latency_ms=outcome.latency_ms,
            cost=outcome.cost,
            metadata=RoutingMetadata(
                strategy=strategy,
                attempted=attempted,
                fallbacks=fallbacks or [],
                performance={
                    "accuracy": confidence,
                    "speed": outcome.latency_ms,
                    "efficiency": outcome.cost,
                }
            )
        )

    def _member_result(self, outcome: AttemptOutcome) -> MemberResult:
        return MemberResult(
            provider=outcome.descriptor.provider,
            model_id=outcome.descriptor.model_id,
            result=outcome.output,
            confidence=self.combiner.confidence_of(outcome),
            latency_ms=outcome.latency_ms,
            cost=outcome.cost,
        )
