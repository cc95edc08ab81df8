"""Merging of ensemble member results"""

from dataclasses import dataclass
from typing import Any, List, Sequence

from ...models.routing import Capability
from .base_provider import AttemptOutcome
from .exceptions import CombineError


ANALYSIS_DELIMITER = "\n\n--- Additional Analysis ---\n\n"
EMBEDDING_CONFIDENCE = 0.9


@dataclass(frozen=True)
class CombinedResult:
    output: Any
    confidence: float
    method: str


class ResultCombiner:
    """Combines successful ensemble members according to the task type"""

    def __init__(self, default_confidence: float = 0.8):
        self.default_confidence = default_confidence

    def combine(self, results: Sequence[AttemptOutcome], capability: Capability) -> CombinedResult:
        """Merge member results

        Args:
            results: Successful members in response order
            capability: Task type of the request

        Returns:
            Combined result

        Raises:
            CombineError: If results are missing or have incompatible shapes
        """
        if not results:
            raise CombineError("No results to combine")

        if capability == Capability.EMBEDDING:
            return self.combine_embeddings(results)
        if capability == Capability.ANALYSIS:
            return self.combine_analysis(results)
        return self.combine_text(results)

    def confidence_of(self, result: AttemptOutcome) -> float:
        return result.confidence if result.confidence is not None else self.default_confidence

    def combine_text(self, results: Sequence[AttemptOutcome]) -> CombinedResult:
        """Pick the most confident member; earlier members win ties"""
        self._require_text(results, "best-confidence")

        best = results[0]
        for current in results[1:]:
            if self.confidence_of(current) > self.confidence_of(best):
                best = current

        return CombinedResult(
            output=best.output,
            confidence=self.confidence_of(best),
            method="best-confidence"
        )

    def combine_embeddings(self, results: Sequence[AttemptOutcome]) -> CombinedResult:
        """Element-wise mean of member vectors"""
        vectors: List[List[float]] = []
        for result in results:
            if not result.is_vector or result.output is None:
                raise CombineError(
                    f"{result.descriptor.key} returned no embedding vector",
                    method="averaging"
                )
            vectors.append(list(result.output))

        dimension = len(vectors[0])
        for result, vector in zip(results, vectors):
            if len(vector) != dimension:
                raise CombineError(
                    f"Embedding dimension mismatch: {result.descriptor.key} returned "
                    f"{len(vector)} values, expected {dimension}",
                    method="averaging"
                )

        count = len(vectors)
        averaged = [sum(values) / count for values in zip(*vectors)]

        return CombinedResult(output=averaged, confidence=EMBEDDING_CONFIDENCE, method="averaging")

    def combine_analysis(self, results: Sequence[AttemptOutcome]) -> CombinedResult:
        """Concatenate member insights; confidence is the weakest member's"""
        self._require_text(results, "insight-combination")

        insights = [str(r.output) for r in results if r.output]
        return CombinedResult(
            output=ANALYSIS_DELIMITER.join(insights),
            confidence=min(self.confidence_of(r) for r in results),
            method="insight-combination"
        )

    @staticmethod
    def _require_text(results: Sequence[AttemptOutcome], method: str) -> None:
        for result in results:
            if result.is_vector:
                raise CombineError(
                    f"{result.descriptor.key} returned a vector where text was expected",
                    method=method
                )
            if not isinstance(result.output, str):
                raise CombineError(
                    f"{result.descriptor.key} returned no text content",
                    method=method
                )
