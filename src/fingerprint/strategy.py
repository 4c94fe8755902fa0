from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Sequence

from .signatures import ExactMatchRule, VersionSignature


class PriorityStrategy(ABC):
    """
    Decides which confirmed version wins when more than one version's
    signatures match the same class. The matcher calls:
       - order(candidates, exact_rules, signatures)
    and reports the first element.
    """

    name: str

    @abstractmethod
    def order(
        self,
        candidates: Iterable[str],
        exact_rules: Sequence[ExactMatchRule],
        signatures: Mapping[str, VersionSignature],
    ) -> list[str]:
        ...


def _declared_rank(signatures: Mapping[str, VersionSignature]) -> dict[str, int]:
    return {version: i for i, version in enumerate(signatures)}


class DeclaredPriority(PriorityStrategy):
    """
    Order of the partial signature table. Versions missing from it sort last,
    alphabetically.
    """

    name = "declared"

    def order(self, candidates, exact_rules, signatures):
        rank = _declared_rank(signatures)
        return sorted(set(candidates), key=lambda v: (rank.get(v, len(rank)), v))


class SpecificityPriority(PriorityStrategy):
    """
    Most rules first: a version confirmed by more exact and partial rules made
    the stronger claim. Ties fall back to declared order.
    """

    name = "specificity"

    def order(self, candidates, exact_rules, signatures):
        rank = _declared_rank(signatures)

        def rule_count(version: str) -> int:
            exact = sum(1 for rule in exact_rules if version in rule.versions)
            sig = signatures.get(version)
            return exact + (len(sig.partial_matches) if sig else 0)

        return sorted(
            set(candidates),
            key=lambda v: (-rule_count(v), rank.get(v, len(rank)), v),
        )


_STRATEGIES = {
    DeclaredPriority.name: DeclaredPriority,
    SpecificityPriority.name: SpecificityPriority,
}


def get_strategy(name: str) -> PriorityStrategy:
    try:
        return _STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"unknown priority {name!r}, expected one of {', '.join(sorted(_STRATEGIES))}"
        ) from None
