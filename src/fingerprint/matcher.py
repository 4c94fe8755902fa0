"""
Signature matching for classes whose digests are not catalogued.

Recompiling the same source with another compiler changes the class digest
but mostly leaves method opcode streams alone, and where it does not, the
changes sit in the middle of a method. Matching runs in two passes:

1. Exact pass: each exact rule claims the first unclaimed method equal to its
   pattern. A version survives only if every rule naming it claimed a method.
2. Partial pass: for each surviving version, each of its partial rules claims
   a distinct method by prefix and suffix. Claims start afresh per version,
   so methods claimed in the exact pass are available again.

A method is claimed at most once per pass, so one short common method cannot
stand in for several rules.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Mapping, Optional, Sequence

from loguru import logger

from .signatures import EXACT_MATCHES, PARTIAL_SIGNATURES, ExactMatchRule, VersionSignature
from .strategy import PriorityStrategy, SpecificityPriority
from .tables import UNKNOWN_VERSION


class ClaimTracker:
    """Indexes of methods already claimed during one matching pass."""

    def __init__(self, methods: Sequence[bytes]):
        self.methods = methods
        self.claimed: set[int] = set()

    def claim_first(self, predicate: Callable[[bytes], bool]) -> Optional[int]:
        """Claim the first unclaimed method satisfying ``predicate``; None if there is none."""
        for i, method in enumerate(self.methods):
            if i in self.claimed:
                continue
            if predicate(method):
                self.claimed.add(i)
                return i
        return None

    def __contains__(self, index: int) -> bool:
        return index in self.claimed


@dataclass(frozen=True, slots=True)
class MatchResult:
    version: str
    matched: bool
    # Every version that passed both passes, best first
    candidates: tuple[str, ...] = ()

    def __iter__(self) -> Iterator:
        # Unpacks as (version, matched)
        yield self.version
        yield self.matched


NO_MATCH = MatchResult(UNKNOWN_VERSION, False)


def exact_satisfied_versions(
    methods: Sequence[bytes],
    exact_rules: Sequence[ExactMatchRule] = EXACT_MATCHES,
) -> list[str]:
    """Versions for which every exact rule naming them claimed a method, in first-named order."""
    tracker = ClaimTracker(methods)
    satisfied: dict[str, bool] = {}
    for rule in exact_rules:
        index = tracker.claim_first(rule.matches)
        if index is not None:
            logger.debug(f"exact rule for {', '.join(rule.versions)} claimed method {index}")
        for version in rule.versions:
            satisfied[version] = satisfied.get(version, True) and index is not None
    return [version for version, ok in satisfied.items() if ok]


def partial_signature_matches(methods: Sequence[bytes], signature: VersionSignature) -> bool:
    """True if every partial rule of ``signature`` claims a distinct method."""
    tracker = ClaimTracker(methods)
    for rule in signature.partial_matches:
        if tracker.claim_first(rule.matches) is None:
            return False
    return True


def match_signatures(
    methods: Sequence[bytes],
    exact_rules: Sequence[ExactMatchRule] = EXACT_MATCHES,
    signatures: Mapping[str, VersionSignature] = PARTIAL_SIGNATURES,
    priority: Optional[PriorityStrategy] = None,
) -> MatchResult:
    """
    Identify the version whose signatures the given method opcode streams
    satisfy. Returns NO_MATCH when no version is confirmed; that is an
    answer, not an error.
    """
    if not methods:
        return NO_MATCH
    priority = priority or SpecificityPriority()

    plausible = exact_satisfied_versions(methods, exact_rules)
    logger.debug(f"exact-satisfied versions: {plausible}")

    confirmed = []
    for version in priority.order(plausible, exact_rules, signatures):
        signature = signatures.get(version) or VersionSignature(version, ())
        if partial_signature_matches(methods, signature):
            confirmed.append(version)

    if not confirmed:
        return NO_MATCH
    if len(confirmed) > 1:
        logger.warning(
            f"signatures of several versions match: {', '.join(confirmed)}; "
            f"reporting {confirmed[0]} ({priority.name} priority)"
        )
    else:
        logger.info(f"signatures match version {confirmed[0]}")
    return MatchResult(confirmed[0], True, tuple(confirmed))
