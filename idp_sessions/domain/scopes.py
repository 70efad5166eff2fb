"""
Scope classification for partial-consent grants.

Pure functions only: no I/O and nothing persisted. The result decides which
requested scopes end up on the issued grant, and its ``is_partial_grant``
flag tells claim mapping to hold back optional claims.

RULES:
1. Required scopes that were requested are always allowed
2. Optional scopes are allowed only when requested, known and consented to
3. Consent never widens the grant beyond what was requested
4. Everything else that was requested is rejected
5. Names match ignoring case; outputs keep the requested spelling
6. Outputs are sorted ascending (case-sensitive) for deterministic results
"""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ScopeSummary:
    name: str
    is_required: bool = False


@dataclass(frozen=True)
class ScopeClassificationResult:
    allowed: tuple[str, ...]
    required: tuple[str, ...]
    rejected: tuple[str, ...]

    @property
    def is_partial_grant(self) -> bool:
        return bool(self.rejected)


def _normalize(scopes: Iterable[str] | None) -> dict[str, str]:
    """Map each case-folded scope name to the first spelling seen."""
    names: dict[str, str] = {}
    for scope in scopes or ():
        name = scope.strip() if scope else ""
        if name:
            names.setdefault(name.casefold(), name)
    return names


def classify_scopes(
    requested_scopes: Iterable[str] | None,
    available_scopes: Iterable[ScopeSummary],
    granted_scopes: Iterable[str] | None,
) -> ScopeClassificationResult:
    """
    Split requested scopes into allowed, required and rejected sets.

    Scope names are matched ignoring case. Results keep the spelling the
    client requested.

    Args:
        requested_scopes: Scopes the client asked for
        available_scopes: Known scopes with their required flag
        granted_scopes: Scopes the subject consented to. None means no
            optional consent was given, the same as an empty collection.

    Returns:
        ScopeClassificationResult with sorted tuples
    """
    requested = _normalize(requested_scopes)
    granted = set(_normalize(granted_scopes))

    required_keys: set[str] = set()
    optional_keys: set[str] = set()
    for scope in available_scopes:
        key = scope.name.strip().casefold()
        if not key:
            continue
        if scope.is_required:
            required_keys.add(key)
        else:
            optional_keys.add(key)
    # A scope flagged required anywhere wins over an optional duplicate
    optional_keys -= required_keys

    required = requested.keys() & required_keys
    allowed = required | (requested.keys() & optional_keys & granted)
    rejected = requested.keys() - allowed

    return ScopeClassificationResult(
        allowed=tuple(sorted(requested[key] for key in allowed)),
        required=tuple(sorted(requested[key] for key in required)),
        rejected=tuple(sorted(requested[key] for key in rejected)),
    )
