from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from policycatalog.core.preferences.datastore import InMemoryPreferenceSource, PreferencesRepository
from policycatalog.core.usecase.dispatchers import DispatcherProvider


def _freeze_mapping(value: Optional[Mapping[str, Any]]) -> MappingProxyType:
    if value is None:
        return MappingProxyType({})

    if not isinstance(value, Mapping):
        raise TypeError("metadata must be a mapping")

    copied: Dict[str, Any] = dict(value)

    for k in copied.keys():
        if not isinstance(k, str):
            raise TypeError("metadata keys must be strings")

    return MappingProxyType(copied)


@dataclass(frozen=True, eq=False)
class HandlerContext:
    """
    Explicit dependencies handed to policy implementations at build time.

    Replaces process-wide service lookups: every policy receives the
    preferences repository, dispatchers and platform metadata it needs
    through its constructor.

    metadata is an immutable mappingproxy; use with_metadata to derive a
    new context rather than mutating in place.
    """

    preferences: PreferencesRepository = field(
        default_factory=lambda: PreferencesRepository(InMemoryPreferenceSource())
    )
    dispatchers: DispatcherProvider = field(default_factory=DispatcherProvider)
    metadata: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.preferences, PreferencesRepository):
            raise TypeError("preferences must be a PreferencesRepository")
        if not isinstance(self.dispatchers, DispatcherProvider):
            raise TypeError("dispatchers must be a DispatcherProvider")
        object.__setattr__(self, "metadata", _freeze_mapping(self.metadata))

    def with_metadata(self, patch: Mapping[str, Any]) -> "HandlerContext":
        """
        Return a new HandlerContext with metadata merged (base then patch).
        """
        if not isinstance(patch, Mapping):
            raise TypeError("patch must be a mapping")

        merged: Dict[str, Any] = dict(self.metadata)
        merged.update(dict(_freeze_mapping(patch)))
        return HandlerContext(
            preferences=self.preferences,
            dispatchers=self.dispatchers,
            metadata=merged,
        )

    @classmethod
    def for_testing(cls, initial_preferences: Optional[Mapping[str, Any]] = None) -> "HandlerContext":
        return cls(
            preferences=PreferencesRepository(InMemoryPreferenceSource(dict(initial_preferences or {}))),
            dispatchers=DispatcherProvider.inline(),
        )
