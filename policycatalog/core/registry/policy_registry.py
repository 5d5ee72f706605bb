from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from policycatalog.core.policy.capabilities import PolicyCapability
from policycatalog.core.policy.category import PolicyCategory
from policycatalog.core.policy.contracts import Policy, PolicyComponent, PolicyHandler, PolicyKey
from policycatalog.core.policy.exceptions import DuplicatePolicyError
from policycatalog.core.policy.state import PolicyState
from policycatalog.core.usecase.result import ApiError, ApiResult, Error

log = logging.getLogger("policycatalog.registry")

Components = Tuple[PolicyComponent[Any], ...]


class PolicyCatalog(Protocol):
    """Read-only query surface shared by PolicyRegistry and RegistrySnapshot."""

    def snapshot(self) -> "RegistrySnapshot":
        ...

    def get_by_capability(self, capability: PolicyCapability) -> List[PolicyComponent[Any]]:
        ...

    def get_all_components(self) -> List[PolicyComponent[Any]]:
        ...


def _dedupe(components: Iterable[PolicyComponent[Any]]) -> Components:
    """Drop repeated objects, reject distinct components sharing a name."""

    seen: Dict[str, PolicyComponent[Any]] = {}
    ordered: List[PolicyComponent[Any]] = []
    for c in components:
        if not isinstance(c, PolicyComponent):
            raise TypeError("Only PolicyComponent instances may be registered")
        prior = seen.get(c.policy_name)
        if prior is c:
            continue
        if prior is not None:
            raise DuplicatePolicyError(c.policy_name)
        seen[c.policy_name] = c
        ordered.append(c)
    return tuple(ordered)


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    One fully built generation of the registry.

    Invariants
    - components and all three indexes are derived from the same input.
    - by_capability has a key for every PolicyCapability and by_category a
      key for every PolicyCategory (empty tuple when unused).
    - Index values preserve registration order.

    Build: O(n * c) for n components and c capabilities.
    """

    generation: int
    components: Components
    by_name: Mapping[str, PolicyComponent[Any]]
    by_category: Mapping[PolicyCategory, Components]
    by_capability: Mapping[PolicyCapability, Components]

    @classmethod
    def build(cls, components: Iterable[PolicyComponent[Any]], generation: int = 0) -> "RegistrySnapshot":
        ordered = _dedupe(components)

        by_name = {c.policy_name: c for c in ordered}
        by_category = {
            cat: tuple(c for c in ordered if c.category is cat) for cat in PolicyCategory
        }
        by_capability = {
            cap: tuple(c for c in ordered if cap in c.capabilities) for cap in PolicyCapability
        }

        return cls(
            generation=generation,
            components=ordered,
            by_name=MappingProxyType(by_name),
            by_category=MappingProxyType(by_category),
            by_capability=MappingProxyType(by_capability),
        )

    @classmethod
    def empty(cls) -> "RegistrySnapshot":
        return cls.build((), generation=0)

    def snapshot(self) -> "RegistrySnapshot":
        return self

    # Exact lookups

    def get_component(self, key: PolicyKey[Any]) -> Optional[PolicyComponent[Any]]:
        return self.by_name.get(key.policy_name)

    def get_component_by_name(self, policy_name: str) -> Optional[PolicyComponent[Any]]:
        return self.by_name.get(policy_name)

    def get_handler(self, key: PolicyKey[Any]) -> Optional[PolicyHandler[Any]]:
        component = self.by_name.get(key.policy_name)
        if component is None:
            return None
        if not component.key.is_compatible_with(key):
            return None
        return component.handler

    def is_registered(self, key: PolicyKey[Any]) -> bool:
        return key.policy_name in self.by_name

    # Index queries

    def get_by_capability(self, capability: PolicyCapability) -> List[PolicyComponent[Any]]:
        return list(self.by_capability.get(capability, ()))

    def get_by_capabilities(
        self, capabilities: Iterable[PolicyCapability], match_all: bool = False
    ) -> List[PolicyComponent[Any]]:
        requested = frozenset(capabilities)
        if not requested:
            return list(self.components)

        if match_all:
            return [c for c in self.components if c.has_all_capabilities(requested)]

        # Union of index lists, walked in enum order so the result does not
        # depend on the iteration order of the requested set.
        seen: set = set()
        result: List[PolicyComponent[Any]] = []
        for cap in PolicyCapability:
            if cap not in requested:
                continue
            for c in self.by_capability[cap]:
                if id(c) in seen:
                    continue
                seen.add(id(c))
                result.append(c)
        return result

    def get_by_category(self, category: PolicyCategory) -> List[PolicyComponent[Any]]:
        return list(self.by_category.get(category, ()))

    def query(
        self,
        category: Optional[PolicyCategory] = None,
        capabilities: Optional[Iterable[PolicyCapability]] = None,
        match_all_capabilities: bool = False,
    ) -> List[PolicyComponent[Any]]:
        """
        Combined category + capability query.

        The category index narrows first (O(1) and usually more selective),
        then the any/all capability filter runs on the narrowed list. None or
        an empty capability set applies no capability filter.
        """

        if category is not None:
            result = list(self.by_category.get(category, ()))
        else:
            result = list(self.components)

        requested = frozenset(capabilities or ())
        if requested:
            if match_all_capabilities:
                result = [c for c in result if c.has_all_capabilities(requested)]
            else:
                result = [c for c in result if c.has_any_capability(requested)]

        return result

    def get_all_components(self) -> List[PolicyComponent[Any]]:
        return list(self.components)

    def __len__(self) -> int:
        return len(self.components)


class PolicyRegistry:
    """
    Authoritative, capability-indexed catalog of policy components.

    Concurrency
    - The component set and its indexes are published together as one
      immutable RegistrySnapshot. replace_all builds the new snapshot
      completely, then swaps a single reference.
    - Writers are serialized with a lock (last writer wins). Readers never
      lock; each read method loads the published snapshot exactly once, so
      one call never mixes two generations.

    Only handler calls (the async methods) suspend; every index lookup is
    synchronous.
    """

    def __init__(self, components: Optional[Iterable[PolicyComponent[Any]]] = None):
        self._write_lock = Lock()
        self._snapshot: RegistrySnapshot = RegistrySnapshot.empty()
        if components is not None:
            self.replace_all(components)

    # Mutation

    def replace_all(self, components: Iterable[PolicyComponent[Any]]) -> RegistrySnapshot:
        """
        Atomically replace the whole component set.

        Raises
        - DuplicatePolicyError: two distinct components share a policy_name.
          The previously published snapshot stays in place.
        - TypeError: a member is not a PolicyComponent.
        """

        materialized = list(components)
        with self._write_lock:
            generation = self._snapshot.generation + 1
            try:
                snapshot = RegistrySnapshot.build(materialized, generation=generation)
            except DuplicatePolicyError as e:
                log.warning("rejected component set: duplicate policy_name %r", e.policy_name)
                raise
            self._snapshot = snapshot

        log.info(
            "published registry snapshot",
            extra={"generation": snapshot.generation, "component_count": len(snapshot)},
        )
        return snapshot

    @property
    def components(self) -> Components:
        return self._snapshot.components

    @property
    def generation(self) -> int:
        return self._snapshot.generation

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    # Synchronous queries (delegate to one snapshot)

    def get_component(self, key: PolicyKey[Any]) -> Optional[PolicyComponent[Any]]:
        return self._snapshot.get_component(key)

    def get_component_by_name(self, policy_name: str) -> Optional[PolicyComponent[Any]]:
        return self._snapshot.get_component_by_name(policy_name)

    def get_handler(self, key: PolicyKey[Any]) -> Optional[PolicyHandler[Any]]:
        return self._snapshot.get_handler(key)

    def is_registered(self, key: PolicyKey[Any]) -> bool:
        return self._snapshot.is_registered(key)

    def get_by_capability(self, capability: PolicyCapability) -> List[PolicyComponent[Any]]:
        return self._snapshot.get_by_capability(capability)

    def get_by_capabilities(
        self, capabilities: Iterable[PolicyCapability], match_all: bool = False
    ) -> List[PolicyComponent[Any]]:
        return self._snapshot.get_by_capabilities(capabilities, match_all=match_all)

    def get_by_category(self, category: PolicyCategory) -> List[PolicyComponent[Any]]:
        return self._snapshot.get_by_category(category)

    def query(
        self,
        category: Optional[PolicyCategory] = None,
        capabilities: Optional[Iterable[PolicyCapability]] = None,
        match_all_capabilities: bool = False,
    ) -> List[PolicyComponent[Any]]:
        return self._snapshot.query(
            category=category,
            capabilities=capabilities,
            match_all_capabilities=match_all_capabilities,
        )

    def get_all_components(self) -> List[PolicyComponent[Any]]:
        return self._snapshot.get_all_components()

    # Handler-backed queries

    async def get_all_policies(self) -> List[Policy[Any]]:
        """Fetch the live state of every component (one handler call each)."""
        return await _collect_states(self._snapshot.components)

    async def get_policies(self, category: PolicyCategory) -> List[Policy[Any]]:
        return await _collect_states(self._snapshot.by_category.get(category, ()))

    async def get_policy_state(self, policy_name: str) -> Optional[Policy[Any]]:
        component = self._snapshot.get_component_by_name(policy_name)
        if component is None:
            return None
        state = await component.handler.get_state()
        return Policy(key=component.key, state=state)

    async def set_policy_state(self, key: PolicyKey[Any], new_state: PolicyState) -> ApiResult[None]:
        handler = self._snapshot.get_handler(key)
        if handler is None:
            return Error(api_error=ApiError.unexpected("Policy handler not found"))
        if not isinstance(new_state, key.state_type):
            raise TypeError(
                f"state {type(new_state).__name__} does not match {key.state_type.__name__}"
            )
        return await handler.set_state(new_state)


async def _collect_states(components: Iterable[PolicyComponent[Any]]) -> List[Policy[Any]]:
    policies: List[Policy[Any]] = []
    for component in components:
        state = await component.handler.get_state()
        policies.append(Policy(key=component.key, state=state))
    return policies
