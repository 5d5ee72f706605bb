from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query

from policycatalog.api.middleware import AccessLogMiddleware, RequestIdMiddleware
from policycatalog.api.models import (
    ApiError,
    CapabilityOut,
    GroupOut,
    HealthOut,
    PolicyDetailOut,
    PolicyOut,
    PolicyStateOut,
    SetPolicyStateIn,
)
from policycatalog.core.catalog import BUILTIN_CATALOG, load_catalog
from policycatalog.core.grouping import (
    CapabilityBasedGroupingStrategy,
    ConfigurableGroupingStrategy,
    PolicyGroupingStrategy,
    load_grouping_configuration,
)
from policycatalog.core.policy.capabilities import PolicyCapability, parse_capability
from policycatalog.core.policy.category import parse_category
from policycatalog.core.policy.context import HandlerContext
from policycatalog.core.policy.contracts import PolicyComponent
from policycatalog.core.policy.state import PolicyState
from policycatalog.core.registry.policy_registry import PolicyRegistry
from policycatalog.core.usecase.policy_usecases import GetPolicyStateUseCase, SetPolicyEnabledUseCase
from policycatalog.core.usecase.result import ApiErrorKind, ApiResult, Error, NotSupported

log = logging.getLogger("policycatalog.api")

_ERROR_STATUS = {
    ApiErrorKind.NOT_FOUND: 404,
    ApiErrorKind.PERMISSION: 403,
    ApiErrorKind.UNEXPECTED: 500,
}


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the API service.

    - catalog: "module:attribute" reference for the component source.
    - grouping_path: optional YAML/JSON grouping document; when absent the
      capability-based default grouping is used.
    """

    catalog: str = BUILTIN_CATALOG
    grouping_path: Optional[Path] = None
    log_level: str = "INFO"


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a string environment variable; blank counts as unset.

    Env vars are treated as trusted server configuration.
    """

    raw = os.environ.get(name, "").strip()
    return raw or default


def config_from_env() -> ServiceConfig:
    grouping = _env_str("POLICYCATALOG_GROUPING")
    return ServiceConfig(
        catalog=_env_str("POLICYCATALOG_CATALOG", BUILTIN_CATALOG),
        grouping_path=Path(grouping) if grouping else None,
        log_level=(_env_str("POLICYCATALOG_LOG_LEVEL", "INFO") or "INFO").upper(),
    )


def build_strategy(grouping_path: Optional[Path]) -> PolicyGroupingStrategy:
    if grouping_path is None:
        return CapabilityBasedGroupingStrategy()
    return ConfigurableGroupingStrategy(load_grouping_configuration(grouping_path))


def _policy_out(component: PolicyComponent[Any]) -> PolicyOut:
    return PolicyOut(**component.to_dict())


def _state_out(state: PolicyState) -> PolicyStateOut:
    return PolicyStateOut(**state.to_dict())


def _raise_for_result(result: ApiResult[Any]) -> None:
    """Map a non-success result to an HTTPException."""

    if isinstance(result, NotSupported):
        raise HTTPException(
            status_code=501, detail=ApiError(error="not_supported", detail=result.reason or None).model_dump()
        )
    if isinstance(result, Error):
        err = result.api_error
        raise HTTPException(
            status_code=_ERROR_STATUS.get(err.kind, 500),
            detail=ApiError(error=err.kind.value.lower(), detail=err.message).model_dump(),
        )


def create_app(
    *,
    registry: Optional[PolicyRegistry] = None,
    strategy: Optional[PolicyGroupingStrategy] = None,
    context: Optional[HandlerContext] = None,
    config: Optional[ServiceConfig] = None,
) -> FastAPI:
    """Create the FastAPI app.

    Anything not passed in is built from config (or the environment): the
    registry is loaded from config.catalog with the given context, the
    strategy from config.grouping_path.
    """

    cfg = config or config_from_env()
    ctx = context or HandlerContext()

    log.setLevel(cfg.log_level)

    if registry is None:
        registry = PolicyRegistry(load_catalog(cfg.catalog, ctx))
    if strategy is None:
        strategy = build_strategy(cfg.grouping_path)

    app = FastAPI(title="Policy Catalog API", version="0.1")

    app.state.cfg = cfg
    app.state.registry = registry
    app.state.strategy = strategy
    app.state.context = ctx

    # Request correlation + basic access logs.
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    def _component_or_404(policy_name: str) -> PolicyComponent[Any]:
        component = registry.get_component_by_name(policy_name)
        if component is None:
            raise HTTPException(status_code=404, detail="policy_not_found")
        return component

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        snap = registry.snapshot()
        return HealthOut(
            generation=snap.generation,
            policy_count=len(snap),
            grouping=type(strategy).__name__,
        )

    @app.get("/capabilities", response_model=List[CapabilityOut])
    def list_capabilities() -> List[CapabilityOut]:
        snap = registry.snapshot()
        return [
            CapabilityOut(name=cap.value, kind=cap.kind.value, policy_count=len(snap.by_capability[cap]))
            for cap in PolicyCapability
        ]

    @app.get("/policies", response_model=List[PolicyOut])
    def list_policies(
        category: Optional[str] = None,
        capability: Optional[List[str]] = Query(default=None),
        match_all: bool = False,
    ) -> List[PolicyOut]:
        """List registered policies.

        Filters
        - category: TOGGLE / CONFIGURABLE_TOGGLE
        - capability: repeatable; any-of by default, all-of with match_all
        """

        try:
            cat = parse_category(category) if category else None
            caps = [parse_capability(c) for c in (capability or [])]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        components = registry.query(category=cat, capabilities=caps, match_all_capabilities=match_all)
        return [_policy_out(c) for c in components]

    @app.get("/policies/{policy_name}", response_model=PolicyDetailOut)
    async def get_policy(policy_name: str) -> PolicyDetailOut:
        component = _component_or_404(policy_name)

        use_case = GetPolicyStateUseCase(registry, dispatcher=ctx.dispatchers.io)
        result = await use_case(component.key)
        _raise_for_result(result)

        state: PolicyState = result.value
        options: List[Dict[str, Any]] = []
        if component.ui_converter is not None:
            options = [o.to_dict() for o in component.ui_converter.get_configuration_options(state)]

        return PolicyDetailOut(
            policy=_policy_out(component),
            state=_state_out(state),
            configuration_options=options,
        )

    @app.put("/policies/{policy_name}/state", response_model=PolicyStateOut)
    async def set_policy_state(policy_name: str, body: SetPolicyStateIn) -> PolicyStateOut:
        component = _component_or_404(policy_name)

        use_case = SetPolicyEnabledUseCase(registry, dispatcher=ctx.dispatchers.io)
        result = await use_case(SetPolicyEnabledUseCase.Params(key=component.key, enabled=body.enabled))
        _raise_for_result(result)

        log.info(
            "policy_state_changed",
            extra={"policy_name": policy_name, "enabled": body.enabled},
        )
        return _state_out(result.value)

    @app.get("/groups", response_model=List[GroupOut])
    def list_groups(include_empty: bool = False) -> List[GroupOut]:
        resolved = strategy.resolve_all_groups(registry, include_empty=include_empty)
        return [GroupOut(**r.group.to_dict(), policies=list(r.policy_names)) for r in resolved]

    return app


def app_from_env() -> FastAPI:
    """Factory used by Uvicorn entrypoints.

    Reads:
    - POLICYCATALOG_CATALOG: "module:attribute" catalog reference
    - POLICYCATALOG_GROUPING: optional grouping document path
    - POLICYCATALOG_LOG_LEVEL
    """

    return create_app(config=config_from_env())
