from .capabilities import CapabilityKind, PolicyCapability, parse_capabilities, parse_capability
from .category import PolicyCategory, parse_category
from .context import HandlerContext
from .contracts import Policy, PolicyComponent, PolicyHandler, PolicyKey, PolicyParameters, make_component
from .definition import (
    PolicyContract,
    PolicyDefinition,
    PreferenceTogglePolicy,
    build_component,
    build_components,
    get_policy_definition,
    policy_definition,
    policy_name_for,
)
from .exceptions import (
    DuplicatePolicyError,
    GroupingConfigurationError,
    PolicyConfigurationError,
    PolicyError,
)
from .options import (
    BooleanUiConverter,
    Choice,
    ConfigurationOption,
    NumberInput,
    PolicyUiConverter,
    TextInput,
    TextList,
    Toggle,
)
from .state import BooleanPolicyState, ConfigurablePolicyState, PolicyState

__all__ = [
    "CapabilityKind",
    "PolicyCapability",
    "parse_capability",
    "parse_capabilities",
    "PolicyCategory",
    "parse_category",
    "PolicyState",
    "BooleanPolicyState",
    "ConfigurablePolicyState",
    "PolicyParameters",
    "PolicyKey",
    "PolicyHandler",
    "PolicyComponent",
    "Policy",
    "make_component",
    "HandlerContext",
    "PolicyContract",
    "PolicyDefinition",
    "PreferenceTogglePolicy",
    "policy_definition",
    "policy_name_for",
    "get_policy_definition",
    "build_component",
    "build_components",
    "ConfigurationOption",
    "Toggle",
    "Choice",
    "NumberInput",
    "TextInput",
    "TextList",
    "PolicyUiConverter",
    "BooleanUiConverter",
    "PolicyError",
    "PolicyConfigurationError",
    "DuplicatePolicyError",
    "GroupingConfigurationError",
]
