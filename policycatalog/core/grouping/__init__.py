from .capability_strategy import (
    DEFAULT_CAPABILITY_GROUPS,
    DEFAULT_OTHER_GROUP,
    OTHER_GROUP_ID,
    CapabilityBasedGroupingStrategy,
)
from .configurable_strategy import (
    ConfigurableGroupingStrategy,
    GroupingConfiguration,
    GroupingConfigurationBuilder,
)
from .grouping_pack import (
    dump_grouping_configuration,
    load_grouping_configuration,
    parse_grouping_document,
)
from .groups import PolicyGroup, ResolvedPolicyGroup
from .strategy import PolicyGroupingStrategy

__all__ = [
    "PolicyGroup",
    "ResolvedPolicyGroup",
    "PolicyGroupingStrategy",
    "CapabilityBasedGroupingStrategy",
    "DEFAULT_CAPABILITY_GROUPS",
    "DEFAULT_OTHER_GROUP",
    "OTHER_GROUP_ID",
    "ConfigurableGroupingStrategy",
    "GroupingConfiguration",
    "GroupingConfigurationBuilder",
    "load_grouping_configuration",
    "parse_grouping_document",
    "dump_grouping_configuration",
]
