class PolicyError(Exception):
    """
    Base exception for all policy catalog failures.
    """

    pass


class PolicyConfigurationError(PolicyError):
    """
    Raised when policies or their registration are misconfigured.
    """

    pass


class DuplicatePolicyError(PolicyConfigurationError):
    """
    Raised when two distinct components share a policy_name within one
    registry replacement.
    """

    def __init__(self, policy_name: str):
        super().__init__(f"Duplicate policy_name: {policy_name}")
        self.policy_name = policy_name


class GroupingConfigurationError(PolicyConfigurationError):
    """
    Raised when a grouping configuration document is invalid.
    """

    pass
