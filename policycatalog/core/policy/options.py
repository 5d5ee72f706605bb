from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple, TypeVar

from .state import BooleanPolicyState, PolicyState

T = TypeVar("T", bound=PolicyState)


@dataclass(frozen=True)
class ConfigurationOption:
    """One editable field of a configurable policy, as a UI would render it."""

    key: str
    label: str

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ValueError("option key must be a non-empty string")

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def value(self) -> Any:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "key": self.key, "label": self.label, "value": self.value}


@dataclass(frozen=True)
class Toggle(ConfigurationOption):
    is_enabled: bool = False

    @property
    def value(self) -> Any:
        return self.is_enabled


@dataclass(frozen=True)
class Choice(ConfigurationOption):
    selected: str = ""
    options: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "options", tuple(self.options))
        if self.options and self.selected not in self.options:
            raise ValueError(f"selected {self.selected!r} is not one of the options")

    @property
    def value(self) -> Any:
        return self.selected

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["options"] = list(self.options)
        return payload


@dataclass(frozen=True)
class NumberInput(ConfigurationOption):
    number: int = 0
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.minimum is not None and self.number < self.minimum:
            raise ValueError(f"{self.key}: {self.number} is below {self.minimum}")
        if self.maximum is not None and self.number > self.maximum:
            raise ValueError(f"{self.key}: {self.number} is above {self.maximum}")

    @property
    def value(self) -> Any:
        return self.number


@dataclass(frozen=True)
class TextInput(ConfigurationOption):
    text: str = ""
    hint: Optional[str] = None
    max_length: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.max_length is not None and len(self.text) > self.max_length:
            raise ValueError(f"{self.key}: text longer than {self.max_length}")

    @property
    def value(self) -> Any:
        return self.text


@dataclass(frozen=True)
class TextList(ConfigurationOption):
    values: FrozenSet[str] = frozenset()
    hint: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "values", frozenset(self.values))

    @property
    def value(self) -> Any:
        return sorted(self.values)


class PolicyUiConverter(Protocol[T]):
    """Translate between a policy state and its UI representation."""

    def from_ui_state(self, ui_enabled: bool, options: Sequence[ConfigurationOption]) -> T:
        ...

    def get_configuration_options(self, state: T) -> List[ConfigurationOption]:
        ...


class BooleanUiConverter:
    """Converter for plain toggles: no options, enabled flag only."""

    def from_ui_state(
        self, ui_enabled: bool, options: Sequence[ConfigurationOption]
    ) -> BooleanPolicyState:
        return BooleanPolicyState(is_enabled=bool(ui_enabled))

    def get_configuration_options(self, state: BooleanPolicyState) -> List[ConfigurationOption]:
        return []
