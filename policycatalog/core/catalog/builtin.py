from __future__ import annotations

from typing import List, Sequence

from policycatalog.core.policy.capabilities import PolicyCapability as Cap
from policycatalog.core.policy.category import PolicyCategory
from policycatalog.core.policy.contracts import PolicyParameters
from policycatalog.core.policy.definition import PolicyContract, PreferenceTogglePolicy, policy_definition
from policycatalog.core.policy.options import ConfigurationOption, NumberInput
from policycatalog.core.policy.state import ConfigurablePolicyState
from policycatalog.core.usecase.result import ApiResult, Success

# Preference-backed sample policies. Useful for exercising the service and
# the CLI without a device; real deployments point POLICYCATALOG_CATALOG at
# their own module.


@policy_definition(
    title="Auto Call Pickup",
    description="Answer incoming calls automatically after a short delay.",
    capabilities=[Cap.MODIFIES_CALLING, Cap.REQUIRES_SIM],
)
class AutoCallPickupPolicy(PreferenceTogglePolicy):
    pass


@policy_definition(
    title="Wi-Fi Hotspot",
    description="Allow the device to share its connection over Wi-Fi.",
    capabilities=[Cap.MODIFIES_WIFI, Cap.MODIFIES_NETWORK, Cap.AFFECTS_CONNECTIVITY],
)
class WifiHotspotPolicy(PreferenceTogglePolicy):
    pass


@policy_definition(
    title="Bluetooth Tethering",
    description="Allow the device to share its connection over Bluetooth.",
    capabilities=[Cap.MODIFIES_BLUETOOTH, Cap.MODIFIES_NETWORK, Cap.AFFECTS_CONNECTIVITY],
)
class BluetoothTetheringPolicy(PreferenceTogglePolicy):
    pass


@policy_definition(
    title="Fast Charging",
    description="Charge at the highest rate the hardware supports.",
    capabilities=[Cap.MODIFIES_CHARGING, Cap.AFFECTS_BATTERY],
)
class FastChargingPolicy(PreferenceTogglePolicy):
    enabled_by_default = True


@policy_definition(
    title="USB Debugging",
    description="Expose the debug bridge over USB.",
    capabilities=[Cap.MODIFIES_HARDWARE, Cap.SECURITY_SENSITIVE, Cap.STIG],
)
class UsbDebuggingPolicy(PreferenceTogglePolicy):
    pass


@policy_definition(
    title="Screen Lock Timeout",
    description="Lock the screen after a period of inactivity.",
    category=PolicyCategory.CONFIGURABLE_TOGGLE,
    capabilities=[Cap.MODIFIES_DISPLAY, Cap.MODIFIES_SECURITY, Cap.STIG],
)
class ScreenLockTimeoutPolicy(PolicyContract[ConfigurablePolicyState]):
    """Enabled flag and timeout are stored under two preference keys."""

    DEFAULT_TIMEOUT_SECONDS = 60
    MIN_TIMEOUT_SECONDS = 15
    MAX_TIMEOUT_SECONDS = 1800

    @property
    def default_value(self) -> ConfigurablePolicyState:
        return ConfigurablePolicyState(
            is_enabled=False, options={"timeout_seconds": self.DEFAULT_TIMEOUT_SECONDS}
        )

    async def get_state(
        self, parameters: PolicyParameters = PolicyParameters.NONE
    ) -> ConfigurablePolicyState:
        prefs = self.context.preferences
        enabled = await prefs.get(f"{self.policy_name}.enabled", False)
        timeout = await prefs.get(f"{self.policy_name}.timeout_seconds", self.DEFAULT_TIMEOUT_SECONDS)
        return ConfigurablePolicyState(is_enabled=enabled, options={"timeout_seconds": timeout})

    async def set_state(self, new_state: ConfigurablePolicyState) -> ApiResult[None]:
        timeout = int(new_state.options.get("timeout_seconds", self.DEFAULT_TIMEOUT_SECONDS))
        if not self.MIN_TIMEOUT_SECONDS <= timeout <= self.MAX_TIMEOUT_SECONDS:
            raise ValueError(f"timeout_seconds out of range: {timeout}")
        prefs = self.context.preferences
        await prefs.set_value(f"{self.policy_name}.enabled", new_state.is_enabled)
        await prefs.set_value(f"{self.policy_name}.timeout_seconds", timeout)
        return Success()

    def ui_converter(self) -> "ScreenLockTimeoutUiConverter":
        return ScreenLockTimeoutUiConverter()


class ScreenLockTimeoutUiConverter:
    def from_ui_state(
        self, ui_enabled: bool, options: Sequence[ConfigurationOption]
    ) -> ConfigurablePolicyState:
        values = {o.key: o.value for o in options}
        return ConfigurablePolicyState(
            is_enabled=bool(ui_enabled),
            options={
                "timeout_seconds": int(
                    values.get("timeout_seconds", ScreenLockTimeoutPolicy.DEFAULT_TIMEOUT_SECONDS)
                )
            },
        )

    def get_configuration_options(self, state: ConfigurablePolicyState) -> List[ConfigurationOption]:
        return [
            NumberInput(
                key="timeout_seconds",
                label="Timeout (seconds)",
                number=int(state.options.get("timeout_seconds", ScreenLockTimeoutPolicy.DEFAULT_TIMEOUT_SECONDS)),
                minimum=ScreenLockTimeoutPolicy.MIN_TIMEOUT_SECONDS,
                maximum=ScreenLockTimeoutPolicy.MAX_TIMEOUT_SECONDS,
            )
        ]


BUILTIN_POLICIES = (
    AutoCallPickupPolicy,
    WifiHotspotPolicy,
    BluetoothTetheringPolicy,
    FastChargingPolicy,
    UsbDebuggingPolicy,
    ScreenLockTimeoutPolicy,
)
