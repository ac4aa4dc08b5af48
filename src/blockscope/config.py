"""Configuration base class with JSON/YAML serialization support."""

import json
import logging
from dataclasses import asdict, dataclass, field, fields, is_dataclass, MISSING
from enum import Enum
from typing import get_origin, get_args

import yaml

from blockscope.types import (
    BandwidthLimit,
    BlockRequest,
    CaptureMode,
    Channel,
    ChannelConfig,
    Coupling,
    ThresholdDirection,
    TriggerConfig,
    VoltageRange,
)

logger = logging.getLogger(__name__)


def _coerce_enum(enum_type: type, value):
    """Look up an enum member by name first, then by value."""
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str) and value in enum_type.__members__:
        return enum_type[value]
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(enum_type.__members__)
        raise ValueError(
            f"Invalid {enum_type.__name__}: {value!r}. Choose one of: {choices}"
        )


def _to_serializable(value):
    """Replace enum members by their names, recursively."""
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, dict):
        return {k: _to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_serializable(v) for v in value]
    return value


@dataclass
class Config:
    """Base class for dataclass configuration files.

    This class provides methods to load and save configuration data from/to JSON or YAML files.
    Enum fields are written as member names and read back from names or values.

    Methods:
        from_file(filename: str) -> Config:
            Create an instance of the class from a JSON or YAML file.
        export(filename: str):
            Convert the data class to either a JSON or YAML string and export it to a file.
        to_dict() -> dict:
            Convert the data class to a plain dictionary.

    """

    def __str__(self):
        msg = "{}\n\r".format(type(self))
        for attrname in vars(self):
            value = getattr(self, attrname)
            msg += "  {}: {}\n".format(attrname, value)
        return msg

    @classmethod
    def from_file(cls, filename: str):
        """
        Create an instance of the class from a JSON or YAML file.
        The type of file is determined by the file extension.

        If the file extension is not .yaml, .yml, or .json, a ValueError is raised.

        Parameters
        ----------
        filename : str
            Name of the file path to read the data from.

        Returns
        -------
        Config
            An instance of the class with the data loaded from the file.

        """
        filename = str(filename)
        if (
            not filename.endswith(".yaml")
            and not filename.endswith(".yml")
            and not filename.endswith(".json")
        ):
            raise ValueError("Filename must end with .yaml, .yml, or .json")
        if filename.endswith(".json"):
            with open(filename, "r") as file:
                data = json.load(file)
        else:
            with open(filename, "r") as file:
                data = yaml.safe_load(file) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict):
        """
        Recursively convert a dictionary to a dataclass instance,
        handling nested dataclasses, lists of dataclasses and enums.

        Parameters
        ----------
        data : dict
            Dictionary containing the configuration data.

        Returns
        -------
        Config
            An instance of the class with nested dataclasses properly instantiated.
        """
        if not isinstance(data, dict):
            return data

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.warning(
                "Ignoring unknown %s fields: %s", cls.__name__, sorted(unknown)
            )

        field_values = {}
        for field_info in fields(cls):
            field_name = field_info.name
            field_type = field_info.type

            # Handle missing fields
            if field_name not in data:
                if field_info.default is not MISSING:
                    field_values[field_name] = field_info.default
                    logger.info(
                        f"Field '{field_name}' not present in config file, using default value: {field_info.default}"
                    )
                elif field_info.default_factory is not MISSING:
                    field_values[field_name] = field_info.default_factory()
                    logger.info(
                        f"Field '{field_name}' not present in config file, using default factory value"
                    )
                else:
                    raise ValueError(f"Missing required field: {field_name}")
                continue

            field_value = data[field_name]

            if (
                get_origin(field_type) is None
                and isinstance(field_type, type)
                and issubclass(field_type, Enum)
            ):
                field_values[field_name] = _coerce_enum(field_type, field_value)
            # Handle nested dataclasses
            elif is_dataclass(field_type):
                if isinstance(field_value, dict):
                    field_values[field_name] = field_type.from_dict(field_value)
                else:
                    field_values[field_name] = field_value
            # Handle lists of dataclasses
            elif get_origin(field_type) is list:
                args = get_args(field_type)
                if args and is_dataclass(args[0]):
                    item_type = args[0]
                    if isinstance(field_value, list):
                        field_values[field_name] = [
                            (
                                item_type.from_dict(item)
                                if isinstance(item, dict)
                                else item
                            )
                            for item in field_value
                        ]
                    else:
                        field_values[field_name] = field_value
                else:
                    field_values[field_name] = field_value
            else:
                field_values[field_name] = field_value

        return cls(**field_values)

    def export(self, filename):
        """
        Convert the data class to either a JSON or YAML string and export it to a file.
        The type of file is determined by the file extension.
        If the file extension is not .yaml, .yml, or .json, a ValueError is raised.

        Parameters
        ----------
        filename : str
            Name of the file path to save the either JSON or YAML data.

        """
        filename = str(filename)
        if (
            not filename.endswith(".yaml")
            and not filename.endswith(".yml")
            and not filename.endswith(".json")
        ):
            raise ValueError("Filename must end with .yaml, .yml, or .json")
        try:
            with open(filename, "w") as file:
                if filename.endswith(".json"):
                    json.dump(self.to_dict(), file, indent=4)
                else:
                    yaml.safe_dump(self.to_dict(), file, default_flow_style=False)
        except (IOError, OSError) as e:
            raise RuntimeError(f"Failed to write to {filename}: {e}")

    def to_dict(self) -> dict:
        """
        Convert the data class to a dictionary of plain values.

        Returns
        -------
        dict
            A dictionary representation of the data class.

        """
        return _to_serializable(asdict(self))


@dataclass
class ModelProfile(Config):
    """Channel and trigger defaults for one instrument model.

    Attributes:
        model: Model identifier as reported by the device.
        voltage_range: Input range of the captured channel.
        coupling: Input coupling of the captured channel.
        threshold_mv: Trigger threshold.
        display_limit_mv: Symmetric y-axis limit for trace plots.
    """

    model: str = "default"
    voltage_range: VoltageRange = VoltageRange.R_5V
    coupling: Coupling = Coupling.DC_1M
    threshold_mv: float = 500.0
    display_limit_mv: float = 2000.0
    bandwidth_limit: BandwidthLimit = BandwidthLimit.FULL
    analogue_offset: float = 0.0

    def __post_init__(self):
        # YAML reads an unquoted model number as an int
        self.model = str(self.model)


def _default_model_profiles() -> list:
    return [
        ModelProfile(
            model="6407",
            voltage_range=VoltageRange.R_100MV,
            coupling=Coupling.DC_50R,
            threshold_mv=50.0,
            display_limit_mv=100.0,
        )
    ]


@dataclass
class DriverConfig(Config):
    driver_type: str = "mock"
    serial: str | None = None
    parameters: dict = field(default_factory=dict)

    def to_instrument_config(self) -> dict:
        return {
            "driver_type": self.driver_type,
            "serial": self.serial,
            "parameters": dict(self.parameters),
        }


@dataclass
class TimebaseSettings(Config):
    initial_index: int = 161
    segment_index: int = 0
    max_probes: int | None = 1000


@dataclass
class TriggerSettings(Config):
    direction: ThresholdDirection = ThresholdDirection.RISING
    auto_trigger_ms: int = 1000
    delay_samples: int = 0


@dataclass
class BlockSettings(Config):
    pre_trigger_samples: int = 500_000
    post_trigger_samples: int = 500_000
    segment_index: int = 0


@dataclass
class CaptureSettings(Config):
    mode: CaptureMode = CaptureMode.BLOCKING
    poll_interval: float = 0.01
    ready_timeout: float | None = None


@dataclass
class AcquisitionConfig(Config):
    """Everything needed to run one block capture with FFT.

    Attributes:
        driver: Which digitizer driver to use and how to reach it.
        channel: The channel to capture. All other channels are switched off.
        timebase: Timebase search settings.
        trigger: Simple trigger settings. The threshold comes from the
            model profile.
        block: Pre/post-trigger partition.
        capture: Blocking or polling wait.
        model_profiles: Per-model channel and trigger defaults.
        default_profile: Profile for models without an entry.
        spectrum_fraction: Fraction of the spectrum to display.
    """

    driver: DriverConfig = field(default_factory=DriverConfig)
    channel: Channel = Channel.A
    timebase: TimebaseSettings = field(default_factory=TimebaseSettings)
    trigger: TriggerSettings = field(default_factory=TriggerSettings)
    block: BlockSettings = field(default_factory=BlockSettings)
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    model_profiles: list[ModelProfile] = field(default_factory=_default_model_profiles)
    default_profile: ModelProfile = field(default_factory=ModelProfile)
    spectrum_fraction: float = 0.001

    def __post_init__(self):
        if not 0 < self.spectrum_fraction <= 1:
            raise ValueError(
                f"spectrum_fraction must be in (0, 1], got {self.spectrum_fraction}"
            )

    def profile_for(self, model: str) -> ModelProfile:
        """Return the profile registered for ``model``, or the default one."""
        key = str(model).strip().upper()
        for profile in self.model_profiles:
            if profile.model.strip().upper() == key:
                return profile
        logger.debug("No profile for model %r, using default", model)
        return self.default_profile

    def channel_configs(self, profile: ModelProfile) -> list[ChannelConfig]:
        """Enable the captured channel with the profile settings, disable the rest."""
        return [
            ChannelConfig(
                channel=channel,
                enabled=channel == self.channel,
                coupling=profile.coupling,
                voltage_range=profile.voltage_range,
                analogue_offset=profile.analogue_offset if channel == self.channel else 0.0,
                bandwidth_limit=profile.bandwidth_limit,
            )
            for channel in Channel
        ]

    def trigger_config(self, profile: ModelProfile) -> TriggerConfig:
        return TriggerConfig(
            channel=self.channel,
            threshold_mv=profile.threshold_mv,
            direction=self.trigger.direction,
            auto_trigger_ms=self.trigger.auto_trigger_ms,
            delay_samples=self.trigger.delay_samples,
        )

    def block_request(self) -> BlockRequest:
        return BlockRequest(
            pre_trigger_samples=self.block.pre_trigger_samples,
            post_trigger_samples=self.block.post_trigger_samples,
            segment_index=self.block.segment_index,
        )
