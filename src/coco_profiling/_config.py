"""Profiling configuration.

Components take their settings as explicit constructor arguments.
``ProfilingConfig`` bundles them so one object can be built once (for
example from environment variables) and handed to each component.
"""

import os
from pathlib import Path

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from coco_profiling._errors import PreconditionPolicy
from coco_profiling._units import DurationUnit

# Field name -> environment variable suffix
_ENV_FIELDS = {
    "unit": "UNIT",
    "policy": "POLICY",
    "print_on_stop": "PRINT_ON_STOP",
    "profiling_enabled": "NO_PROFILE",
    "trace_path": "TRACE_PATH",
}

_FLAG = TypeAdapter(bool)


class ProfilingConfig(BaseModel):
    """Settings shared by registries and instrumentors.

    Attributes:
        unit: Duration unit for timers, reports and trace timestamps
        policy: Reaction to registry precondition violations
        print_on_stop: Whether registry timers log their time when stopped
        profiling_enabled: False turns profile scopes/decorators into no-ops
        trace_path: Default output path for trace sessions
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit: DurationUnit = Field(
        default=DurationUnit.MICROSECONDS,
        description="Duration unit (label or member name when given as text)",
    )
    policy: PreconditionPolicy = Field(
        default=PreconditionPolicy.RAISE,
        description="'raise' or 'ignore'",
    )
    print_on_stop: bool = False
    profiling_enabled: bool = True
    trace_path: Path = Path("results.json")

    @field_validator("unit", mode="before")
    @classmethod
    def parse_unit(cls, v: object) -> object:
        if isinstance(v, str):
            return DurationUnit.parse(v)
        return v

    @field_validator("policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    @beartype
    def from_environment(cls, prefix: str = "COCO_") -> "ProfilingConfig":
        """Load configuration from environment variables.

        Recognized variables (with the default prefix): COCO_UNIT,
        COCO_POLICY, COCO_PRINT_ON_STOP, COCO_NO_PROFILE, COCO_TRACE_PATH.
        Unset variables keep the model defaults.

        Raises:
            ValueError: a variable holds a value that cannot be parsed.
        """
        config_data: dict[str, object] = {}
        for field, suffix in _ENV_FIELDS.items():
            if value := os.environ.get(f"{prefix}{suffix}"):
                config_data[field] = value

        if no_profile := config_data.get("profiling_enabled"):
            try:
                config_data["profiling_enabled"] = not _FLAG.validate_python(no_profile)
            except ValidationError:
                raise ValueError(
                    f"{prefix}NO_PROFILE must be a boolean flag, got: {no_profile!r}"
                ) from None

        try:
            return cls.model_validate(config_data)
        except ValidationError as exc:
            error = exc.errors()[0]
            var_name = f"{prefix}{_ENV_FIELDS[str(error['loc'][0])]}"
            raise ValueError(
                f"{var_name} is invalid ({error['msg']}), "
                f"got: {config_data[str(error['loc'][0])]!r}"
            ) from exc
