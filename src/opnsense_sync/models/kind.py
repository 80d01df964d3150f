"""Resource kind descriptors — field specs, endpoints, activation subsystem."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldType(str, Enum):
    """Native type of a field and, implicitly, its wire encoding."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    LIST = "list"
    OPTION_MAP = "option_map"


class FieldSpec(BaseModel):
    """One attribute of a resource kind."""

    model_config = ConfigDict(frozen=True)

    name: str
    wire_key: str = ""
    type: FieldType = FieldType.STRING
    required: bool = False
    sensitive: bool = False
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_wire_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("wire_key"):
            data = {**data, "wire_key": data.get("name")}
        return data


class Subsystem(BaseModel):
    """An appliance service whose runtime must be reconfigured after changes."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str = Field(description="Reconfigure/apply path, e.g. /firewall/alias/reconfigure")


class Endpoints(BaseModel):
    """Action names for the add/get/set/delete endpoints of a controller."""

    model_config = ConfigDict(frozen=True)

    add: str
    get: str
    set: str
    delete: str

    @classmethod
    def camel(cls, noun: str = "Item") -> Endpoints:
        """``addItem``/``getItem``/``setItem``/``delItem`` style."""
        return cls(add=f"add{noun}", get=f"get{noun}", set=f"set{noun}", delete=f"del{noun}")

    @classmethod
    def snake(cls, noun: str) -> Endpoints:
        """``add_rule``/``get_rule``/``set_rule``/``del_rule`` style."""
        return cls(add=f"add_{noun}", get=f"get_{noun}", set=f"set_{noun}", delete=f"del_{noun}")


class ResourceKind(BaseModel):
    """Static descriptor of one appliance resource type.

    Paths follow ``/{module}/{controller}/{action}[/{identity}]`` below the
    API base.  Request and response bodies wrap the fields in a single-key
    envelope named ``envelope``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    module: str
    controller: str
    envelope: str
    endpoints: Endpoints
    fields: tuple[FieldSpec, ...]
    subsystem: Subsystem | None = None
    description: str | None = None

    @model_validator(mode="after")
    def unique_keys(self) -> ResourceKind:
        for attr in ("name", "wire_key"):
            seen: set[str] = set()
            for spec in self.fields:
                value = getattr(spec, attr)
                if value in seen:
                    raise ValueError(
                        f"Duplicate field {attr} '{value}' in kind '{self.name}'"
                    )
                seen.add(value)
        return self

    def path(self, action: str, identity: str | None = None) -> str:
        path = f"/{self.module}/{self.controller}/{action}"
        if identity:
            path += f"/{identity}"
        return path

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    @property
    def required_fields(self) -> list[str]:
        return [spec.name for spec in self.fields if spec.required]
