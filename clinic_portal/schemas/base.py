from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from clinic_portal.exceptions import ValidationError


class CamelModel(BaseModel):
    """Wire records use camelCase keys; attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class FormModel(CamelModel):
    """Submitted form. Blank inputs count as not provided."""

    # (attribute, message) pairs checked before anything is sent
    REQUIRED: ClassVar[tuple[tuple[str, str], ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, values: Any) -> Any:
        if isinstance(values, dict):
            return {
                k: (None if isinstance(v, str) and not v.strip() else v)
                for k, v in values.items()
            }
        return values

    def validate_required(self) -> None:
        for name, message in self.REQUIRED:
            if getattr(self, name) in (None, ""):
                raise ValidationError(name, message)
