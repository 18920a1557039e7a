from typing import ClassVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Models exchanged with the browser client use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialUpdate(CamelModel):
    """Partial update where an omitted field means "keep the stored value".

    An explicit null is only accepted for fields listed in ``nullable_fields``;
    for anything else it would overwrite a required value with nothing.
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null_for_required_fields(self) -> "PartialUpdate":
        cleared = sorted(
            name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self
