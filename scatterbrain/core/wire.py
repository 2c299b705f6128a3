"""Shared pydantic base for models exchanged in camelCase JSON."""

import logging
from functools import lru_cache
from typing import Any, get_args, get_origin

from pydantic import (
    BaseModel,
    ConfigDict,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    """camelCase on the wire (LLM output, HTTP bodies), snake_case in Python.

    Unknown keys are ignored so extra fields from the model never fail
    validation.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


@lru_cache(maxsize=None)
def _item_adapter(item_type: Any) -> TypeAdapter:
    return TypeAdapter(item_type)


def _flatten_text(value: dict[str, Any]) -> str:
    return " - ".join(
        str(v) for v in value.values() if isinstance(v, (str, int, float)) and str(v)
    )


class LenientWireModel(WireModel):
    """WireModel for parsed LLM output, where field types drift.

    Numbers are accepted as strings. In a list field, items that do not
    validate are dropped, except objects in a list of strings, which are
    flattened to text. Any other mistyped field takes its default.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def tolerate_drift(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return cls._repair(value, info.field_name)

    @classmethod
    def _repair(cls, value: Any, field_name: str) -> Any:
        field = cls.model_fields[field_name]
        if isinstance(value, list) and get_origin(field.annotation) is list:
            (item_type,) = get_args(field.annotation)
            adapter = _item_adapter(item_type)
            items = []
            for item in value:
                if item_type is str:
                    if isinstance(item, dict):
                        item = _flatten_text(item)
                    elif isinstance(item, (int, float)):
                        item = str(item)
                    if not item:
                        continue
                try:
                    items.append(adapter.validate_python(item))
                except ValidationError:
                    continue
            logger.debug(
                "Kept %d of %d items in %s.%s",
                len(items),
                len(value),
                cls.__name__,
                field_name,
            )
            return items

        logger.debug(
            "Reset mistyped %s.%s (%s) to default",
            cls.__name__,
            field_name,
            type(value).__name__,
        )
        return field.get_default(call_default_factory=True)
