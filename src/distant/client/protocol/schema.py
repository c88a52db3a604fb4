"""Message schemas checked with JSON Schema.

Schemas are declared with short primitive names and compiled once into a
Draft 7 validator when the schema is built, so calls only pay for the check.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator, validators

from distant.client.protocol.errors import ValidationError
from distant.client.protocol.messages import Message


def _is_mapping(checker, instance) -> bool:
    return isinstance(instance, Mapping)


def _is_list(checker, instance) -> bool:
    return isinstance(instance, (list, tuple))


def _is_bytes(checker, instance) -> bool:
    if isinstance(instance, (bytes, bytearray)):
        return True
    return isinstance(instance, (list, tuple)) and all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255
        for b in instance
    )


_TYPE_CHECKER = Draft7Validator.TYPE_CHECKER.redefine_many(
    {
        "object": _is_mapping,
        "array": _is_list,
        "bytes": _is_bytes,
    }
)

MessageValidator = validators.extend(Draft7Validator, type_checker=_TYPE_CHECKER)

# Declared name -> JSON Schema type
PRIMITIVE_TYPES = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "boolean": "boolean",
    "mapping": "object",
    "table": "object",
    "list": "array",
    "bytes": "bytes",
}


@dataclass(frozen=True)
class FieldSpec:
    """One declared field: accepted primitive type(s) and optionality."""

    types: tuple[str, ...]
    optional: bool = False

    @classmethod
    def parse(cls, spec: str | tuple | list | Mapping[str, Any] | "FieldSpec") -> "FieldSpec":
        """
        Build from a short declaration.

        Accepts ``"string"``, a tuple of names for a union, a
        ``{"type": ..., "optional": bool}`` mapping, or a ``FieldSpec``.

        Raises:
            ValueError: If a type name is unknown.
        """
        if isinstance(spec, FieldSpec):
            return spec

        optional = False
        if isinstance(spec, Mapping):
            optional = bool(spec.get("optional", False))
            spec = spec["type"]

        types = (spec,) if isinstance(spec, str) else tuple(spec)
        unknown = [t for t in types if t not in PRIMITIVE_TYPES]
        if unknown:
            raise ValueError(f"Unknown field type(s): {', '.join(unknown)}")
        return cls(types=types, optional=optional)

    def to_json_schema(self) -> dict[str, Any]:
        """Convert to a JSON Schema property."""
        json_types = [PRIMITIVE_TYPES[t] for t in self.types]
        if self.optional:
            json_types.append("null")
        return {"type": json_types[0] if len(json_types) == 1 else json_types}


def optional(type_: str | tuple[str, ...]) -> FieldSpec:
    """Declare an optional field."""
    return FieldSpec.parse({"type": type_, "optional": True})


@dataclass(frozen=True)
class MessageSchema:
    """
    Compiled schema for the fields of one message kind.

    ``type`` pins the message tag for request schemas; response schemas
    leave it unset and only check fields.
    """

    fields: Mapping[str, FieldSpec]
    type: str | None = None
    _validator: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        fields: Mapping[str, Any] | None = None,
        type: str | None = None,
    ) -> "MessageSchema":
        """
        Compile a schema from short field declarations.

        Args:
            fields: Field name -> declaration (see ``FieldSpec.parse``).
            type: Required message tag, if any.
        """
        specs = {name: FieldSpec.parse(spec) for name, spec in (fields or {}).items()}
        json_schema = {
            "type": "object",
            "properties": {name: spec.to_json_schema() for name, spec in specs.items()},
            "required": sorted(name for name, spec in specs.items() if not spec.optional),
        }
        return cls(fields=specs, type=type, _validator=MessageValidator(json_schema))

    def validate_data(self, data: Any) -> Any:
        """
        Check a field mapping against this schema.

        Returns:
            The data unchanged.

        Raises:
            ValidationError: On the first failing field.
        """
        if not isinstance(data, Mapping):
            raise ValidationError.invalid_field(
                "data", f"expected a mapping, got {type(data).__name__}"
            )

        errors = sorted(
            self._validator.iter_errors(data),
            key=lambda e: str(e.path[0]) if e.path else "",
        )
        if errors:
            error = errors[0]
            if error.validator == "required":
                name = next(n for n in error.validator_value if n not in data)
            elif error.path:
                name = str(error.path[0])
            else:
                name = "data"
            raise ValidationError.invalid_field(name, error.message)
        return data

    def validate(self, message: Message) -> Message:
        """
        Check a message's fields and tag.

        Raises:
            ValidationError: If a field is missing or mistyped, or the tag
                does not match this schema's tag.
        """
        self.validate_data(message.data)
        if self.type is not None and message.type != self.type:
            raise ValidationError.type_mismatch(self.type, message.type)
        return message


def validate_message(message: Message, schema: MessageSchema) -> Message:
    """Validate ``message`` against ``schema``; see ``MessageSchema.validate``."""
    return schema.validate(message)
