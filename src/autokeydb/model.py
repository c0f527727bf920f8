from __future__ import annotations

import types
from collections.abc import Mapping, Sequence
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any, Protocol, Union, cast, get_args, get_origin, get_type_hints, overload

KEY_ROLES = ("pk", "sk")
_OPTIONAL_STR = {"str", "str|None", "None|str", "Optional[str]"}


class ModelDefinitionError(ValueError):
    pass


def unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def resolve_field_types(model_type: type[Any]) -> dict[str, Any]:
    # Hints naming classes local to a function cannot be resolved; keep the raw strings then.
    try:
        return get_type_hints(model_type)
    except (NameError, TypeError):
        return dict(getattr(model_type, "__annotations__", {}))


def _is_str_annotation(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.replace(" ", "") in _OPTIONAL_STR
    return unwrap_optional(annotation) is str


class AttributeConverter(Protocol):
    def to_dynamodb(self, value: Any) -> Any: ...

    def from_dynamodb(self, value: Any) -> Any: ...


@dataclass(frozen=True)
class AttributeDefinition:
    python_name: str
    attribute_name: str
    roles: tuple[str, ...]
    auto_generated: bool
    omitempty: bool
    converter: AttributeConverter | None = None

    @property
    def is_key(self) -> bool:
        return any(role in KEY_ROLES for role in self.roles)


@overload
def autokey_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    auto_generated: bool = False,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
) -> Any: ...


@overload
def autokey_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    auto_generated: bool = False,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default: Any,
) -> Any: ...


@overload
def autokey_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    auto_generated: bool = False,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default_factory: Any,
) -> Any: ...


def autokey_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    auto_generated: bool = False,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Declare a mapped dataclass field.

    Auto-generated fields default to ``None`` so records can be built without
    them; the table assigns a value on save.
    """
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("autokey_field: cannot set both default and default_factory")

    if auto_generated and default is MISSING and default_factory is MISSING:
        default = None

    opts: dict[str, Any] = {
        "auto_generated": auto_generated,
        "omitempty": omitempty,
        "converter": converter,
        "ignore": ignore,
    }
    if name is not None:
        opts["name"] = name
    if roles is not None:
        opts["roles"] = list(roles)

    return field(default=default, default_factory=default_factory, metadata={"autokeydb": opts})


@dataclass(frozen=True)
class ModelDefinition[T]:
    model_type: type[T]
    table_name: str | None
    pk: AttributeDefinition
    sk: AttributeDefinition | None
    attributes: Mapping[str, AttributeDefinition]
    field_types: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key_attributes(self) -> tuple[AttributeDefinition, ...]:
        if self.sk is None:
            return (self.pk,)
        return (self.pk, self.sk)

    @property
    def generated_attributes(self) -> tuple[AttributeDefinition, ...]:
        return tuple(attr for attr in self.key_attributes if attr.auto_generated)

    def attribute_by_name(self, attribute_name: str) -> AttributeDefinition | None:
        for attr in self.attributes.values():
            if attr.attribute_name == attribute_name:
                return attr
        return None

    @classmethod
    def from_dataclass(
        cls,
        model_type: type[T],
        *,
        table_name: str | None = None,
    ) -> ModelDefinition[T]:
        if not is_dataclass(model_type):
            raise ModelDefinitionError("model_type must be a dataclass")

        attributes: dict[str, AttributeDefinition] = {}
        pk_fields: list[str] = []
        sk_fields: list[str] = []
        seen_names: set[str] = set()
        field_types = resolve_field_types(model_type)

        for dc_field in fields(model_type):
            opts = cast(dict[str, Any], dc_field.metadata.get("autokeydb", {}))
            if bool(opts.get("ignore", False)):
                continue

            roles = tuple(cast(list[str], opts.get("roles", [])))
            if "pk" in roles and "sk" in roles:
                raise ModelDefinitionError(f"field cannot be both pk and sk: {dc_field.name}")
            if "pk" in roles:
                pk_fields.append(dc_field.name)
            if "sk" in roles:
                sk_fields.append(dc_field.name)

            auto_generated = bool(opts.get("auto_generated", False))
            if auto_generated and "pk" not in roles and "sk" not in roles:
                raise ModelDefinitionError(f"auto-generated field must be a key: {dc_field.name}")
            if auto_generated and not _is_str_annotation(field_types.get(dc_field.name)):
                raise ModelDefinitionError(f"auto-generated field must be a str: {dc_field.name}")

            converter = cast(AttributeConverter | None, opts.get("converter"))
            if auto_generated and converter is not None:
                raise ModelDefinitionError(f"auto-generated field cannot use a converter: {dc_field.name}")

            attribute_name = cast(str, opts.get("name", dc_field.name))
            if attribute_name in seen_names:
                raise ModelDefinitionError(f"duplicate attribute name: {attribute_name}")
            seen_names.add(attribute_name)

            attributes[dc_field.name] = AttributeDefinition(
                python_name=dc_field.name,
                attribute_name=attribute_name,
                roles=roles,
                auto_generated=auto_generated,
                omitempty=bool(opts.get("omitempty", False)),
                converter=converter,
            )

        if len(pk_fields) != 1:
            raise ModelDefinitionError(f"model must define exactly one pk field (found {len(pk_fields)})")

        if len(sk_fields) > 1:
            raise ModelDefinitionError(f"model must define at most one sk field (found {len(sk_fields)})")

        return cls(
            model_type=model_type,
            table_name=table_name,
            pk=attributes[pk_fields[0]],
            sk=attributes[sk_fields[0]] if sk_fields else None,
            attributes=attributes,
            field_types=field_types,
        )
