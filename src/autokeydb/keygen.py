from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, is_dataclass, replace
from typing import Any, cast

from .errors import ValidationError
from .model import AttributeDefinition, ModelDefinition

logger = logging.getLogger(__name__)

type KeyFactory = Callable[[], str]


def uuid_key() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class KeyAssignment[T]:
    item: T
    generated: Mapping[str, str]


def _role(model: ModelDefinition[Any], attr: AttributeDefinition) -> str:
    return "pk" if attr is model.pk else "sk"


def _is_blank(value: Any) -> bool:
    return isinstance(value, (str, bytes, bytearray)) and len(value) == 0


def validate_keys[T](model: ModelDefinition[T], item: T) -> None:
    for attr in model.key_attributes:
        value = getattr(item, attr.python_name)
        if value is None:
            raise ValidationError(f"missing {_role(model, attr)}: {attr.python_name}")
        if _is_blank(value):
            raise ValidationError(f"empty {_role(model, attr)}: {attr.python_name}")


def assign_keys[T](model: ModelDefinition[T], item: T, key_factory: KeyFactory) -> KeyAssignment[T]:
    """Return a copy of ``item`` with unset auto-generated keys filled in.

    Only ``None`` counts as unset. An empty string is kept as-is and rejected by
    validation. ``item`` itself is never modified.
    """
    if not is_dataclass(item) or isinstance(item, type):
        raise ValidationError("item must be a dataclass instance")

    generated: dict[str, str] = {}
    for attr in model.generated_attributes:
        if getattr(item, attr.python_name) is not None:
            continue
        value = key_factory()
        if not isinstance(value, str) or not value:
            raise ValidationError(f"key factory returned an invalid key for {attr.python_name}: {value!r}")
        generated[attr.python_name] = value

    keyed = cast(T, replace(cast(Any, item), **generated)) if generated else item
    validate_keys(model, keyed)

    if generated:
        logger.debug("generated keys for %s: %s", model.model_type.__name__, generated)
    return KeyAssignment(item=keyed, generated=generated)
