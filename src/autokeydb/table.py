from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, is_dataclass
from decimal import Decimal
from typing import Any, cast, get_args, get_origin

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from .aws_errors import map_client_error as _map_client_error
from .conditions import ConditionSet, generated_key_guard, merge_conditions
from .errors import AutokeydbError, ConditionFailedError, NotFoundError, ValidationError
from .keygen import KeyFactory, assign_keys, uuid_key, validate_keys
from .model import AttributeDefinition, ModelDefinition, unwrap_optional

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if value is False:
        return True
    if value == 0:
        return True
    if isinstance(value, (str, bytes, bytearray)) and len(value) == 0:
        return True
    if isinstance(value, (list, dict, set, tuple)) and len(value) == 0:
        return True
    return False


def _coerce_value(value: Any, annotation: Any) -> Any:
    if value is None:
        return None

    annotation = unwrap_optional(annotation)
    if annotation is int and isinstance(value, Decimal):
        return int(value)
    if annotation is float and isinstance(value, Decimal):
        return float(value)

    origin = get_origin(annotation)
    if origin is set and isinstance(value, set):
        (elem_type,) = get_args(annotation) or (Any,)
        return {_coerce_value(v, elem_type) for v in value}

    return value


@dataclass(frozen=True)
class SaveResult[T]:
    item: T
    pk: Any
    sk: Any | None
    generated: Mapping[str, str]


@dataclass(frozen=True)
class SaveOutcome[T]:
    item: T
    result: SaveResult[T] | None = None
    error: AutokeydbError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Table[T]:
    def __init__(
        self,
        model: ModelDefinition[T],
        *,
        client: Any | None = None,
        table_name: str | None = None,
        key_factory: KeyFactory | None = None,
    ) -> None:
        if table_name is None:
            table_name = model.table_name
        if not table_name:
            raise ValueError("table_name is required (or set ModelDefinition.table_name)")

        self._model = model
        self._table_name = table_name
        self._client: Any = client or boto3.client("dynamodb")
        self._key_factory = key_factory or uuid_key
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @property
    def table_name(self) -> str:
        return self._table_name

    def save(self, item: T, *, conditions: ConditionSet | None = None) -> SaveResult[T]:
        """Write ``item`` as a new item, generating any unset auto-generated keys.

        Every key generated by this call is guarded with ``attribute_not_exists``
        so a collision is rejected by DynamoDB instead of overwriting the stored
        item. ``conditions`` are combined with that guard (see
        ``merge_conditions``); an incompatible OR set raises ``ValidationError``
        before anything is sent.

        The returned ``SaveResult.item`` is a copy carrying the generated keys.
        On ``ConditionFailedError`` the attempted copy is available as
        ``err.item``. Nothing is retried.
        """
        assignment = assign_keys(self._model, item, self._key_factory)
        guard = generated_key_guard(tuple(assignment.generated))
        merged = merge_conditions(guard, self._normalize_conditions(conditions))

        req: dict[str, Any] = {"TableName": self._table_name, "Item": self._to_item(assignment.item)}
        if merged is not None:
            names: dict[str, str] = {}
            values: dict[str, Any] = {}
            req["ConditionExpression"] = self._condition_expression(merged, names, values)
            req["ExpressionAttributeNames"] = names
            if values:
                req["ExpressionAttributeValues"] = values

        logger.debug(
            "put_item table=%s condition=%s",
            self._table_name,
            req.get("ConditionExpression"),
        )
        try:
            self._client.put_item(**req)
        except ClientError as err:
            mapped = _map_client_error(err)
            if isinstance(mapped, ConditionFailedError):
                mapped.item = assignment.item
            raise mapped from err

        keyed = assignment.item
        return SaveResult(
            item=keyed,
            pk=getattr(keyed, self._model.pk.python_name),
            sk=getattr(keyed, self._model.sk.python_name) if self._model.sk is not None else None,
            generated=dict(assignment.generated),
        )

    def batch_save(
        self,
        items: Iterable[T],
        *,
        conditions: ConditionSet | None = None,
    ) -> list[SaveOutcome[T]]:
        """Save each item independently and report one outcome per item, in order.

        A rejected item does not stop the remaining writes and nothing is rolled
        back. Errors outside the library's taxonomy propagate.
        """
        outcomes: list[SaveOutcome[T]] = []
        for item in items:
            try:
                result = self.save(item, conditions=conditions)
            except ConditionFailedError as err:
                logger.warning("batch_save: conditional write rejected on %s: %s", self._table_name, err)
                attempted = cast(T, err.item) if err.item is not None else item
                outcomes.append(SaveOutcome(item=attempted, error=err))
            except AutokeydbError as err:
                outcomes.append(SaveOutcome(item=item, error=err))
            else:
                outcomes.append(SaveOutcome(item=result.item, result=result))
        return outcomes

    def put(
        self,
        item: T,
        *,
        condition_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
    ) -> None:
        dynamodb_item = self._to_item(item)
        req: dict[str, Any] = {"TableName": self._table_name, "Item": dynamodb_item}
        if condition_expression:
            req["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(expression_attribute_names)
        if expression_attribute_values:
            req["ExpressionAttributeValues"] = self._serialize_values(expression_attribute_values)

        try:
            self._client.put_item(**req)
        except ClientError as err:
            raise _map_client_error(err) from err

    def get(self, pk: Any, sk: Any | None = None, *, consistent_read: bool = False) -> T:
        key = self._to_key(pk, sk)
        try:
            resp = self._client.get_item(TableName=self._table_name, Key=key, ConsistentRead=consistent_read)
        except ClientError as err:
            raise _map_client_error(err) from err

        item = resp.get("Item")
        if not item:
            raise NotFoundError("item not found")
        return self._from_item(item)

    def delete(
        self,
        pk: Any,
        sk: Any | None = None,
        *,
        condition_expression: str | None = None,
        expression_attribute_names: Mapping[str, str] | None = None,
        expression_attribute_values: Mapping[str, Any] | None = None,
    ) -> None:
        req: dict[str, Any] = {"TableName": self._table_name, "Key": self._to_key(pk, sk)}
        if condition_expression:
            req["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(expression_attribute_names)
        if expression_attribute_values:
            req["ExpressionAttributeValues"] = self._serialize_values(expression_attribute_values)

        try:
            self._client.delete_item(**req)
        except ClientError as err:
            raise _map_client_error(err) from err

    def _normalize_conditions(self, conditions: ConditionSet | None) -> ConditionSet | None:
        # Callers may name a field by its python name or its stored attribute name.
        if conditions is None:
            return None

        expected = {}
        for name, cond in conditions.expected.items():
            attr_def = self._model.attributes.get(name) or self._model.attribute_by_name(name)
            if attr_def is None:
                raise ValidationError(f"unknown field: {name}")
            if attr_def.python_name in expected:
                raise ValidationError(f"duplicate condition for field: {attr_def.python_name}")
            expected[attr_def.python_name] = cond
        return ConditionSet(expected=expected, operator=conditions.operator)

    def _condition_expression(
        self,
        conditions: ConditionSet,
        names: dict[str, str],
        values: dict[str, Any],
    ) -> str:
        counter = 0
        parts: list[str] = []

        for field_name, expected in conditions.expected.items():
            attr_def = self._model.attributes[field_name]
            ref = f"#c_{field_name}"
            names[ref] = attr_def.attribute_name

            if expected.op == "not_exists":
                if expected.values:
                    raise ValidationError("not_exists does not take a value")
                parts.append(f"attribute_not_exists({ref})")
                continue

            if expected.op == "exists":
                if expected.values:
                    raise ValidationError("exists does not take a value")
                parts.append(f"attribute_exists({ref})")
                continue

            if expected.op == "=":
                if len(expected.values) != 1:
                    raise ValidationError("= requires one value")
                counter += 1
                value_ref = f":c{counter}"
                values[value_ref] = self._serialize_attr_value(attr_def, expected.values[0])
                parts.append(f"{ref} = {value_ref}")
                continue

            raise ValidationError(f"unsupported condition operator: {expected.op}")

        return f" {conditions.operator} ".join(parts)

    def _serialize_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in values.items()}

    def _serialize_attr_value(self, attr_def: AttributeDefinition, value: Any) -> Any:
        if attr_def.converter is not None and value is not None:
            value = attr_def.converter.to_dynamodb(value)
        return self._serializer.serialize(value)

    def _to_item(self, item: T) -> dict[str, Any]:
        if not is_dataclass(item) or isinstance(item, type):
            raise ValidationError("item must be a dataclass instance")
        validate_keys(self._model, item)

        out: dict[str, Any] = {}
        for field_name, attr_def in self._model.attributes.items():
            value = getattr(item, field_name)
            if attr_def.omitempty and not attr_def.is_key and _is_empty(value):
                continue
            out[attr_def.attribute_name] = self._serialize_attr_value(attr_def, value)

        return out

    def _to_key(self, pk: Any, sk: Any | None) -> dict[str, Any]:
        if pk is None:
            raise ValidationError("pk is required")
        if self._model.sk is None and sk is not None:
            raise ValidationError("model does not define sk")
        if self._model.sk is not None and sk is None:
            raise ValidationError("sk is required")

        key: dict[str, Any] = {self._model.pk.attribute_name: self._serialize_attr_value(self._model.pk, pk)}
        if self._model.sk is not None:
            key[self._model.sk.attribute_name] = self._serialize_attr_value(self._model.sk, sk)
        return key

    def _from_item(self, item: Mapping[str, Any]) -> T:
        model_cls = self._model.model_type
        field_types = self._model.field_types

        kwargs: dict[str, Any] = {}
        for dc_field in fields(cast(Any, model_cls)):
            attr_def = self._model.attributes.get(dc_field.name)
            if attr_def is None or attr_def.attribute_name not in item:
                continue

            raw = self._deserializer.deserialize(item[attr_def.attribute_name])
            if attr_def.converter is not None and raw is not None:
                raw = attr_def.converter.from_dynamodb(raw)
            kwargs[dc_field.name] = _coerce_value(raw, field_types.get(dc_field.name, Any))

        try:
            return model_cls(**kwargs)
        except TypeError as err:
            raise ValidationError(str(err)) from err
