from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

from .conditions import ConditionSet, ExpectedAttribute, generated_key_guard, merge_conditions
from .errors import (
    AutokeydbError,
    AwsError,
    ConditionFailedError,
    NotFoundError,
    ValidationError,
)
from .keygen import KeyAssignment, assign_keys, uuid_key, validate_keys
from .model import (
    AttributeConverter,
    AttributeDefinition,
    ModelDefinition,
    ModelDefinitionError,
    autokey_field,
)

if TYPE_CHECKING:
    from .runtime import (
        AwsCallMetric,
        create_boto3_config,
        dynamodb_client_from_env,
        instrument_boto3_client,
    )
    from .table import SaveOutcome, SaveResult, Table


try:
    __version__ = version("autokeydb")
except PackageNotFoundError:
    __version__ = "0.0.0"


def __getattr__(name: str) -> Any:
    if name in {"Table", "SaveResult", "SaveOutcome"}:
        from . import table

        return getattr(table, name)
    if name in {
        "AwsCallMetric",
        "create_boto3_config",
        "dynamodb_client_from_env",
        "instrument_boto3_client",
    }:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeConverter",
    "AttributeDefinition",
    "AutokeydbError",
    "AwsCallMetric",
    "AwsError",
    "ConditionFailedError",
    "ConditionSet",
    "ExpectedAttribute",
    "KeyAssignment",
    "ModelDefinition",
    "ModelDefinitionError",
    "NotFoundError",
    "SaveOutcome",
    "SaveResult",
    "Table",
    "ValidationError",
    "__version__",
    "assign_keys",
    "autokey_field",
    "create_boto3_config",
    "dynamodb_client_from_env",
    "generated_key_guard",
    "instrument_boto3_client",
    "merge_conditions",
    "uuid_key",
    "validate_keys",
]
