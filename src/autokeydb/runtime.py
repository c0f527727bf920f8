from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class AwsCallMetric:
    service: str
    operation: str
    seconds: float
    ok: bool


def create_boto3_config(
    *,
    connect_timeout: float = 2.0,
    read_timeout: float = 5.0,
    max_attempts: int = 3,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "adaptive"},
    )


def dynamodb_client_from_env(
    environ: Mapping[str, str] = os.environ,
    *,
    config: Config | None = None,
    session: Any | None = None,
    on_call: Callable[[AwsCallMetric], None] | None = None,
) -> Any:
    """Build a DynamoDB client from the standard environment variables.

    ``DYNAMODB_ENDPOINT`` points the client at DynamoDB Local or another
    compatible endpoint. Credentials are only passed through when both are set,
    otherwise boto3's default credential chain applies. When ``on_call`` is
    given the client reports an ``AwsCallMetric`` for every operation.
    """
    region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
    kwargs: dict[str, Any] = {"region_name": region, "config": config or create_boto3_config()}

    endpoint = (environ.get("DYNAMODB_ENDPOINT") or "").strip()
    if endpoint:
        kwargs["endpoint_url"] = endpoint

    access_key = environ.get("AWS_ACCESS_KEY_ID")
    secret_key = environ.get("AWS_SECRET_ACCESS_KEY")
    if access_key and secret_key:
        kwargs["aws_access_key_id"] = access_key
        kwargs["aws_secret_access_key"] = secret_key

    logger.debug("creating dynamodb client region=%s endpoint=%s", region, endpoint or "<default>")
    sess = session or boto3.session.Session()
    client = cast(Any, sess).client("dynamodb", **kwargs)
    if on_call is not None:
        return instrument_boto3_client(client, service="dynamodb", on_call=on_call)
    return client


class _InstrumentedClient:
    def __init__(self, client: Any, service: str, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._service = service
        self._on_call = on_call

    def _record(self, operation: str, start: float, ok: bool) -> None:
        metric = AwsCallMetric(
            service=self._service,
            operation=operation,
            seconds=time.monotonic() - start,
            ok=ok,
        )
        logger.debug("%s.%s ok=%s seconds=%.4f", metric.service, metric.operation, metric.ok, metric.seconds)
        self._on_call(metric)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not callable(attr):
            return attr

        def wrapped(*args: Any, **kwargs: Any) -> Any:
            start = time.monotonic()
            try:
                out = attr(*args, **kwargs)
            except Exception:
                self._record(name, start, ok=False)
                raise
            self._record(name, start, ok=True)
            return out

        return wrapped


def instrument_boto3_client(
    client: Any,
    *,
    service: str,
    on_call: Callable[[AwsCallMetric], None],
) -> Any:
    return _InstrumentedClient(client, service, on_call)
