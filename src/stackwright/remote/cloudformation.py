from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

import aioboto3
import structlog
from botocore.exceptions import ClientError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from stackwright.config import Settings
from stackwright.core.errors import NoChangesError, RemoteOperationError, ValidationError
from stackwright.loader import load_yaml
from stackwright.remote.base import (
    ChangeSetState,
    OperationHandle,
    RemoteStackState,
    StackEvent,
    StackResource,
)

logger = structlog.get_logger()

THROTTLING_CODES = frozenset({"Throttling", "ThrottlingException", "RequestLimitExceeded"})


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _error_message(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Message", str(exc))


def is_throttling_error(exc: BaseException) -> bool:
    """Determine if a provider error is transient and should be retried."""
    return isinstance(exc, ClientError) and _error_code(exc) in THROTTLING_CODES


def is_not_found_error(exc: BaseException) -> bool:
    """The provider reports a missing stack as a validation error."""
    return (
        isinstance(exc, ClientError)
        and _error_code(exc) == "ValidationError"
        and "does not exist" in _error_message(exc)
    )


def is_no_updates_error(exc: BaseException) -> bool:
    return (
        isinstance(exc, ClientError)
        and _error_code(exc) == "ValidationError"
        and "No updates are to be performed" in _error_message(exc)
    )


def _to_remote_error(exc: ClientError, action: str, stack_name: str | None) -> RemoteOperationError:
    reason = _error_message(exc)
    return RemoteOperationError(
        f"{action} failed: {reason}",
        stack_name=stack_name,
        code=_error_code(exc),
        reason=reason,
    )


def _key_values(items: Sequence[Mapping[str, Any]] | None, key: str, value: str) -> dict[str, str]:
    return {item[key]: item.get(value, "") for item in items or []}


def _parameter_list(parameters: Mapping[str, str]) -> list[dict[str, str]]:
    return [{"ParameterKey": k, "ParameterValue": v} for k, v in parameters.items()]


def _tag_list(tags: Mapping[str, str]) -> list[dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in tags.items()]


def decode_template_body(body: Any) -> dict[str, Any] | None:
    """Template bodies arrive as parsed JSON or as raw JSON/YAML text."""
    if body is None or isinstance(body, dict):
        return body
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return load_yaml(body)


class CloudFormationStackClient:
    """Provisioning API client backed by AWS CloudFormation."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._session = aioboto3.Session(region_name=settings.aws_region)

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        async with self._session.client(
            "cloudformation", endpoint_url=self._settings.aws_endpoint_url
        ) as client:
            yield client

    async def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        """Invoke one API operation, retrying throttled requests."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_throttling_error),
            stop=stop_after_attempt(self._settings.max_retries),
            wait=wait_exponential(multiplier=2, min=1, max=30),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "cloudformation_throttled",
                        operation=operation,
                        attempt=attempt.retry_state.attempt_number,
                    )
                async with self._client() as client:
                    return await getattr(client, operation)(**kwargs)
        raise AssertionError("unreachable")  # pragma: no cover

    async def describe(self, name: str) -> RemoteStackState | None:
        logger.debug("describing_stack", stack=name)
        try:
            data = await self._call("describe_stacks", StackName=name)
        except ClientError as exc:
            if is_not_found_error(exc):
                return None
            raise _to_remote_error(exc, "Describe stack", name) from exc

        stacks = data.get("Stacks") or []
        if not stacks:
            return None
        stack = stacks[0]
        return RemoteStackState(
            name=stack.get("StackName", name),
            status=stack["StackStatus"],
            stack_id=stack.get("StackId"),
            status_reason=stack.get("StackStatusReason"),
            parameters=_key_values(stack.get("Parameters"), "ParameterKey", "ParameterValue"),
            outputs=_key_values(stack.get("Outputs"), "OutputKey", "OutputValue"),
        )

    async def get_template(self, name: str) -> dict[str, Any] | None:
        logger.debug("getting_template", stack=name)
        try:
            data = await self._call("get_template", StackName=name)
        except ClientError as exc:
            if is_not_found_error(exc):
                return None
            raise _to_remote_error(exc, "Get template", name) from exc
        return decode_template_body(data.get("TemplateBody"))

    def _stack_arguments(
        self,
        name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
    ) -> dict[str, Any]:
        return {
            "StackName": name,
            "Parameters": _parameter_list(parameters),
            "TemplateBody": json.dumps(template),
            "Tags": _tag_list(tags),
            "Capabilities": list(self._settings.capabilities),
        }

    async def create(
        self,
        name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
        policy: Mapping[str, Any] | None,
        *,
        on_failure: str | None = None,
    ) -> OperationHandle:
        kwargs = self._stack_arguments(name, parameters, template, tags)
        if policy:
            kwargs["StackPolicyBody"] = json.dumps(policy)
        if on_failure:
            kwargs["OnFailure"] = on_failure
        try:
            data = await self._call("create_stack", **kwargs)
        except ClientError as exc:
            raise _to_remote_error(exc, "Create stack", name) from exc
        return OperationHandle(stack_name=name, stack_id=data.get("StackId"))

    async def update(
        self,
        name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
        policy: Mapping[str, Any] | None,
    ) -> OperationHandle:
        kwargs = self._stack_arguments(name, parameters, template, tags)
        if policy:
            kwargs["StackPolicyBody"] = json.dumps(policy)
        try:
            data = await self._call("update_stack", **kwargs)
        except ClientError as exc:
            if is_no_updates_error(exc):
                raise NoChangesError(
                    "No updates are to be performed",
                    stack_name=name,
                    code=_error_code(exc),
                    reason=_error_message(exc),
                ) from exc
            raise _to_remote_error(exc, "Update stack", name) from exc
        return OperationHandle(stack_name=name, stack_id=data.get("StackId"))

    async def delete(self, name: str) -> OperationHandle:
        state = await self.describe(name)
        try:
            await self._call("delete_stack", StackName=name)
        except ClientError as exc:
            raise _to_remote_error(exc, "Delete stack", name) from exc
        return OperationHandle(stack_name=name, stack_id=state.stack_id if state else None)

    async def events(self, name: str) -> list[StackEvent]:
        try:
            data = await self._call("describe_stack_events", StackName=name)
        except ClientError as exc:
            if is_not_found_error(exc):
                return []
            raise _to_remote_error(exc, "Describe stack events", name) from exc
        return [
            StackEvent(
                event_id=event["EventId"],
                logical_resource_id=event.get("LogicalResourceId", ""),
                resource_status=event.get("ResourceStatus", ""),
                timestamp=event.get("Timestamp"),
                resource_type=event.get("ResourceType"),
                status_reason=event.get("ResourceStatusReason"),
            )
            for event in data.get("StackEvents") or []
        ]

    async def list_resources(self, name: str) -> list[StackResource]:
        resources: list[StackResource] = []
        try:
            async with self._client() as client:
                paginator = client.get_paginator("list_stack_resources")
                async for page in paginator.paginate(StackName=name):
                    resources.extend(
                        StackResource(
                            resource_type=summary.get("ResourceType", ""),
                            logical_resource_id=summary.get("LogicalResourceId", ""),
                            physical_resource_id=summary.get("PhysicalResourceId"),
                        )
                        for summary in page.get("StackResourceSummaries") or []
                    )
        except ClientError as exc:
            if is_not_found_error(exc):
                return []
            raise _to_remote_error(exc, "List stack resources", name) from exc
        return resources

    async def create_change_set(
        self,
        name: str,
        change_set_name: str,
        parameters: Mapping[str, str],
        template: Mapping[str, Any],
        tags: Mapping[str, str],
    ) -> OperationHandle:
        kwargs = self._stack_arguments(name, parameters, template, tags)
        try:
            data = await self._call("create_change_set", ChangeSetName=change_set_name, **kwargs)
        except ClientError as exc:
            raise _to_remote_error(exc, "Create change set", name) from exc
        return OperationHandle(
            stack_name=name,
            stack_id=data.get("StackId"),
            change_set_id=data.get("Id"),
        )

    async def describe_change_set(self, name: str, change_set_id: str) -> ChangeSetState:
        try:
            data = await self._call(
                "describe_change_set", ChangeSetName=change_set_id, StackName=name
            )
        except ClientError as exc:
            raise _to_remote_error(exc, "Describe change set", name) from exc
        return ChangeSetState(
            change_set_id=data.get("ChangeSetId", change_set_id),
            status=data.get("Status", ""),
            status_reason=data.get("StatusReason"),
        )

    async def validate_template(self, template: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return await self._call("validate_template", TemplateBody=json.dumps(template))
        except ClientError as exc:
            if _error_code(exc) == "ValidationError":
                raise ValidationError(
                    f"Template is invalid: {_error_message(exc)}",
                    details={"code": _error_code(exc)},
                ) from exc
            raise _to_remote_error(exc, "Validate template", None) from exc
