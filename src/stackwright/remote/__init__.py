from __future__ import annotations

from stackwright.remote.base import (
    ChangeSetState,
    OperationHandle,
    RemoteStackClient,
    RemoteStackState,
    StackEvent,
    StackResource,
)
from stackwright.remote.cloudformation import CloudFormationStackClient

__all__ = [
    "ChangeSetState",
    "CloudFormationStackClient",
    "OperationHandle",
    "RemoteStackClient",
    "RemoteStackState",
    "StackEvent",
    "StackResource",
]
