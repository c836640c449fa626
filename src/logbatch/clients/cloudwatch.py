# src/logbatch/clients/cloudwatch.py
"""CloudWatch Logs sink client.

Adapts boto3's blocking ``logs`` client to the async LogSinkClient protocol
and classifies AWS error codes into SinkErrorKind at this boundary.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from logbatch.contracts.enums import SinkErrorKind
from logbatch.errors import SinkError

if TYPE_CHECKING:
    from logbatch.contracts.events import LogEvent

logger = structlog.get_logger(__name__)

_ERROR_KINDS: dict[str, SinkErrorKind] = {
    "ResourceAlreadyExistsException": SinkErrorKind.ALREADY_EXISTS,
    "InvalidParameterException": SinkErrorKind.INVALID_PARAMETER,
    "InvalidSequenceTokenException": SinkErrorKind.INVALID_SEQUENCE_TOKEN,
}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _to_sink_error(error: ClientError | BotoCoreError) -> SinkError:
    """Classify a boto exception into a SinkError."""
    if isinstance(error, BotoCoreError):
        return SinkError(SinkErrorKind.OTHER, str(error))

    code = _error_code(error)
    kind = _ERROR_KINDS.get(code, SinkErrorKind.OTHER)
    expected = error.response.get("expectedSequenceToken") if kind is SinkErrorKind.INVALID_SEQUENCE_TOKEN else None
    return SinkError(kind, f"{code}: {error}", expected_sequence_token=expected)


class CloudWatchLogsClient:
    """LogSinkClient backed by boto3's CloudWatch Logs client.

    boto3 calls block, so each one runs in the default executor via
    asyncio.to_thread(); the event loop keeps accepting log events meanwhile.

    Example:
        client = CloudWatchLogsClient(region_name="eu-west-1")
        batcher.configure(client)

        # Or wrap a preconfigured boto3 client
        client = CloudWatchLogsClient(boto_client=boto3.client("logs"))
    """

    def __init__(self, boto_client: Any | None = None, **client_kwargs: Any) -> None:
        """Initialize the client.

        Args:
            boto_client: Existing boto3 ``logs`` client. If omitted, one is
                created from client_kwargs.
            **client_kwargs: Passed to boto3.client("logs", ...) (region_name,
                endpoint_url, credentials, botocore Config).
        """
        self._client = boto_client if boto_client is not None else boto3.client("logs", **client_kwargs)

    async def create_group(self, name: str) -> None:
        """Create a log group (CreateLogGroup)."""
        await self._call("create_log_group", logGroupName=name)
        logger.debug("Log group created", group=name)

    async def create_stream(self, group: str, name: str) -> None:
        """Create a log stream (CreateLogStream)."""
        await self._call("create_log_stream", logGroupName=group, logStreamName=name)
        logger.debug("Log stream created", group=group, stream=name)

    async def put_batch(
        self,
        group: str,
        stream: str,
        events: Sequence[LogEvent],
        sequence_token: str | None = None,
    ) -> str | None:
        """Deliver events (PutLogEvents) and return the next sequence token.

        DataAlreadyAcceptedException means the batch is already stored; it is
        treated as success.
        """
        params: dict[str, Any] = {
            "logGroupName": group,
            "logStreamName": stream,
            "logEvents": [event.to_wire() for event in events],
        }
        if sequence_token is not None:
            params["sequenceToken"] = sequence_token

        try:
            response = await asyncio.to_thread(self._client.put_log_events, **params)
        except ClientError as e:
            if _error_code(e) == "DataAlreadyAcceptedException":
                logger.debug("Batch already accepted", group=group, stream=stream)
                expected: str | None = e.response.get("expectedSequenceToken")
                return expected
            raise _to_sink_error(e) from e
        except BotoCoreError as e:
            raise _to_sink_error(e) from e

        rejected = response.get("rejectedLogEventsInfo")
        if rejected:
            logger.warning(
                "CloudWatch rejected some log events",
                group=group,
                stream=stream,
                **{_snake(k): v for k, v in rejected.items()},
            )

        next_token: str | None = response.get("nextSequenceToken")
        return next_token

    async def _call(self, method: str, **params: Any) -> Any:
        try:
            return await asyncio.to_thread(getattr(self._client, method), **params)
        except (ClientError, BotoCoreError) as e:
            raise _to_sink_error(e) from e


def _snake(name: str) -> str:
    """tooNewLogEventStartIndex -> too_new_log_event_start_index"""
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name)
