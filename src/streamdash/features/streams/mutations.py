"""Stream mutation descriptors.

ONLY write descriptions - deletes and publishes with their optimistic
updates and invalidation targets.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Any, Dict, Optional

from ...platform.query.application.commands.mutation_descriptor import MutationDescriptor
from .keys import stream_key, stream_messages_key, streams_key
from .models.requests import DeleteStreamRequest, PublishMessageRequest


def remove_stream(current: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    """Stream list without the deleted stream."""
    streams = current.get("streams") or []
    remaining = [name for name in streams if name != payload["streamName"]]
    count = current.get("count", len(streams)) - (len(streams) - len(remaining))
    return {**current, "streams": remaining, "count": max(count, 0)}


def append_provisional_record(current: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    """Message list with a placeholder for the message being published."""
    records = list(current.get("records") or [])
    records.append({
        "shardId": None,
        "partitionKey": payload.get("partitionKey"),
        "sequenceNumber": None,
        "approximateArrivalTimestamp": None,
        "dataBase64": payload["data"],
        "provisional": True,
    })
    return {**current, "records": records, "count": current.get("count", 0) + 1}


def delete_stream_mutation(stream_name: str) -> MutationDescriptor:
    """Delete one stream, removing it from the list until the server confirms."""
    return MutationDescriptor.request(
        "DELETE",
        "/stream",
        payload={"streamName": stream_name},
        payload_model=DeleteStreamRequest,
        target_keys=[streams_key()],
        optimistic_update=remove_stream,
        invalidate=[streams_key()],
        remove_on_success=[stream_key(stream_name), stream_messages_key(stream_name)],
        name=f"delete-stream:{stream_name}",
    )


def publish_message_mutation(
    stream_name: str,
    stream_arn: str,
    data: str,
    partition_key: Optional[str] = None
) -> MutationDescriptor:
    """Publish one message, showing it in the message list until the refetch."""
    payload = {"streamArn": stream_arn, "data": data}
    if partition_key is not None:
        payload["partitionKey"] = partition_key

    return MutationDescriptor.request(
        "POST",
        "/stream/message",
        payload=payload,
        payload_model=PublishMessageRequest,
        target_keys=[stream_messages_key(stream_name)],
        optimistic_update=append_provisional_record,
        invalidate=[stream_messages_key(stream_name)],
        name=f"publish-message:{stream_name}",
    )
