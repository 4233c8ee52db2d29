# rmqclient

Building blocks for clients of RocketMQ-style message brokers, in pure Python
with no dependencies beyond the standard library.

- **`rmqclient.remote.codec`**: the remoting wire format. A `RemotingCommand`
  is written as a frame with either the JSON header codec (`JsonCodec`,
  `CodecType.JSON`) or the compact binary codec (`RocketMQCodec`,
  `CodecType.ROCKETMQ`) by `encode`, and read back by `decode`. Malformed
  frames raise `CodecError`.
- **`rmqclient.remote.future`**: `ResponseFuture`, which holds the pending
  response to one request, runs its callback at most once, and raises
  `RequestTimeoutError` when `wait_response` runs past its deadline.
- **`rmqclient.request`**: `RequestCode` and the custom request headers
  (`SendMessageRequestHeader`, `PullMessageRequestHeader`,
  `GetRouteInfoRequestHeader`, ...). Each has `encode()`, returning the
  string map sent as the command's extension fields; headers the broker sends
  to the client also have a `decode(properties)` class method.
- **`rmqclient.constants`**: `ResponseCode`, well-known group and topic names,
  `get_retry_topic` and `get_reply_topic`.
- **`rmqclient.model`**: `MessageQueue`, `SubscriptionData`, `HeartbeatData`,
  `ConsumerRunningInfo`, `ConsumerStatus`, `ConsumeMessageDirectlyResult`, and
  `ResetOffsetBody.decode`, which reads both the array-of-pairs and the
  object-keyed layouts of a reset-offset body.
- **`rmqclient.route`**: `TopicRouteData` and its `QueueData` and
  `BrokerData`, plus `route_data_to_publish_info`,
  `route_data_to_subscribe_info` and `topic_route_data_is_changed`.
- **`rmqclient.perm`**: queue permission bits.

## Installing

```
pip install .
```

## Encoding a command

```python
from rmqclient.remote.codec import CodecType, RemotingCommand, decode, encode
from rmqclient.request import GetRouteInfoRequestHeader, RequestCode

cmd = RemotingCommand.create(
    RequestCode.GET_ROUTE_INFO_BY_TOPIC,
    GetRouteInfoRequestHeader(topic="orders"),
    None,
)
frame = encode(cmd, CodecType.ROCKETMQ)
again = decode(frame[4:])  # strip the 4-byte frame length
assert again.code == cmd.code
assert again.ext_fields == {"topic": "orders"}
```

`RemotingCommand.create` gives every command a fresh `opaque` id.
`write_to(stream, codec)` writes the same frame to a binary stream.

## Waiting for a response

```python
from rmqclient.remote.future import ResponseFuture, RequestTimeoutError

future = ResponseFuture(cmd.opaque, timeout=3.0)
# ... when the reply with the same opaque arrives:
future.set_response(reply)
response = future.wait_response()  # reply, or raises RequestTimeoutError / the error given to set_error
```

## Routing

```python
from rmqclient.route import TopicRouteData, route_data_to_publish_info

route = TopicRouteData.decode(body)  # raises ValueError on an unreadable document
info = route_data_to_publish_info("orders", route)
queue = info.mq_list[info.fetch_queue_index()] if info.is_ok() else None
```

Only writable queues on broker groups that have a master address (broker id 0)
are published; `route_data_to_subscribe_info` lists every readable queue.

## Queue permissions

```python
from rmqclient.perm import perm_to_string

perm_to_string(6)  # "RW-"
```

## What the package does not do

It opens no network connections: there is no TCP client that sends commands to
a broker or dispatches requests a broker pushes, and no registry of name-server
addresses that queries routes and tracks brokers. The package encodes and
decodes what such a client exchanges; moving frames over a socket is left to
the caller.

`ConsumerRunningInfo.encode()` keys its queue table by queue objects, so its
output is not strict JSON.

## Running the tests

```
pip install .[test]
pytest
```