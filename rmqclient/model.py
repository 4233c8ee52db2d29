"""Data exchanged with brokers: heartbeats, subscriptions and consumer status reports."""

from __future__ import annotations

import enum
import functools
import json
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Union

PROP_NAMESERVER_ADDR = "PROP_NAMESERVER_ADDR"
PROP_THREADPOOL_CORE_SIZE = "PROP_THREADPOOL_CORE_SIZE"
PROP_CONSUME_ORDERLY = "PROP_CONSUMEORDERLY"
PROP_CONSUME_TYPE = "PROP_CONSUME_TYPE"
PROP_CLIENT_VERSION = "PROP_CLIENT_VERSION"
PROP_CONSUMER_START_TIMESTAMP = "PROP_CONSUMER_START_TIMESTAMP"

_PAIR_PATTERN = re.compile(r"(\{[^{}]*\})\s*:\s*(-?\d+)")
_TABLE_KEY_PATTERN = re.compile(r'"offsetTable"\s*:\s*')


def _dumps(value: Any) -> str:
    """Compact JSON with HTML-sensitive characters escaped."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def _number(value: float) -> Union[int, float]:
    """Write integral floats without a fractional part."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


@dataclass(frozen=True, order=True)
class MessageQueue:
    """One queue of a topic on one broker."""

    topic: str = ""
    broker_name: str = ""
    queue_id: int = 0


def _queue_to_dict(mq: MessageQueue) -> dict[str, Any]:
    return {"topic": mq.topic, "brokerName": mq.broker_name, "queueId": mq.queue_id}


def _queue_from_dict(data: dict[str, Any]) -> MessageQueue:
    return MessageQueue(
        topic=str(data.get("topic", "")),
        broker_name=str(data.get("brokerName", "")),
        queue_id=int(data.get("queueId", 0)),
    )


class ServiceState(enum.IntEnum):
    CREATE_JUST = 0
    START_FAILED = 1
    RUNNING = 2
    SHUTDOWN = 3


@dataclass
class SubscriptionData:
    """A consumer's subscription to one topic."""

    topic: str = ""
    sub_string: str = ""
    class_filter_mode: bool = False
    tags: set = field(default_factory=set)
    codes: set = field(default_factory=set)
    sub_version: int = 0
    exp_type: str = ""
    _lock: Any = field(default_factory=threading.RLock, init=False, repr=False, compare=False)

    def clone(self) -> "SubscriptionData":
        with self._lock:
            return SubscriptionData(
                topic=self.topic,
                sub_string=self.sub_string,
                class_filter_mode=self.class_filter_mode,
                tags=set(self.tags),
                codes=set(self.codes),
                sub_version=self.sub_version,
                exp_type=self.exp_type,
            )

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "classFilterMode": self.class_filter_mode,
                "topic": self.topic,
                "subString": self.sub_string,
                "tagsSet": sorted(self.tags, key=str),
                "codeSet": sorted(self.codes, key=str),
                "subVersion": self.sub_version,
                "expressionType": self.exp_type,
            }


@dataclass
class ProducerData:
    group_name: str = ""

    def unique_id(self) -> str:
        return self.group_name


@dataclass
class ConsumerData:
    group_name: str = ""
    consume_type: str = ""
    message_model: str = ""
    consume_from_where: str = ""
    subscription_datas: list[SubscriptionData] = field(default_factory=list)
    unit_mode: bool = False

    def unique_id(self) -> str:
        return self.group_name

    def _to_dict(self) -> dict[str, Any]:
        return {
            "groupName": self.group_name,
            "consumeType": self.consume_type,
            "messageModel": self.message_model,
            "consumeFromWhere": self.consume_from_where,
            "subscriptionDataSet": [s.to_dict() for s in self.subscription_datas],
            "unitMode": self.unit_mode,
        }


@dataclass
class HeartbeatData:
    """Producers and consumers a client announces to every broker."""

    client_id: str
    producer_datas: dict[str, ProducerData] = field(default_factory=dict)
    consumer_datas: dict[str, ConsumerData] = field(default_factory=dict)

    def add_producer(self, data: ProducerData) -> None:
        self.producer_datas[data.unique_id()] = data

    def add_consumer(self, data: ConsumerData) -> None:
        self.consumer_datas[data.unique_id()] = data

    def encode(self) -> bytes:
        document = {
            "clientID": self.client_id,
            "producerDataSet": [
                {"groupName": self.producer_datas[k].group_name}
                for k in sorted(self.producer_datas)
            ],
            "consumerDataSet": [
                self.consumer_datas[k]._to_dict() for k in sorted(self.consumer_datas)
            ],
        }
        return _dumps(document).encode("utf-8")


@dataclass
class ProcessQueueInfo:
    commit_offset: int = 0
    cached_msg_min_offset: int = 0
    cached_msg_max_offset: int = 0
    cached_msg_count: int = 0
    cached_msg_size_in_mib: int = 0
    transaction_msg_min_offset: int = 0
    transaction_msg_max_offset: int = 0
    transaction_msg_count: int = 0
    locked: bool = False
    try_unlock_times: int = 0
    last_lock_timestamp: int = 0
    dropped: bool = False
    last_pull_timestamp: int = 0
    last_consume_timestamp: int = 0

    def _to_dict(self) -> dict[str, Any]:
        return {
            "commitOffset": self.commit_offset,
            "cachedMsgMinOffset": self.cached_msg_min_offset,
            "cachedMsgMaxOffset": self.cached_msg_max_offset,
            "cachedMsgCount": self.cached_msg_count,
            "cachedMsgSizeInMiB": self.cached_msg_size_in_mib,
            "transactionMsgMinOffset": self.transaction_msg_min_offset,
            "transactionMsgMaxOffset": self.transaction_msg_max_offset,
            "transactionMsgCount": self.transaction_msg_count,
            "locked": self.locked,
            "tryUnlockTimes": self.try_unlock_times,
            "lastLockTimestamp": self.last_lock_timestamp,
            "dropped": self.dropped,
            "lastPullTimestamp": self.last_pull_timestamp,
            "lastConsumeTimestamp": self.last_consume_timestamp,
        }


@dataclass
class ConsumeStatus:
    pull_rt: float = 0.0
    pull_tps: float = 0.0
    consume_rt: float = 0.0
    consume_ok_tps: float = 0.0
    consume_failed_tps: float = 0.0
    consume_failed_msgs: int = 0

    def _to_dict(self) -> dict[str, Any]:
        return {
            "pullRT": _number(self.pull_rt),
            "pullTPS": _number(self.pull_tps),
            "consumeRT": _number(self.consume_rt),
            "consumeOKTPS": _number(self.consume_ok_tps),
            "consumeFailedTPS": _number(self.consume_failed_tps),
            "consumeFailedMsgs": self.consume_failed_msgs,
        }


def _compare_subscriptions(a: SubscriptionData, b: SubscriptionData) -> int:
    if a.class_filter_mode != b.class_filter_mode:
        return 1 if a.class_filter_mode else -1
    if a.sub_version != b.sub_version:
        return -1 if a.sub_version > b.sub_version else 1
    for left, right in (
        (_dumps(sorted(a.tags, key=str)), _dumps(sorted(b.tags, key=str))),
        (_dumps(sorted(a.codes, key=str)), _dumps(sorted(b.codes, key=str))),
    ):
        if left != right:
            return -1 if left > right else 1
    return 0


def _queue_table_json(table: dict[MessageQueue, Any], value_json) -> str:
    entries = (
        f"{_dumps(_queue_to_dict(mq))}:{value_json(table[mq])}" for mq in sorted(table)
    )
    return "{" + ",".join(entries) + "}"


@dataclass
class ConsumerRunningInfo:
    """Runtime snapshot of a consumer, reported on the broker's request."""

    properties: dict[str, str] = field(default_factory=dict)
    subscription_data: list[SubscriptionData] = field(default_factory=list)
    mq_table: dict[MessageQueue, ProcessQueueInfo] = field(default_factory=dict)
    status_table: dict[str, ConsumeStatus] = field(default_factory=dict)
    jstack: str = ""

    def encode(self) -> bytes:
        """Serialise; the queue table uses queue objects as keys, so it is not strict JSON."""
        properties = _dumps(dict(sorted(self.properties.items())))
        status = _dumps({k: self.status_table[k]._to_dict() for k in sorted(self.status_table)})
        subs = sorted(self.subscription_data, key=functools.cmp_to_key(_compare_subscriptions))
        subscriptions = _dumps([s.to_dict() for s in subs])
        table = _queue_table_json(self.mq_table, lambda info: _dumps(info._to_dict()))
        text = (
            f'{{"properties":{properties},"statusTable":{status},'
            f'"subscriptionSet":{subscriptions},"mqTable":{table}, '
            f'"jstack":{_dumps(self.jstack)} }}'
        )
        return text.encode("utf-8")


@dataclass
class ConsumerStatus:
    mq_offset_map: dict[MessageQueue, int] = field(default_factory=dict)

    def encode(self) -> bytes:
        table = _queue_table_json(self.mq_offset_map, _dumps)
        return f'{{"messageQueueTable":{table}}}'.encode("utf-8")


class ConsumeResult(enum.IntEnum):
    CONSUME_SUCCESS = 0
    CONSUME_RETRY_LATER = 1
    ROLLBACK = 2
    COMMIT = 3
    THROW_EXCEPTION = 4
    RETURN_NULL = 5


@dataclass
class ConsumeMessageDirectlyResult:
    order: bool = False
    auto_commit: bool = False
    consume_result: ConsumeResult = ConsumeResult.CONSUME_SUCCESS
    remark: str = ""
    spent_time_mills: int = 0

    def encode(self) -> bytes:
        return _dumps(
            {
                "order": self.order,
                "autoCommit": self.auto_commit,
                "consumeResult": int(self.consume_result),
                "remark": self.remark,
                "spentTimeMills": self.spent_time_mills,
            }
        ).encode("utf-8")


@dataclass
class ResetOffsetBody:
    offset_table: dict[MessageQueue, int] = field(default_factory=dict)

    @classmethod
    def decode(cls, body: Union[bytes, str]) -> "ResetOffsetBody":
        """Read either the array-of-pairs layout or the object-keyed layout.

        Raises ``ValueError`` when an entry cannot be read.
        """
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            return cls(_parse_object_keyed(text))
        return cls(_parse_pairs(document))


def _parse_pairs(document: Any) -> dict[MessageQueue, int]:
    table = document.get("offsetTable") if isinstance(document, dict) else None
    if not table:
        return {}
    if not isinstance(table, list):
        raise ValueError(f"unexpected offset table: {table!r}")
    result: dict[MessageQueue, int] = {}
    for entry in table:
        if not (isinstance(entry, list) and len(entry) == 2 and isinstance(entry[0], dict)):
            raise ValueError(f"malformed offset table entry: {entry!r}")
        queue, offset = entry
        try:
            result[_queue_from_dict(queue)] = int(offset)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"malformed offset table entry: {entry!r}") from exc
    return result


def _parse_object_keyed(text: str) -> dict[MessageQueue, int]:
    match = _TABLE_KEY_PATTERN.search(text)
    if match is None:
        return {}
    result: dict[MessageQueue, int] = {}
    for key, offset in _PAIR_PATTERN.findall(text[match.end():]):
        try:
            queue = _queue_from_dict(json.loads(key))
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as exc:
            raise ValueError(f"malformed message queue: {key}") from exc
        result[queue] = int(offset)
    return result