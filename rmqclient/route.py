"""Topic route data, as published by name servers, and what producers and consumers derive from it."""

from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from rmqclient.model import MessageQueue
from rmqclient.perm import queue_is_readable, queue_is_writeable

ENV_NAME_SERVER_ADDR = "NAMESRV_ADDR"
REQUEST_TIMEOUT = 6.0
DEFAULT_TOPIC = "TBW102"
DEFAULT_QUEUE_NUMS = 4
MASTER_ID = 0

# Name servers may send maps keyed by bare integers, which strict JSON rejects.
_BARE_INT_KEY = re.compile(r'([{,]\s*)(-?\d+)(\s*:)')


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _parse_int(text: str) -> int:
    try:
        return int(text.strip().strip('"'))
    except ValueError:
        return 0


@dataclass
class FindBrokerResult:
    broker_addr: str
    slave: bool
    broker_version: int = 0


@dataclass
class QueueData:
    """Queue counts and permissions of a topic on one broker."""

    broker_name: str = ""
    read_queue_nums: int = 0
    write_queue_nums: int = 0
    perm: int = 0
    topic_syn_flag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "brokerName": self.broker_name,
            "readQueueNums": self.read_queue_nums,
            "writeQueueNums": self.write_queue_nums,
            "perm": self.perm,
            "topicSynFlag": self.topic_syn_flag,
        }

    @classmethod
    def _from_dict(cls, data: Any) -> "QueueData":
        if not isinstance(data, dict):
            raise ValueError(f"malformed queue data: {data!r}")
        try:
            return cls(
                broker_name=str(data.get("brokerName", "")),
                read_queue_nums=int(data.get("readQueueNums", 0)),
                write_queue_nums=int(data.get("writeQueueNums", 0)),
                perm=int(data.get("perm", 0)),
                topic_syn_flag=int(data.get("topicSynFlag", 0)),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"malformed queue data: {data!r}") from exc


@dataclass
class BrokerData:
    """A broker group: its cluster, name and addresses keyed by broker id (0 is the master)."""

    cluster: str = ""
    broker_name: str = ""
    broker_addresses: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cluster": self.cluster,
            "brokerName": self.broker_name,
            "brokerAddrs": {str(k): self.broker_addresses[k] for k in sorted(self.broker_addresses)},
        }

    @classmethod
    def _from_dict(cls, data: Any) -> "BrokerData":
        if not isinstance(data, dict):
            raise ValueError(f"malformed broker data: {data!r}")
        addrs = data.get("brokerAddrs") or {}
        if not isinstance(addrs, dict):
            raise ValueError(f"malformed broker addresses: {addrs!r}")
        return cls(
            cluster=str(data.get("cluster", "")),
            broker_name=str(data.get("brokerName", "")),
            broker_addresses={_parse_int(str(k)): str(v) for k, v in addrs.items()},
        )


@dataclass
class TopicRouteData:
    """Where a topic's queues live."""

    order_topic_conf: str = ""
    queue_data_list: list[QueueData] = field(default_factory=list)
    broker_data_list: list[BrokerData] = field(default_factory=list)

    @classmethod
    def decode(cls, data: Union[str, bytes]) -> "TopicRouteData":
        """Parse a route document; raise ``ValueError`` when it cannot be read."""
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        try:
            document = json.loads(_BARE_INT_KEY.sub(r'\1"\2"\3', text))
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid route data: {exc}") from exc
        if not isinstance(document, dict):
            raise ValueError("route data is not an object")
        queues = document.get("queueDatas")
        if not isinstance(queues, list):
            raise ValueError("route data has no queue list")
        brokers = document.get("brokerDatas") or []
        if not isinstance(brokers, list):
            raise ValueError("route data broker list is not a list")
        return cls(
            queue_data_list=[QueueData._from_dict(q) for q in queues],
            broker_data_list=[BrokerData._from_dict(b) for b in brokers],
        )

    def clone(self) -> "TopicRouteData":
        """Copy the lists; their elements are shared."""
        return TopicRouteData(
            order_topic_conf=self.order_topic_conf,
            queue_data_list=list(self.queue_data_list),
            broker_data_list=list(self.broker_data_list),
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "OrderTopicConf": self.order_topic_conf,
                "queueDatas": [q.to_dict() for q in self.queue_data_list],
                "brokerDatas": [b.to_dict() for b in self.broker_data_list],
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )

    def __str__(self) -> str:
        return self.to_json()


@dataclass
class TopicPublishInfo:
    """Queues a producer may send to for one topic."""

    order_topic: bool = False
    have_topic_router_info: bool = False
    mq_list: list[MessageQueue] = field(default_factory=list)
    route_data: Optional[TopicRouteData] = None
    topic_queue_index: int = 0
    _lock: Any = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def is_ok(self) -> bool:
        return len(self.mq_list) > 0

    def fetch_queue_index(self) -> int:
        """Next queue index in round-robin order, or -1 without queues."""
        length = len(self.mq_list)
        if length <= 0:
            return -1
        with self._lock:
            self.topic_queue_index = _to_int32(self.topic_queue_index + 1)
            index = self.topic_queue_index
        remainder = abs(index) % length
        return -remainder if index < 0 else remainder


def route_data_to_subscribe_info(topic: str, data: TopicRouteData) -> list[MessageQueue]:
    """Every readable queue of ``topic``."""
    return [
        MessageQueue(topic=topic, broker_name=qd.broker_name, queue_id=i)
        for qd in data.queue_data_list
        if queue_is_readable(qd.perm)
        for i in range(qd.read_queue_nums)
    ]


def route_data_to_publish_info(topic: str, data: TopicRouteData) -> TopicPublishInfo:
    """Writable queues on brokers with a master; sorts ``data.queue_data_list`` by broker name."""
    info = TopicPublishInfo(route_data=data, order_topic=False)

    if data.order_topic_conf:
        for broker in data.order_topic_conf.split(";"):
            name, sep, nums = broker.partition(":")
            if not sep:
                raise ValueError(f"malformed order topic conf entry: {broker!r}")
            count = _parse_int(nums.split(":")[0])
            info.mq_list.extend(
                MessageQueue(topic=topic, broker_name=name, queue_id=i) for i in range(count)
            )
        info.order_topic = True
        return info

    data.queue_data_list.sort(key=lambda qd: qd.broker_name)
    for qd in data.queue_data_list:
        if not queue_is_writeable(qd.perm):
            continue
        broker = next((bd for bd in data.broker_data_list if bd.broker_name == qd.broker_name), None)
        if broker is None or not broker.broker_addresses.get(MASTER_ID, ""):
            continue
        info.mq_list.extend(
            MessageQueue(topic=topic, broker_name=qd.broker_name, queue_id=i)
            for i in range(qd.write_queue_nums)
        )
    return info


def topic_route_data_is_changed(
    old_data: Optional[TopicRouteData], new_data: Optional[TopicRouteData]
) -> bool:
    """Compare two routes regardless of list order."""
    if old_data is None or new_data is None:
        return True

    def normalised(data: TopicRouteData) -> tuple[list[QueueData], list[BrokerData]]:
        cloned = data.clone()
        queues = sorted(cloned.queue_data_list, key=lambda q: q.broker_name, reverse=True)
        brokers = sorted(cloned.broker_data_list, key=lambda b: b.broker_name, reverse=True)
        return queues, brokers

    return normalised(old_data) != normalised(new_data)