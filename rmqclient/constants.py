"""Well-known group and topic names, response codes and response headers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

RETRY_GROUP_TOPIC_PREFIX = "%RETRY%"
DEFAULT_CONSUMER_GROUP = "DEFAULT_CONSUMER"
CLIENT_INNER_PRODUCER_GROUP = "CLIENT_INNER_PRODUCER"
SYSTEM_TOPIC_PREFIX = "rmq_sys_"
REPLY_MESSAGE_FLAG = "reply"
REPLY_TOPIC_POSTFIX = "REPLY_TOPIC"

# Broker protocol versions.
V4_1_0 = 0


class ResponseCode(enum.IntEnum):
    """Response codes returned by brokers and name servers."""

    SUCCESS = 0
    ERROR = 1
    FLUSH_DISK_TIMEOUT = 10
    SLAVE_NOT_AVAILABLE = 11
    FLUSH_SLAVE_TIMEOUT = 12
    SERVICE_NOT_AVAILABLE = 14
    NO_PERMISSION = 16
    TOPIC_NOT_EXIST = 17
    PULL_NOT_FOUND = 19
    PULL_RETRY_IMMEDIATELY = 20
    PULL_OFFSET_MOVED = 21
    QUERY_NOT_FOUND = 22


@dataclass
class SendMessageResponse:
    msg_id: str = ""
    queue_id: int = 0
    queue_offset: int = 0
    transaction_id: str = ""
    msg_region: str = ""


@dataclass
class PullMessageResponse:
    suggest_which_broker_id: int = 0
    next_begin_offset: int = 0
    min_offset: int = 0
    max_offset: int = 0


def get_reply_topic(cluster_name: str) -> str:
    """Name of the reply topic of ``cluster_name``."""
    return f"{cluster_name}_{REPLY_TOPIC_POSTFIX}"


def get_retry_topic(group: str) -> str:
    """Retry topic of a consumer group; already-prefixed names are kept."""
    if group.startswith(RETRY_GROUP_TOPIC_PREFIX):
        return group
    return RETRY_GROUP_TOPIC_PREFIX + group