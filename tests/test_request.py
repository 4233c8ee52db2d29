import pytest

from rmqclient.remote.codec import RemotingCommand, decode, encode
from rmqclient.request import (
    CheckTransactionStateRequestHeader,
    ConsumeMessageDirectlyHeader,
    ConsumerSendMsgBackRequestHeader,
    CreateTopicRequestHeader,
    DeleteTopicRequestHeader,
    EndTransactionRequestHeader,
    GetConsumerListRequestHeader,
    GetConsumerRunningInfoHeader,
    GetConsumerStatusRequestHeader,
    GetMaxOffsetRequestHeader,
    GetRouteInfoRequestHeader,
    PullMessageRequestHeader,
    QueryConsumerOffsetRequestHeader,
    QueryMessageRequestHeader,
    ReplyMessageRequestHeader,
    RequestCode,
    ResetOffsetHeader,
    SearchOffsetRequestHeader,
    SendMessageRequestHeader,
    SendMessageRequestV2Header,
    TopicListRequestHeader,
    UpdateConsumerOffsetRequestHeader,
    ViewMessageRequestHeader,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (RequestCode.SEND_MESSAGE, 10),
        (RequestCode.HEART_BEAT, 34),
        (RequestCode.GET_ROUTE_INFO_BY_TOPIC, 105),
        (RequestCode.PUSH_REPLY_MESSAGE_TO_CLIENT, 326),
    ],
)
def test_request_codes_go_over_the_wire(code, expected):
    command = RemotingCommand.create(code, GetRouteInfoRequestHeader("t"), b"")
    decoded = decode(encode(command)[4:])
    assert decoded.code == expected
    assert decoded.ext_fields == {"topic": "t"}


def test_send_message_header_uses_fixed_default_topic():
    header = SendMessageRequestHeader(
        producer_group="pg",
        topic="t1",
        queue_id=3,
        born_timestamp=1574791577504,
        default_topic="other",
        default_topic_queue_nums=8,
        unit_mode=True,
        properties="a\x01b\x02",
    )
    encoded = header.encode()
    assert encoded["defaultTopic"] == "TBW102"
    assert encoded["defaultTopicQueueNums"] == "4"
    assert encoded["producerGroup"] == "pg"
    assert encoded["queueId"] == "3"
    assert encoded["bornTimestamp"] == "1574791577504"
    assert encoded["unitMode"] == "true"
    assert encoded["batch"] == "false"
    assert encoded["properties"] == "a\x01b\x02"


def test_send_message_v2_header_short_keys():
    header = SendMessageRequestV2Header(
        producer_group="pg",
        topic="t1",
        default_topic="dt",
        default_topic_queue_nums=8,
        queue_id=2,
        batch=True,
    )
    encoded = header.encode()
    assert sorted(encoded) == list("abcdefghijklm")
    assert encoded["a"] == "pg"
    assert encoded["b"] == "t1"
    assert encoded["c"] == "dt"
    assert encoded["d"] == "8"
    assert encoded["e"] == "2"
    assert encoded["m"] == "true"


def test_end_transaction_header():
    header = EndTransactionRequestHeader(
        producer_group="pg", commit_log_offset=123, msg_id="m1", transaction_id="tx"
    )
    encoded = header.encode()
    assert encoded["commitLogOffset"] == "123"
    assert encoded["msgId"] == "m1"
    assert encoded["transactionId"] == "tx"
    assert encoded["fromTransactionCheck"] == "false"


def test_check_transaction_round_trip_keeps_offsets():
    header = CheckTransactionStateRequestHeader(
        tran_state_table_offset=11, commit_log_offset=22, msg_id="m", transaction_id="t", offset_msg_id="o"
    )
    decoded = CheckTransactionStateRequestHeader.decode(header.encode())
    assert decoded.tran_state_table_offset == 11
    assert decoded.commit_log_offset == 22
    assert decoded.msg_id == "o"
    assert decoded.transaction_id == ""


def test_check_transaction_bad_number_gives_zero():
    decoded = CheckTransactionStateRequestHeader.decode({"commitLogOffset": "abc", "msgId": "m"})
    assert decoded.commit_log_offset == 0
    assert decoded.msg_id == "m"


def test_decode_empty_properties_gives_defaults():
    assert ResetOffsetHeader.decode({}) == ResetOffsetHeader()
    assert ReplyMessageRequestHeader.decode({}) == ReplyMessageRequestHeader()
    assert GetConsumerRunningInfoHeader.decode({}) == GetConsumerRunningInfoHeader()


def test_pull_message_header():
    header = PullMessageRequestHeader(
        consumer_group="cg", topic="t", queue_id=1, queue_offset=99, suspend_timeout_millis=20000,
        sub_expression="*", expression_type="TAG",
    )
    encoded = header.encode()
    assert encoded["suspendTimeoutMillis"] == "20000"
    assert encoded["subscription"] == "*"
    assert encoded["expressionType"] == "TAG"
    assert encoded["queueOffset"] == "99"


def test_simple_headers():
    assert GetConsumerListRequestHeader("cg").encode() == {"consumerGroup": "cg"}
    assert GetMaxOffsetRequestHeader("t", 5).encode() == {"topic": "t", "queueId": "5"}
    assert QueryConsumerOffsetRequestHeader("cg", "t", 5).encode() == {
        "consumerGroup": "cg", "topic": "t", "queueId": "5",
    }
    assert SearchOffsetRequestHeader("t", 5, 77).encode()["timestamp"] == "77"
    assert UpdateConsumerOffsetRequestHeader("cg", "t", 5, 9).encode()["commitOffset"] == "9"
    assert GetRouteInfoRequestHeader("t").encode() == {"topic": "t"}
    assert ViewMessageRequestHeader(42).encode() == {"offset": "42"}
    assert TopicListRequestHeader("t").encode() == {"topic": "t"}
    assert DeleteTopicRequestHeader("t").encode() == {"topic": "t"}


def test_consumer_send_back_and_create_topic():
    back = ConsumerSendMsgBackRequestHeader(group="g", offset=7, delay_level=3, max_reconsume_times=16)
    encoded = back.encode()
    assert encoded["delayLevel"] == "3"
    assert encoded["maxReconsumeTimes"] == "16"
    create = CreateTopicRequestHeader(topic="t", default_topic="TBW102", read_queue_nums=4, order=True)
    assert create.encode()["order"] == "true"
    assert create.encode()["readQueueNums"] == "4"
    query = QueryMessageRequestHeader(topic="t", key="k", max_num=32, begin_timestamp=1, end_timestamp=2)
    assert query.encode()["maxNum"] == "32"


@pytest.mark.parametrize("text, expected", [("true", True), ("1", True), ("True", True), ("false", False), ("yes", False)])
def test_running_info_jstack_parsing(text, expected):
    decoded = GetConsumerRunningInfoHeader.decode({"jstackEnable": text})
    assert decoded.jstack_enable is expected


def test_running_info_round_trip():
    header = GetConsumerRunningInfoHeader("cg", "127.0.0.1@1", True)
    assert GetConsumerRunningInfoHeader.decode(header.encode()) == header


def test_reset_offset_round_trip_drops_force():
    header = ResetOffsetHeader(topic="t", group="g", timestamp=1574791577504, is_force=True)
    decoded = ResetOffsetHeader.decode(header.encode())
    assert decoded.topic == "t"
    assert decoded.timestamp == 1574791577504
    assert decoded.is_force is False


def test_consume_directly_and_status_round_trip():
    direct = ConsumeMessageDirectlyHeader("cg", "cid", "mid", "broker-a")
    assert ConsumeMessageDirectlyHeader.decode(direct.encode()) == direct
    status = GetConsumerStatusRequestHeader("t", "g", "10.0.0.1")
    assert GetConsumerStatusRequestHeader.decode(status.encode()) == status


def test_reply_header_round_trip_without_unit_mode():
    header = ReplyMessageRequestHeader(
        producer_group="pg", topic="t", default_topic="dt", default_topic_queue_nums=4,
        queue_id=1, sys_flag=2, born_timestamp=3, flag=4, properties="p",
        reconsume_times=5, unit_mode=True, born_host="h1", store_host="h2", store_timestamp=6,
    )
    encoded = header.encode()
    assert "unitMode" not in encoded
    decoded = ReplyMessageRequestHeader.decode(encoded)
    assert decoded.unit_mode is False
    decoded.unit_mode = True
    assert decoded == header


def test_reply_header_flag_clamped_to_int32():
    decoded = ReplyMessageRequestHeader.decode({"flag": "99999999999", "queueId": "x"})
    assert decoded.flag == 2**31 - 1
    assert decoded.queue_id == 0