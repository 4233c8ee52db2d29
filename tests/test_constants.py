from rmqclient.constants import (
    RETRY_GROUP_TOPIC_PREFIX,
    PullMessageResponse,
    ResponseCode,
    get_reply_topic,
    get_retry_topic,
)


def test_retry_topic_adds_prefix():
    assert get_retry_topic("my_group") == RETRY_GROUP_TOPIC_PREFIX + "my_group"


def test_retry_topic_is_idempotent():
    once = get_retry_topic("my_group")
    assert get_retry_topic(once) == once


def test_retry_topic_keeps_prefixed_group():
    assert get_retry_topic("%RETRY%mq-client-go-test%GID_GO_TEST") == (
        "%RETRY%mq-client-go-test%GID_GO_TEST"
    )


def test_reply_topic():
    assert get_reply_topic("DefaultCluster") == "DefaultCluster_REPLY_TOPIC"


def test_response_code_lookup_by_wire_value():
    assert ResponseCode(19) is ResponseCode.PULL_NOT_FOUND
    assert ResponseCode(17) is ResponseCode.TOPIC_NOT_EXIST


def test_pull_message_response_holds_offsets():
    response = PullMessageResponse(next_begin_offset=42, max_offset=100)
    assert response.next_begin_offset == 42
    assert response.max_offset == 100
    assert response.min_offset == 0