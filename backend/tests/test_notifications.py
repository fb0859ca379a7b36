import pytest

from relay_harness import FRAUD_URL, NOTIFY_URL, OPERATOR_ID, RelayHarness

from relaybot.errors import ExternalCallError
from relaybot.services.notifications import parse_fraud_list


def notify_harness(interval_ms: int = 3_600_000) -> RelayHarness:
    h = RelayHarness(enable_notification=True, interval_ms=interval_ms)
    h.verify(OPERATOR_ID)
    h.verify("100")
    return h


def alerts(h: RelayHarness) -> list[str]:
    return [t for t in h.gateway.texts_to(OPERATOR_ID) if t == "You have a new guest message"]


def test_messages_inside_interval_trigger_one_alert() -> None:
    h = notify_harness()

    first = h.send("100", "one")
    h.clock.advance(0.010)
    second = h.send("100", "two")

    assert first.notified is True
    assert second.notified is False
    assert len(alerts(h)) == 1


def test_messages_beyond_interval_trigger_two_alerts() -> None:
    h = notify_harness()

    h.send("100", "one")
    h.clock.advance(3_700)
    h.send("100", "two")

    assert len(alerts(h)) == 2
    assert h.store.get("lastmsg-100") == h.clock.ms()


def test_throttle_is_per_chat() -> None:
    h = notify_harness()
    h.verify("200")

    h.send("100", "one")
    h.send("200", "one")

    assert len(alerts(h)) == 2


def test_notifications_disabled_by_default(verified_harness: RelayHarness) -> None:
    h = verified_harness

    outcome = h.send("100", "hello")

    assert outcome.notified is False
    assert h.store.get("lastmsg-100") is None
    assert NOTIFY_URL not in h.content.fetches


def test_fraud_hit_alerts_on_every_message_regardless_of_throttle() -> None:
    h = notify_harness()
    h.content.documents[FRAUD_URL] = "42\n100\n\n7 \n"

    first = h.send("100", "one")
    second = h.send("100", "two")

    assert first.fraud_alert and second.fraud_alert
    assert first.action == second.action == "relayed"
    fraud_texts = [t for t in h.gateway.texts_to(OPERATOR_ID) if t.startswith("Fraud suspect")]
    assert fraud_texts == ["Fraud suspect detected, UID 100"] * 2
    assert len(h.gateway.calls_to("forwardMessage")) == 2


def test_fraud_list_is_fetched_fresh_each_time(verified_harness: RelayHarness) -> None:
    h = verified_harness

    assert h.send("100", "one").fraud_alert is False
    h.content.documents[FRAUD_URL] = "100\n"
    assert h.send("100", "two").fraud_alert is True
    assert h.content.fetches.count(FRAUD_URL) == 2


def test_absent_chat_triggers_no_fraud_alert(verified_harness: RelayHarness) -> None:
    h = verified_harness
    h.content.documents[FRAUD_URL] = "1000\n10\n"

    outcome = h.send("100", "hello")

    assert outcome.fraud_alert is False
    assert not any(t.startswith("Fraud suspect") for t in h.gateway.texts_to(OPERATOR_ID))


def test_fraud_fetch_failure_does_not_abort_relay() -> None:
    h = notify_harness()
    h.content.failing.add(FRAUD_URL)

    outcome = h.send("100", "hello")

    assert outcome.action == "relayed"
    assert outcome.fraud_alert is False
    assert outcome.notified is True
    assert h.store.get(f"msg-map-{outcome.forwarded_message_id}") == "100"


def test_fraud_detector_disabled_without_url() -> None:
    h = RelayHarness(fraud_db_url="")
    h.verify(OPERATOR_ID)
    h.verify("100")

    h.send("100", "hello")

    assert FRAUD_URL not in h.content.fetches


def test_parse_fraud_list_ignores_blanks_and_whitespace() -> None:
    assert parse_fraud_list("1\r\n 2 \n\n3") == {"1", "2", "3"}
    assert parse_fraud_list("") == set()


def test_failed_notification_does_not_start_the_throttle_window() -> None:
    h = notify_harness()
    h.content.failing.add(NOTIFY_URL)

    with pytest.raises(ExternalCallError):
        h.send("100", "one")
    assert h.store.get("lastmsg-100") is None

    h.content.failing.clear()
    h.clock.advance(0.010)
    outcome = h.send("100", "two")

    assert outcome.notified is True
    assert len(alerts(h)) == 1
    assert h.store.get("lastmsg-100") == h.clock.ms()


def test_undelivered_notification_does_not_start_the_throttle_window() -> None:
    h = notify_harness()
    h.gateway.fail_methods.add("sendMessage")

    outcome = h.send("100", "one")

    assert outcome.action == "relayed"
    assert outcome.notified is False
    assert h.store.get("lastmsg-100") is None
