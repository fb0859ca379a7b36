from relay_harness import OPERATOR_ID, RelayHarness

from relaybot.services.access_control import parse_operator_command


def test_block_suppresses_relay_and_side_effects() -> None:
    h = RelayHarness(enable_notification=True)
    h.verify(OPERATOR_ID)
    h.verify("100")
    forwarded_id = h.forward_from("100")

    outcome = h.send(OPERATOR_ID, "/block", reply_to=forwarded_id)
    assert outcome.action == "block"
    assert outcome.target_chat_id == "100"
    assert h.store.get("isblocked-100") is True
    assert h.gateway.texts_to(OPERATOR_ID)[-1] == "UID:100 blocked"

    h.gateway.calls.clear()
    h.content.fetches.clear()
    h.clock.advance(7200)
    outcome = h.send("100", "are you there?")

    assert outcome.action == "blocked"
    assert h.gateway.texts_to("100") == ["You are blocked."]
    assert h.gateway.calls_to("forwardMessage") == []
    assert h.gateway.texts_to(OPERATOR_ID) == []
    assert h.content.fetches == []


def test_unblock_writes_explicit_false_and_restores_relay(verified_harness: RelayHarness) -> None:
    h = verified_harness
    forwarded_id = h.forward_from("100")
    h.send(OPERATOR_ID, "/block", reply_to=forwarded_id)

    outcome = h.send(OPERATOR_ID, "/unblock", reply_to=forwarded_id)

    assert outcome.action == "unblock"
    assert "isblocked-100" in h.store.keys()
    assert h.store.get("isblocked-100") is False
    assert h.send("100", "back again").action == "relayed"


def test_checkblock_reports_status(verified_harness: RelayHarness) -> None:
    h = verified_harness
    forwarded_id = h.forward_from("100")

    h.send(OPERATOR_ID, "/checkblock", reply_to=forwarded_id)
    h.send(OPERATOR_ID, "/block", reply_to=forwarded_id)
    h.send(OPERATOR_ID, "/checkblock", reply_to=forwarded_id)

    texts = h.gateway.texts_to(OPERATOR_ID)
    assert texts[0] == "UID:100 is not blocked"
    assert texts[-1] == "UID:100 is blocked"


def test_operator_cannot_block_self(verified_harness: RelayHarness) -> None:
    h = verified_harness
    h.store.put("msg-map-4242", OPERATOR_ID)

    outcome = h.send(OPERATOR_ID, "/block", reply_to=4242)

    assert outcome.action == "self_block"
    assert h.store.get(f"isblocked-{OPERATOR_ID}") is None
    assert h.gateway.texts_to(OPERATOR_ID)[-1] == "You cannot block yourself."


def test_commands_without_reply_target_get_usage(verified_harness: RelayHarness) -> None:
    h = verified_harness

    for command in ("/block", "/unblock", "/checkblock"):
        outcome = h.send(OPERATOR_ID, command)
        assert outcome.action == "usage"

    assert not [k for k in h.store.keys() if k.startswith("isblocked-")]
    assert all(t.startswith("Usage:") for t in h.gateway.texts_to(OPERATOR_ID))


def test_command_on_unmapped_message_reports_unknown_route(verified_harness: RelayHarness) -> None:
    h = verified_harness

    outcome = h.send(OPERATOR_ID, "/block", reply_to=31337)

    assert outcome.action == "unknown_route"
    assert not [k for k in h.store.keys() if k.startswith("isblocked-")]


def test_guest_sending_block_command_is_just_relayed(verified_harness: RelayHarness) -> None:
    h = verified_harness

    outcome = h.send("100", "/block")

    assert outcome.action == "relayed"
    assert not [k for k in h.store.keys() if k.startswith("isblocked-")]


def test_parse_operator_command() -> None:
    assert parse_operator_command("/block") == "block"
    assert parse_operator_command("  /UNBLOCK ") == "unblock"
    assert parse_operator_command("/checkblock@relay_bot") == "checkblock"
    assert parse_operator_command("/start") is None
    assert parse_operator_command("block") is None
    assert parse_operator_command(None) is None
