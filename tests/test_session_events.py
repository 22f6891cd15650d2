from quoteportal.auth.gate import Role
from quoteportal.auth.session_events import AuthEvent, AuthStateChannel


def test_listeners_receive_resolved_caller(gate):
    channel = AuthStateChannel(gate)
    seen = []
    channel.subscribe(lambda event, caller: seen.append((event, caller.role, caller.user_id)))

    channel.publish(AuthEvent.SIGNED_IN, {"sub": "u1", "app_metadata": {"role": "admin"}})
    channel.publish(AuthEvent.SIGNED_OUT, {"sub": "u1"})

    assert seen == [
        (AuthEvent.SIGNED_IN, Role.ADMINISTRATOR, "u1"),
        (AuthEvent.SIGNED_OUT, Role.ANONYMOUS, None),
    ]


def test_unsubscribe_stops_delivery_and_is_idempotent(gate):
    channel = AuthStateChannel(gate)
    seen = []
    subscription = channel.subscribe(lambda event, caller: seen.append(event))
    assert channel.listener_count == 1

    subscription.unsubscribe()
    subscription.unsubscribe()
    channel.publish(AuthEvent.TOKEN_REFRESHED, {"sub": "u1"})

    assert seen == []
    assert not subscription.active
    assert channel.listener_count == 0


def test_subscription_as_context_manager(gate):
    channel = AuthStateChannel(gate)
    with channel.subscribe(lambda event, caller: None):
        assert channel.listener_count == 1
    assert channel.listener_count == 0


def test_failing_listener_does_not_block_others(gate):
    channel = AuthStateChannel(gate)
    seen = []

    def broken(event, caller):
        raise RuntimeError("listener bug")

    channel.subscribe(broken)
    channel.subscribe(lambda event, caller: seen.append(caller.user_id))

    caller = channel.publish(AuthEvent.USER_UPDATED, {"sub": "u2"})
    assert caller.user_id == "u2"
    assert seen == ["u2"]
