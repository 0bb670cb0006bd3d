import pytest

from orderflow.core.path_finder import PathFinder, order_path_finder
from orderflow.core.state_machine import MachineStoppedError, OrderStateMachine
from orderflow.core.states import INITIAL_STATE, TRANSITIONS, OrderEvent, OrderState


def test_new_machine_starts_created():
    sm = OrderStateMachine()
    assert sm.current_state == OrderState.CREATED
    assert sm.history == []


def test_apply_accepts_valid_event():
    sm = OrderStateMachine()
    assert sm.apply(OrderEvent.PAY) is True
    assert sm.current_state == OrderState.PAID
    assert sm.last_transition() == {
        "from": OrderState.CREATED,
        "event": OrderEvent.PAY,
        "to": OrderState.PAID,
        "replayed": False,
    }


def test_rejected_event_leaves_state_for_every_missing_rule():
    for state in OrderState:
        for event in OrderEvent:
            if (state, event) in TRANSITIONS:
                continue
            sm = OrderStateMachine(initial=state)
            assert sm.apply(event) is False
            assert sm.current_state == state
            assert sm.history == []


def test_repeated_rejection_never_mutates():
    sm = OrderStateMachine()
    for _ in range(5):
        assert sm.apply(OrderEvent.DELIVER) is False
    assert sm.current_state == OrderState.CREATED


@pytest.mark.parametrize("terminal", [OrderState.DELIVERED, OrderState.CANCELLED])
def test_terminal_closure(terminal):
    sm = OrderStateMachine()
    assert sm.replay_to(terminal, order_path_finder)
    for event in OrderEvent:
        assert sm.apply(event) is False
    assert sm.current_state == terminal


def test_replay_reaches_each_state_and_marks_history():
    for state in OrderState:
        sm = OrderStateMachine()
        assert sm.replay_to(state, order_path_finder) is True
        assert sm.current_state == state
        assert all(entry["replayed"] for entry in sm.history)


def test_replay_then_live_event():
    sm = OrderStateMachine()
    assert sm.replay_to(OrderState.PAID, order_path_finder)
    assert sm.apply(OrderEvent.START_PREPARATION)
    assert sm.current_state == OrderState.IN_PREPARATION
    assert sm.last_transition()["replayed"] is False


def test_replay_fails_when_table_and_finder_diverge():
    broken = dict(TRANSITIONS)
    del broken[(OrderState.PAID, OrderEvent.START_PREPARATION)]
    sm = OrderStateMachine(table=broken)
    # finder was built from the full table, so its path uses the missing rule
    assert sm.replay_to(OrderState.IN_PREPARATION, order_path_finder) is False
    assert sm.current_state == OrderState.PAID


def test_replay_fails_without_path():
    finder = PathFinder({(OrderState.CREATED, OrderEvent.CANCEL): OrderState.CANCELLED}, INITIAL_STATE)
    sm = OrderStateMachine()
    assert sm.replay_to(OrderState.PAID, finder) is False
    assert sm.current_state == OrderState.CREATED


def test_stopped_machine_refuses_work():
    sm = OrderStateMachine()
    sm.stop()
    assert sm.stopped
    with pytest.raises(MachineStoppedError):
        sm.apply(OrderEvent.PAY)
    with pytest.raises(MachineStoppedError):
        sm.replay_to(OrderState.PAID, order_path_finder)


def test_instances_do_not_share_state():
    a = OrderStateMachine()
    b = OrderStateMachine()
    a.apply(OrderEvent.PAY)
    assert b.current_state == OrderState.CREATED
    assert b.history == []
