from bookflow.domain import OrderStatus
from bookflow.exceptions import InvalidTransition
from bookflow.utils.fsm import ORDER_FSM, TransitionValidator
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(InvalidTransition) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.details['current_state'] == 'A'


def test_order_graph_terminal_states_have_no_exits():
    for status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
        assert ORDER_FSM.targets(status) == set()


def test_order_graph_forward_path():
    path = [OrderStatus.NEW, OrderStatus.DESIGNING, OrderStatus.PRINTING,
            OrderStatus.INTERNATIONAL_SHIPPING, OrderStatus.DOMESTIC_SHIPPING, OrderStatus.DELIVERED]
    for current, target in zip(path, path[1:]):
        assert ORDER_FSM.can_transition(current, target)
    # printing may skip the international leg
    assert ORDER_FSM.can_transition(OrderStatus.PRINTING, OrderStatus.DOMESTIC_SHIPPING)
    assert not ORDER_FSM.can_transition(OrderStatus.NEW, OrderStatus.PRINTING)


def test_every_non_terminal_state_can_cancel():
    assert set(ORDER_FSM.sources_of(OrderStatus.CANCELLED)) == {
        'New Order', 'Designing', 'Printing', 'International Shipping', 'Domestic Shipping',
    }
