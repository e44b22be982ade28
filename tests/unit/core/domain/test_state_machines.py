"""
core/domain/state_machines.py 테스트

분개/송장 상태 전이 규칙
"""

import pytest

from core.domain.state_machines import (
    InvoiceState,
    InvoiceStateMachine,
    JournalEntryState,
    JournalEntryStateMachine,
)
from core.errors import AlreadyPostedError, InvalidStateTransitionError


class TestJournalEntryStateMachine:
    """분개 상태 머신 테스트"""

    def test_draft_to_posted(self) -> None:
        sm = JournalEntryStateMachine()

        assert sm.is_editable
        assert not sm.affects_balances
        assert sm.transition(JournalEntryState.POSTED) == "POSTED"
        assert sm.affects_balances
        assert sm.history == [("DRAFT", "POSTED")]

    def test_post_twice_raises_already_posted(self) -> None:
        """POSTED 분개 재전기 시 AlreadyPostedError"""
        sm = JournalEntryStateMachine(JournalEntryState.POSTED)

        with pytest.raises(AlreadyPostedError):
            sm.require(JournalEntryState.POSTED)

    def test_edit_after_post(self) -> None:
        sm = JournalEntryStateMachine("POSTED")

        with pytest.raises(AlreadyPostedError):
            sm.require_editable()

    def test_reverse_only_from_posted(self) -> None:
        JournalEntryStateMachine("POSTED").require_reversible()

        for state in ("DRAFT", "REVERSED"):
            with pytest.raises(InvalidStateTransitionError):
                JournalEntryStateMachine(state).require_reversible()

    def test_reversed_is_terminal(self) -> None:
        sm = JournalEntryStateMachine("REVERSED")

        assert sm.affects_balances
        assert not sm.can_transition("POSTED")
        assert not sm.can_transition("DRAFT")


class TestInvoiceStateMachine:
    """송장 상태 머신 테스트"""

    def test_happy_path(self) -> None:
        sm = InvoiceStateMachine()

        sm.transition(InvoiceState.SENT)
        assert sm.accepts_payment
        sm.transition(InvoiceState.PAID)
        assert sm.is_terminal

    def test_send_twice_rejected(self) -> None:
        sm = InvoiceStateMachine(InvoiceState.SENT)

        with pytest.raises(InvalidStateTransitionError):
            sm.require(InvoiceState.SENT)

    @pytest.mark.parametrize("state", ["DRAFT", "PAID", "CANCELLED"])
    def test_payment_requires_sent(self, state: str) -> None:
        with pytest.raises(InvalidStateTransitionError):
            InvoiceStateMachine(state).require_payable()

    def test_cancel_allowed_from_draft_and_sent(self) -> None:
        assert InvoiceStateMachine("DRAFT").can_transition(InvoiceState.CANCELLED)
        assert InvoiceStateMachine("SENT").can_transition(InvoiceState.CANCELLED)
        assert not InvoiceStateMachine("PAID").can_transition(InvoiceState.CANCELLED)
        assert not InvoiceStateMachine("CANCELLED").can_transition(InvoiceState.CANCELLED)

    def test_draft_cannot_be_paid(self) -> None:
        with pytest.raises(InvalidStateTransitionError, match="DRAFT"):
            InvoiceStateMachine().transition(InvoiceState.PAID)
