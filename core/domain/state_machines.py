"""
State Machines

JournalEntry, Invoice 등 핵심 엔티티의 상태 전이 관리.
허용되지 않은 전이는 InvalidStateTransitionError로 거부.
"""

import logging
from enum import Enum

from core.errors import AlreadyPostedError, InvalidStateTransitionError

logger = logging.getLogger(__name__)


class JournalEntryState(str, Enum):
    """분개 상태

    전이 규칙:
    - DRAFT → POSTED: 전기 (차변 = 대변 검증 후)
    - POSTED → REVERSED: 역분개 생성
    """
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    REVERSED = "REVERSED"


class InvoiceState(str, Enum):
    """송장 저장 상태

    전이 규칙:
    - DRAFT → SENT: 발송 (수익/비용 인식 분개 전기)
    - DRAFT → CANCELLED: 취소
    - SENT → PAID: 잔액 0 도달 (부분 결제는 SENT 유지)
    - SENT → CANCELLED: 취소 (미결제 잔액 상각)

    OVERDUE는 저장 상태가 아님 (조회 시 투영).
    """
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    error_class: type[InvalidStateTransitionError] = InvalidStateTransitionError

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인

        Args:
            to_state: 목표 상태

        Returns:
            전이 가능 여부
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def require(self, to_state: str | Enum) -> None:
        """전이 가능 여부 검증 (상태는 바꾸지 않음)

        Raises:
            InvalidStateTransitionError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise self.error_class(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            InvalidStateTransitionError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        self.require(target)

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(f"{self._name}: {old_state} → {target}")

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return self._history.copy()


class JournalEntryStateMachine(StateMachine):
    """분개 상태 머신

    DRAFT가 아닌 분개의 전기는 AlreadyPostedError.
    """

    error_class = AlreadyPostedError

    TRANSITIONS: dict[str, list[str]] = {
        "DRAFT": ["POSTED"],
        "POSTED": ["REVERSED"],
    }

    def __init__(self, initial_state: str | JournalEntryState = JournalEntryState.DRAFT):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="JournalEntryStateMachine",
        )

    @property
    def is_editable(self) -> bool:
        """수정 가능 여부 (DRAFT만)"""
        return self._state == "DRAFT"

    @property
    def affects_balances(self) -> bool:
        """잔액 반영 여부 (전기 또는 역분개된 원분개)"""
        return self._state in ("POSTED", "REVERSED")

    def require_editable(self) -> None:
        """DRAFT 상태 검증

        Raises:
            AlreadyPostedError: DRAFT가 아닌 경우
        """
        if not self.is_editable:
            raise AlreadyPostedError(
                f"{self._name}: entry is {self._state}, only DRAFT entries can be modified"
            )

    def require_reversible(self) -> None:
        """POSTED 상태 검증 (역분개 가능 여부)

        Raises:
            InvalidStateTransitionError: POSTED가 아닌 경우
        """
        if not self.can_transition(JournalEntryState.REVERSED):
            raise InvalidStateTransitionError(
                f"{self._name}: Cannot reverse entry in {self._state} state"
            )


class InvoiceStateMachine(StateMachine):
    """송장 상태 머신"""

    TRANSITIONS: dict[str, list[str]] = {
        "DRAFT": ["SENT", "CANCELLED"],
        "SENT": ["PAID", "CANCELLED"],
    }

    def __init__(self, initial_state: str | InvoiceState = InvoiceState.DRAFT):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="InvoiceStateMachine",
        )

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부"""
        return self._state in ("PAID", "CANCELLED")

    @property
    def accepts_payment(self) -> bool:
        """결제 가능 여부 (SENT만, OVERDUE 투영 포함)"""
        return self._state == "SENT"

    def require_payable(self) -> None:
        """결제 가능 상태 검증

        Raises:
            InvalidStateTransitionError: DRAFT/PAID/CANCELLED
        """
        if not self.accepts_payment:
            raise InvalidStateTransitionError(
                f"{self._name}: Cannot record payment on invoice in {self._state} state"
            )
