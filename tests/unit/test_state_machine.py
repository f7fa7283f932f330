import pytest

from app.documents.exceptions import AlreadyMaterialized, InvalidState
from app.documents.models import DocumentStatus
from app.documents.state_machine import can_transition, ensure_transition, is_terminal, stage

S = DocumentStatus

ALLOWED = {
    (S.UPLOADED, S.PROCESSING),
    (S.PROCESSING, S.PARSED),
    (S.PROCESSING, S.FAILED),
    (S.PARSED, S.TRANSACTION_CREATED),
}


class TestTransitions:
    @pytest.mark.parametrize("current", list(S))
    @pytest.mark.parametrize("new", list(S))
    def test_only_lifecycle_edges_are_allowed(self, current: S, new: S) -> None:
        assert can_transition(current, new) == ((current, new) in ALLOWED)

    def test_failed_cannot_be_retried_in_place(self) -> None:
        with pytest.raises(InvalidState, match="failed -> uploaded"):
            ensure_transition(S.FAILED, S.UPLOADED)

    def test_cannot_skip_processing(self) -> None:
        with pytest.raises(InvalidState):
            ensure_transition(S.UPLOADED, S.PARSED)

    def test_failed_only_reachable_from_processing(self) -> None:
        with pytest.raises(InvalidState):
            ensure_transition(S.UPLOADED, S.FAILED)
        with pytest.raises(InvalidState):
            ensure_transition(S.PARSED, S.FAILED)

    def test_second_materialization_is_already_materialized(self) -> None:
        with pytest.raises(AlreadyMaterialized):
            ensure_transition(S.TRANSACTION_CREATED, S.TRANSACTION_CREATED)

    def test_materializing_unparsed_is_plain_invalid_state(self) -> None:
        with pytest.raises(InvalidState) as exc_info:
            ensure_transition(S.PROCESSING, S.TRANSACTION_CREATED)
        assert not isinstance(exc_info.value, AlreadyMaterialized)

    def test_allowed_edge_does_not_raise(self) -> None:
        ensure_transition(S.PARSED, S.TRANSACTION_CREATED)


class TestTerminalAndStage:
    def test_terminal_states(self) -> None:
        assert {s for s in S if is_terminal(s)} == {S.TRANSACTION_CREATED, S.FAILED}

    def test_stage_increases_along_edges(self) -> None:
        for current, new in ALLOWED:
            assert stage(new) > stage(current)
