"""
Tests for the Workflow state machine and the document lifecycles built on it.
"""

import pytest

from supply_kernel.domain.workflow import Transition, Workflow
from supply_kernel.exceptions import InvalidStateError
from supply_modules.dispatch.models import DispatchStatus, GRNStatus
from supply_modules.dispatch.workflows import DISPATCH_WORKFLOW, GRN_WORKFLOW
from supply_modules.returns.models import ReturnStatus
from supply_modules.returns.workflows import RETURN_WORKFLOW
from supply_modules.sales.models import CommissionStatus
from supply_modules.sales.workflows import COMMISSION_WORKFLOW
from supply_modules.srn.models import SRNStatus
from supply_modules.srn.workflows import SRN_WORKFLOW


def _toy(**overrides) -> Workflow:
    fields = dict(
        name="Toy",
        description="two-state toy",
        initial_state="OPEN",
        states=("OPEN", "CLOSED"),
        transitions=(Transition("OPEN", "CLOSED", action="close"),),
        terminal_states=("CLOSED",),
    )
    fields.update(overrides)
    return Workflow(**fields)


class TestWorkflowDefinition:
    """Construction-time validation of transition tables."""

    def test_valid_workflow(self):
        wf = _toy()
        assert wf.allowed_targets("OPEN") == frozenset({"CLOSED"})
        assert wf.is_terminal("CLOSED")

    def test_initial_state_must_exist(self):
        with pytest.raises(ValueError):
            _toy(initial_state="NOWHERE")

    def test_transition_to_unknown_state(self):
        with pytest.raises(ValueError):
            _toy(transitions=(Transition("OPEN", "LOST", action="lose"),))

    def test_terminal_state_cannot_have_exits(self):
        with pytest.raises(ValueError):
            _toy(transitions=(
                Transition("OPEN", "CLOSED", action="close"),
                Transition("CLOSED", "OPEN", action="reopen"),
            ))

    def test_require_returns_the_edge(self):
        wf = _toy()
        assert wf.require("doc-1", "OPEN", "CLOSED", "close") == Transition("OPEN", "CLOSED", "close")


class TestWorkflowRequire:

    def test_missing_edge_raises_invalid_state(self):
        wf = _toy()
        with pytest.raises(InvalidStateError) as exc_info:
            wf.require("doc-1", "CLOSED", "OPEN", "reopen")
        err = exc_info.value
        assert err.entity_type == "Toy"
        assert err.entity_id == "doc-1"
        assert err.current_state == "CLOSED"
        assert err.action == "reopen"
        assert err.code == "INVALID_STATE"


class TestDocumentLifecycles:
    """The concrete tables agree with their status enums."""

    @pytest.mark.parametrize(
        "workflow, status_enum",
        [
            (SRN_WORKFLOW, SRNStatus),
            (DISPATCH_WORKFLOW, DispatchStatus),
            (GRN_WORKFLOW, GRNStatus),
            (RETURN_WORKFLOW, ReturnStatus),
            (COMMISSION_WORKFLOW, CommissionStatus),
        ],
    )
    def test_states_match_enum(self, workflow, status_enum):
        assert set(workflow.states) == {s.value for s in status_enum}

    def test_srn_path(self):
        assert SRN_WORKFLOW.initial_state == SRNStatus.DRAFT.value
        assert SRN_WORKFLOW.allowed_targets("DRAFT") == frozenset({"SUBMITTED"})
        assert SRN_WORKFLOW.allowed_targets("SUBMITTED") == frozenset(
            {"APPROVED", "PARTIAL", "REJECTED"}
        )
        for terminal in ("APPROVED", "PARTIAL", "REJECTED"):
            assert SRN_WORKFLOW.allowed_targets(terminal) == frozenset()

    def test_srn_cannot_be_approved_from_draft(self):
        with pytest.raises(InvalidStateError):
            SRN_WORKFLOW.require("srn", "DRAFT", "APPROVED", "approve")

    def test_rejected_srn_stays_rejected(self):
        with pytest.raises(InvalidStateError):
            SRN_WORKFLOW.require("srn", "REJECTED", "APPROVED", "approve")

    def test_dispatch_path(self):
        assert DISPATCH_WORKFLOW.allowed_targets("PENDING") == frozenset({"IN_TRANSIT"})
        assert DISPATCH_WORKFLOW.allowed_targets("IN_TRANSIT") == frozenset({"DELIVERED"})
        with pytest.raises(InvalidStateError):
            DISPATCH_WORKFLOW.require("do", "PENDING", "DELIVERED", "deliver")

    def test_grn_path(self):
        assert GRN_WORKFLOW.allowed_targets("PENDING") == frozenset({"CONFIRMED"})
        assert GRN_WORKFLOW.is_terminal("CONFIRMED")

    def test_return_resolutions_from_raised_or_review(self):
        resolutions = {"APPROVED_RESTOCK", "APPROVED_REPLACE", "REJECTED"}
        assert RETURN_WORKFLOW.allowed_targets("RAISED") == resolutions | {"UNDER_REVIEW"}
        assert RETURN_WORKFLOW.allowed_targets("UNDER_REVIEW") == resolutions

    def test_commission_paid_once(self):
        with pytest.raises(InvalidStateError):
            COMMISSION_WORKFLOW.require("c", "PAID", "PAID", "mark_paid")
