"""
Approval Workflow Service Tests
Submission, advance, reject, send back, resubmit, concurrency and final receivers
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

from fund_approval.models.approval import Approval, ApprovalStatus, FinalReceiverAssignment, FinalReceiverStatus
from fund_approval.models.audit_log import RequestAuditEvent
from fund_approval.models.email_outbox import EmailOutbox
from fund_approval.models.fund_request import FundRequest, FundRequestStatus
from fund_approval.services.approval_service import ApprovalWorkflowService, approval_chain, first_real_index
from fund_approval.services.approver_resolver import ApproverResolver
from fund_approval.services.audit_service import AuditService
from fund_approval.services.delegation_resolver import DelegationResolver
from fund_approval.services.email_service import EmailOutboxService
from fund_approval.services.final_receiver_provider import FinalReceiverProvider
from fund_approval.services.notification_service import NotificationOrchestrator
from fund_approval.utils.exceptions import (
    FinalReceiverAlreadyCompletedError,
    InvalidTransitionError,
    NoApproverFoundError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from conftest import TestingSessionLocal


def build_service(reentry="restart"):
    return ApprovalWorkflowService(
        approver_resolver=ApproverResolver(allow_fallback_lookup=True),
        delegation_resolver=DelegationResolver(),
        final_receiver_provider=FinalReceiverProvider(),
        notifications=NotificationOrchestrator(outbox=EmailOutboxService(), base_url="http://app.test"),
        audit=AuditService(),
        resubmit_reentry=reentry
    )


@pytest.fixture
def service():
    return build_service()


@pytest.fixture
def org(factory):
    dept = factory.department()
    manager_d = factory.designation("Manager")
    controller_d = factory.designation("Controller")
    accountant_d = factory.designation("Accountant")

    initiator = factory.user("asha", designation=factory.designation("Engineer"), department=dept)
    manager = factory.user("vikram", designation=manager_d, department=dept)
    controller = factory.user("rohan", designation=controller_d, department=dept)
    receiver_a = factory.user("nisha", designation=accountant_d, department=dept, full_name="Nisha")
    receiver_b = factory.user("kiran", designation=accountant_d, department=dept, full_name="Kiran")
    silent = factory.user("silent", designation=accountant_d, department=dept, email=None, full_name="Silent")

    workflow = factory.workflow(dept, [
        {"step_name": "Initiator", "assigned_user_name": "Initiator"},
        {"step_name": "Manager Review", "designation_id": manager_d.id},
        {"step_name": "Finance Review", "designation_id": controller_d.id},
        {"step_name": "Final Receiver", "is_final_receiver": True, "designation_id": accountant_d.id},
    ])

    return SimpleNamespace(
        dept=dept, manager_d=manager_d, controller_d=controller_d, accountant_d=accountant_d,
        initiator=initiator, manager=manager, controller=controller,
        receiver_a=receiver_a, receiver_b=receiver_b, silent=silent, workflow=workflow
    )


async def submit(service, db, org, amount="2500.00", **kwargs):
    return await service.submit_request(
        db, initiator_id=org.initiator.id, workflow_id=org.workflow.id,
        title="New pump", amount=amount, **kwargs
    )


def pending(db, request_id, level=None):
    query = db.query(Approval).filter(
        Approval.fund_request_id == request_id,
        Approval.status == ApprovalStatus.PENDING
    )
    if level is not None:
        query = query.filter(Approval.level == level)
    return query.all()


def outbox_to(db, address):
    return db.query(EmailOutbox).filter(EmailOutbox.to_address == address).order_by(EmailOutbox.id).all()


def assert_one_pending_per_level(db, request_id):
    levels = [a.level for a in pending(db, request_id)]
    assert len(levels) == len(set(levels))


class TestApprovalChain:

    def test_chain_excludes_final_receiver_steps(self, org):
        chain = approval_chain(org.workflow)
        assert [item.step.step_name for item in chain] == ["Initiator", "Manager Review", "Finance Review"]
        assert [item.level for item in chain] == [0, 1, 2]

    def test_leading_initiator_steps_are_skipped(self, org):
        assert first_real_index(approval_chain(org.workflow)) == 1


class TestSubmission:

    @pytest.mark.asyncio
    async def test_submit_assigns_first_real_step(self, db, org, service):
        req = await submit(service, db, org)

        assert req.status == FundRequestStatus.PENDING
        assert req.current_level == 1
        assert req.department_id == org.dept.id
        rows = pending(db, req.id)
        assert [(a.level, a.approver_id) for a in rows] == [(1, org.manager.id)]

    @pytest.mark.asyncio
    async def test_submit_notifies_initiator_and_approver(self, db, org, service):
        req = await submit(service, db, org)

        ack = outbox_to(db, org.initiator.email)
        action = outbox_to(db, org.manager.email)
        assert [m.subject for m in ack] == [f"Request #{req.id} submitted"]
        assert [m.subject for m in action] == [f"Approval required: Request #{req.id}"]
        assert "http://app.test/approvals/" in action[0].body_html

    @pytest.mark.asyncio
    async def test_submit_writes_audit_events(self, db, org, service):
        req = await submit(service, db, org)

        events = [e.event_type for e in db.query(RequestAuditEvent).filter(
            RequestAuditEvent.request_id == req.id
        ).order_by(RequestAuditEvent.id)]
        assert events == ["submitted", "assigned"]

    @pytest.mark.asyncio
    async def test_needed_by_taken_from_approval_by_field(self, db, org, service):
        req = await submit(service, db, org, fields={"ApprovalBy": "2026-12-31", "Vendor": "Acme"})

        assert req.needed_by.year == 2026
        assert {f.field_name: f.field_value for f in req.fields} == {"ApprovalBy": "2026-12-31", "Vendor": "Acme"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    async def test_invalid_amount(self, db, org, service, amount):
        with pytest.raises(ValidationError):
            await submit(service, db, org, amount=amount)

    @pytest.mark.asyncio
    async def test_inactive_workflow(self, db, factory, org, service):
        wf = factory.workflow(org.dept, [{"step_name": "x"}], is_active=False)
        with pytest.raises(NotFoundError):
            await service.submit_request(db, org.initiator.id, wf.id, "t", "10")

    @pytest.mark.asyncio
    async def test_workflow_without_department(self, db, factory, org, service):
        wf = factory.workflow(None, [{"step_name": "x", "designation_id": org.manager_d.id}])
        with pytest.raises(ValidationError):
            await service.submit_request(db, org.initiator.id, wf.id, "t", "10")

    @pytest.mark.asyncio
    async def test_unknown_project(self, db, org, service):
        with pytest.raises(ValidationError):
            await submit(service, db, org, project_id=999)

    @pytest.mark.asyncio
    async def test_routing_failure_rolls_back_request(self, db, factory, org, service):
        project = factory.project()

        with pytest.raises(NoApproverFoundError):
            await submit(service, db, org, project_id=project.id)

        assert db.query(FundRequest).count() == 0
        assert db.query(Approval).count() == 0
        assert db.query(EmailOutbox).count() == 0

    @pytest.mark.asyncio
    async def test_submission_follows_delegation(self, db, factory, org, service):
        deputy = factory.user("deputy", department=org.dept)
        factory.delegation(org.manager, deputy)

        req = await submit(service, db, org)

        assert [a.approver_id for a in pending(db, req.id)] == [deputy.id]
        delegated = db.query(RequestAuditEvent).filter(
            RequestAuditEvent.request_id == req.id,
            RequestAuditEvent.event_type == "delegated"
        ).one()
        assert delegated.assignee_user_id == deputy.id
        assert delegated.meta["intended_user_id"] == org.manager.id


class TestActions:

    @pytest.mark.asyncio
    async def test_full_approval_reaches_final_receivers(self, db, org, service):
        req = await submit(service, db, org)

        first = pending(db, req.id)[0]
        outcome = await service.act_on_approval(db, first.id, org.manager.id, "Approve", "ok")
        assert outcome.status == FundRequestStatus.PENDING
        assert outcome.current_level == 2
        assert outcome.next_approver_id == org.controller.id
        assert_one_pending_per_level(db, req.id)

        second = pending(db, req.id)[0]
        outcome = await service.act_on_approval(db, second.id, org.controller.id, "Approve")

        db.refresh(req)
        assert outcome.status == FundRequestStatus.APPROVED
        assert req.status == FundRequestStatus.APPROVED
        assert req.current_level == 3
        assert pending(db, req.id) == []

        finals = db.query(Approval).filter(
            Approval.fund_request_id == req.id,
            Approval.status == ApprovalStatus.FINAL_RECEIVER
        ).all()
        assert sorted(a.approver_id for a in finals) == sorted(
            [org.receiver_a.id, org.receiver_b.id, org.silent.id]
        )
        assert all(a.level == 3 for a in finals)

        assignments = db.query(FinalReceiverAssignment).filter(
            FinalReceiverAssignment.fund_request_id == req.id
        ).all()
        assert len(assignments) == 3
        assert all(a.status == FinalReceiverStatus.PENDING for a in assignments)

        notices = db.query(EmailOutbox).filter(
            EmailOutbox.subject == f"Request #{req.id} approved and assigned to you"
        ).all()
        assert sorted(n.to_address for n in notices) == sorted([org.receiver_a.email, org.receiver_b.email])
        assert [m.subject for m in outbox_to(db, org.initiator.email)][-1] == f"Request #{req.id} Approved"

    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        outcome = await service.act_on_approval(db, first.id, org.manager.id, "Reject", "Budget <closed>")

        assert outcome.status == FundRequestStatus.REJECTED
        assert pending(db, req.id) == []
        rejected = outbox_to(db, org.initiator.email)[-1]
        assert rejected.subject == f"Request #{req.id} Rejected"
        assert "Budget &lt;closed&gt;" in rejected.body_html

    @pytest.mark.asyncio
    async def test_send_back_keeps_level(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]
        await service.act_on_approval(db, first.id, org.manager.id, "Approve")
        second = pending(db, req.id)[0]

        outcome = await service.act_on_approval(db, second.id, org.controller.id, "SendBack", "Add quotes")

        assert outcome.status == FundRequestStatus.SENT_BACK
        assert outcome.current_level == 2
        assert pending(db, req.id) == []
        assert outbox_to(db, org.initiator.email)[-1].subject == f"Request #{req.id} sent back for changes"

    @pytest.mark.asyncio
    async def test_only_assigned_approver_may_act(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        with pytest.raises(PermissionDeniedError):
            await service.act_on_approval(db, first.id, org.controller.id, "Approve")

    @pytest.mark.asyncio
    async def test_acting_twice_is_rejected(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]
        await service.act_on_approval(db, first.id, org.manager.id, "Approve")

        with pytest.raises(InvalidTransitionError):
            await service.act_on_approval(db, first.id, org.manager.id, "Reject")

    @pytest.mark.asyncio
    async def test_unknown_action(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        with pytest.raises(ValidationError):
            await service.act_on_approval(db, first.id, org.manager.id, "Escalate")

    @pytest.mark.asyncio
    async def test_unknown_approval(self, db, org, service):
        with pytest.raises(NotFoundError):
            await service.act_on_approval(db, 4242, org.manager.id, "Approve")


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_existing_pending_next_level_is_reused(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]
        db.add(Approval(fund_request_id=req.id, approver_id=org.controller.id, level=2,
                        status=ApprovalStatus.PENDING))
        db.commit()

        outcome = await service.act_on_approval(db, first.id, org.manager.id, "Approve")

        assert outcome.conflict is False
        assert outcome.next_approver_id == org.controller.id
        assert len(pending(db, req.id, level=2)) == 1

    @pytest.mark.asyncio
    async def test_unique_violation_is_a_no_op(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]
        db.add(Approval(fund_request_id=req.id, approver_id=org.controller.id, level=2,
                        status=ApprovalStatus.PENDING))
        db.commit()

        # Simulate the race: the existence check misses the other writer's row
        with patch.object(service, "_pending_at", return_value=None):
            outcome = await service.act_on_approval(db, first.id, org.manager.id, "Approve")

        assert outcome.conflict is True
        assert outcome.request_id == req.id
        assert len(pending(db, req.id, level=2)) == 1
        db.refresh(first)
        assert first.status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_approve_and_reject_on_same_approval_from_two_sessions(self, db, org, service):
        req = await submit(service, db, org)
        approval_id = pending(db, req.id)[0].id

        approver_session = TestingSessionLocal()
        rejecter_session = TestingSessionLocal()
        try:
            # Both sessions see the approval while it is still Pending
            for session in (approver_session, rejecter_session):
                loaded = session.get(Approval, approval_id)
                assert loaded.status == ApprovalStatus.PENDING
                assert loaded.fund_request.status == FundRequestStatus.PENDING

            approved = await service.act_on_approval(approver_session, approval_id, org.manager.id, "Approve")
            rejected = await service.act_on_approval(rejecter_session, approval_id, org.manager.id, "Reject")
        finally:
            approver_session.close()
            rejecter_session.close()

        assert approved.conflict is False
        assert rejected.conflict is True
        assert rejected.status == FundRequestStatus.PENDING
        assert rejected.current_level == 2

        db.expire_all()
        db.refresh(req)
        assert req.status == FundRequestStatus.PENDING
        rows = db.query(Approval).filter(Approval.fund_request_id == req.id).order_by(Approval.level).all()
        assert [(a.level, a.status) for a in rows] == [
            (1, ApprovalStatus.APPROVED),
            (2, ApprovalStatus.PENDING),
        ]
        assert outbox_to(db, org.initiator.email)[-1].subject == f"Request #{req.id} submitted"


class TestAutoApprove:

    @pytest.mark.asyncio
    async def test_auto_approve_step_advances(self, db, factory, org, service):
        wf = factory.workflow(org.dept, [
            {"step_name": "Initiator", "assigned_user_name": "Initiator"},
            {"step_name": "Manager Review", "designation_id": org.manager_d.id, "auto_approve": True},
            {"step_name": "Finance Review", "designation_id": org.controller_d.id},
        ])

        req = await service.submit_request(db, org.initiator.id, wf.id, "Auto", "50")

        approved = db.query(Approval).filter(
            Approval.fund_request_id == req.id, Approval.status == ApprovalStatus.APPROVED
        ).one()
        assert approved.level == 1
        assert approved.comments == "Auto-approved"
        assert [(a.level, a.approver_id) for a in pending(db, req.id)] == [(2, org.controller.id)]
        assert req.current_level == 2

    @pytest.mark.asyncio
    async def test_all_steps_auto_approved_finishes_at_submission(self, db, factory, org, service):
        wf = factory.workflow(org.dept, [
            {"step_name": "Manager Review", "designation_id": org.manager_d.id, "auto_approve": True},
            {"step_name": "Final Receiver", "is_final_receiver": True, "designation_id": org.accountant_d.id},
        ])

        req = await service.submit_request(db, org.initiator.id, wf.id, "Auto", "50")

        assert req.status == FundRequestStatus.APPROVED
        assert db.query(FinalReceiverAssignment).filter(
            FinalReceiverAssignment.fund_request_id == req.id
        ).count() == 3


class TestResubmission:

    async def send_back_at_finance(self, service, db, org):
        req = await submit(service, db, org)
        await service.act_on_approval(db, pending(db, req.id)[0].id, org.manager.id, "Approve")
        await service.act_on_approval(db, pending(db, req.id)[0].id, org.controller.id, "SendBack", "fix")
        return req

    @pytest.mark.asyncio
    async def test_restart_reenters_first_real_step(self, db, org, service):
        req = await self.send_back_at_finance(service, db, org)

        req = await service.resubmit(db, req.id, org.initiator.id, description="with quotes")

        assert req.status == FundRequestStatus.PENDING
        assert req.current_level == 1
        assert [(a.level, a.approver_id) for a in pending(db, req.id)] == [(1, org.manager.id)]
        # History is appended, not rewritten
        assert db.query(Approval).filter(Approval.fund_request_id == req.id).count() == 3

    @pytest.mark.asyncio
    async def test_resume_reenters_sent_back_level(self, db, org):
        service = build_service(reentry="resume")
        req = await self.send_back_at_finance(service, db, org)

        req = await service.resubmit(db, req.id, org.initiator.id)

        assert req.current_level == 2
        assert [(a.level, a.approver_id) for a in pending(db, req.id)] == [(2, org.controller.id)]

    @pytest.mark.asyncio
    async def test_amount_locked_after_an_approval(self, db, org, service):
        req = await self.send_back_at_finance(service, db, org)

        with pytest.raises(ValidationError):
            await service.resubmit(db, req.id, org.initiator.id, amount="9999")

        db.refresh(req)
        assert req.status == FundRequestStatus.SENT_BACK
        assert req.amount == Decimal("2500.00")

    @pytest.mark.asyncio
    async def test_amount_editable_before_any_approval(self, db, org, service):
        req = await submit(service, db, org)
        await service.act_on_approval(db, pending(db, req.id)[0].id, org.manager.id, "SendBack", "too high")

        req = await service.resubmit(db, req.id, org.initiator.id, amount="1800")

        assert req.amount == Decimal("1800")

    @pytest.mark.asyncio
    async def test_only_initiator_may_resubmit(self, db, org, service):
        req = await self.send_back_at_finance(service, db, org)

        with pytest.raises(PermissionDeniedError):
            await service.resubmit(db, req.id, org.manager.id)

    @pytest.mark.asyncio
    async def test_pending_request_cannot_be_resubmitted(self, db, org, service):
        req = await submit(service, db, org)

        with pytest.raises(InvalidTransitionError):
            await service.resubmit(db, req.id, org.initiator.id)


class TestReassignment:

    @pytest.mark.asyncio
    async def test_reassign_records_previous_approver(self, db, factory, org, service):
        colleague = factory.user("colleague", department=org.dept)
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        approval = await service.reassign_approval(db, first.id, colleague.id, org.manager.id)

        assert approval.approver_id == colleague.id
        assert approval.overridden_user_id == org.manager.id
        assert approval.status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_reassign_requires_current_approver(self, db, factory, org, service):
        colleague = factory.user("colleague", department=org.dept)
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        with pytest.raises(PermissionDeniedError):
            await service.reassign_approval(db, first.id, colleague.id, org.initiator.id)


class TestFinalReceiverCompletion:

    async def approved_request(self, service, db, org):
        req = await submit(service, db, org)
        await service.act_on_approval(db, pending(db, req.id)[0].id, org.manager.id, "Approve")
        await service.act_on_approval(db, pending(db, req.id)[0].id, org.controller.id, "Approve")
        return req

    @pytest.mark.asyncio
    async def test_first_completion_auto_closes_others(self, db, org, service):
        req = await self.approved_request(service, db, org)

        assignment = await service.complete_final_receiver(db, req.id, org.receiver_a.id)

        assert assignment.status == FinalReceiverStatus.COMPLETED
        statuses = {
            a.user_id: a.status for a in db.query(FinalReceiverAssignment).filter(
                FinalReceiverAssignment.fund_request_id == req.id
            )
        }
        assert statuses[org.receiver_b.id] == FinalReceiverStatus.AUTO_CLOSED
        assert statuses[org.silent.id] == FinalReceiverStatus.AUTO_CLOSED

    @pytest.mark.asyncio
    async def test_second_completion_fails(self, db, org, service):
        req = await self.approved_request(service, db, org)
        await service.complete_final_receiver(db, req.id, org.receiver_a.id)

        with pytest.raises(FinalReceiverAlreadyCompletedError):
            await service.complete_final_receiver(db, req.id, org.receiver_b.id)

    @pytest.mark.asyncio
    async def test_non_receiver_cannot_complete(self, db, org, service):
        req = await self.approved_request(service, db, org)

        with pytest.raises(PermissionDeniedError):
            await service.complete_final_receiver(db, req.id, org.manager.id)

    @pytest.mark.asyncio
    async def test_listing_for_receiver(self, db, org, service):
        req = await self.approved_request(service, db, org)

        rows = service.list_final_receiver_requests(db, org.receiver_b.id)

        assert [r.id for r, _ in rows] == [req.id]


class TestListings:

    @pytest.mark.asyncio
    async def test_filters(self, db, org, service):
        req = await submit(service, db, org)
        first = pending(db, req.id)[0]

        assert [r.id for r, _ in service.list_for_user(db, org.manager.id, "assigned")] == [req.id]
        initiated = service.list_for_user(db, org.initiator.id, "initiated")
        assert initiated[0][1].approver_id == org.manager.id

        await service.act_on_approval(db, first.id, org.manager.id, "Approve")

        assert service.list_for_user(db, org.manager.id, "assigned") == []
        assert [a.id for _, a in service.list_for_user(db, org.manager.id, "approved")] == [first.id]

    def test_unknown_filter(self, db, org, service):
        with pytest.raises(ValidationError):
            service.list_for_user(db, org.manager.id, "everything")
