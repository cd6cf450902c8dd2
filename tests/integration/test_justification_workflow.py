"""Service tests for the justification workflow"""

import json
import pytest
from decimal import Decimal
from conftest import NOW, ScriptedReasoner, verdict_json
from capling_gateway.domain.classification import ReasonerFailure, ReasonerSuccess
from capling_gateway.domain.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from capling_gateway.domain.models import Classification, JustificationStatus
from capling_gateway.domain.ports import Reasoner
from capling_gateway.domain.validation import validate_transaction_request
from capling_gateway.infrastructure.database.models import UserProfileRecord
from capling_gateway.services.classification import ClassificationService
from capling_gateway.services.justification import JustificationWorkflow
from capling_gateway.services.transactions import TransactionProcessor


def _verdict(is_valid: bool, reflection: str = "Understood.") -> ReasonerSuccess:
    return ReasonerSuccess(json.dumps({"isValid": is_valid, "reasoning": "test", "newReflection": reflection}))


@pytest.fixture
def workflow(store, reasoner: ScriptedReasoner) -> JustificationWorkflow:
    return JustificationWorkflow(store, reasoner, timeout_seconds=1, max_attempts=3, retry_delay=0)


@pytest.fixture
def submit(store, reasoner: ScriptedReasoner, make_account):
    """Record a spend classified with the given verdict"""
    make_account(balance_cents=1_000_000)
    processor = TransactionProcessor(store, ClassificationService(reasoner, timeout_seconds=1))

    async def _submit(classification: str = "irresponsible", amount: str = "120", merchant: str = "Designer Store"):
        reasoner.script(ReasonerSuccess(verdict_json(classification)))
        request = validate_transaction_request(
            user_id="user_1", merchant=merchant, amount=Decimal(amount), category="shopping"
        )
        result = await processor.process(request, now=NOW)
        return result.transaction

    return _submit


async def test_valid_justification_marks_responsible(workflow, reasoner, submit):
    """Test that an accepted explanation flips only the final classification"""
    transaction = await submit()
    reasoner.script(_verdict(True, "That makes sense."))

    outcome = await workflow.justify("user_1", transaction.id, "Needed a suit for a job interview", NOW)

    updated = outcome.transaction
    assert updated.justification_status == JustificationStatus.JUSTIFIED
    assert updated.final_classification == Classification.RESPONSIBLE
    assert updated.original_classification == Classification.IRRESPONSIBLE
    assert updated.classification == Classification.IRRESPONSIBLE
    assert updated.justification == "Needed a suit for a job interview"
    assert updated.reflection == "That makes sense."
    assert outcome.verdict.is_valid is True
    assert "User explanation: Needed a suit" in reasoner.prompts[-1]


async def test_rejected_justification_keeps_classification(workflow, reasoner, submit):
    transaction = await submit(classification="neutral")
    reasoner.script(_verdict(False))

    outcome = await workflow.justify("user_1", transaction.id, "Felt like it", NOW)

    assert outcome.transaction.justification_status == JustificationStatus.REJECTED
    assert outcome.transaction.final_classification == Classification.NEUTRAL
    assert outcome.budget_adjustment.adjusted is False
    assert outcome.budget_adjustment.suggested_budget_cents is None


async def test_second_justification_conflicts(workflow, reasoner, submit):
    """Test that a justification is resolved exactly once"""
    transaction = await submit()
    reasoner.script(_verdict(True))
    await workflow.justify("user_1", transaction.id, "Birthday gift for family", NOW)

    with pytest.raises(ConflictError):
        await workflow.justify("user_1", transaction.id, "Birthday gift for family", NOW)


async def test_transaction_not_awaiting_justification(workflow, submit):
    transaction = await submit(classification="responsible")

    with pytest.raises(ConflictError) as exc_info:
        await workflow.justify("user_1", transaction.id, "It was needed", NOW)
    assert exc_info.value.status_code == 409


async def test_unknown_transaction(workflow):
    with pytest.raises(NotFoundError):
        await workflow.justify("user_1", "does-not-exist", "It was needed", NOW)


async def test_other_users_transaction(workflow, submit):
    transaction = await submit()

    with pytest.raises(AuthenticationError):
        await workflow.justify("intruder", transaction.id, "It was needed", NOW)


async def test_empty_justification(workflow, submit):
    transaction = await submit()

    with pytest.raises(ValidationError):
        await workflow.justify("user_1", transaction.id, "   ", NOW)


async def test_reasoner_outage_retries_then_uses_rule(workflow, reasoner, submit):
    """Test retryable failures exhaust attempts before the rule-based verdict"""
    transaction = await submit()
    reasoner.script(ReasonerFailure("network", "connection refused"))
    prompts_before = len(reasoner.prompts)

    outcome = await workflow.justify("user_1", transaction.id, "Medical emergency at the pharmacy", NOW)

    assert len(reasoner.prompts) - prompts_before == 3
    assert outcome.verdict.is_valid is True
    assert outcome.transaction.justification_status == JustificationStatus.JUSTIFIED


async def test_unparseable_verdict_uses_rule_without_retry(workflow, reasoner, submit):
    transaction = await submit()
    reasoner.script(ReasonerSuccess("no idea"))
    prompts_before = len(reasoner.prompts)

    outcome = await workflow.justify("user_1", transaction.id, "Just wanted it", NOW)

    assert len(reasoner.prompts) - prompts_before == 1
    assert outcome.verdict.is_valid is False
    assert outcome.transaction.justification_status == JustificationStatus.REJECTED


async def test_budget_suggestion_when_over_budget(workflow, reasoner, submit, db):
    """Test the informational budget suggestion rounds up to a whole dollar"""
    db.add(UserProfileRecord(user_id="user_1", weekly_budget_cents=10_000))
    db.commit()
    await submit(classification="responsible", amount="80.25")
    transaction = await submit(amount="40")
    reasoner.script(_verdict(True))

    outcome = await workflow.justify("user_1", transaction.id, "Needed for work", NOW)

    # 8025 + 4000 = 12025 cents spent against a 10000 cent budget
    adjustment = outcome.budget_adjustment
    assert adjustment.adjusted is False
    assert adjustment.suggested_budget_cents == 12_100
    assert "$120.25" in adjustment.reason


class RaisingReasoner(Reasoner):
    async def complete(self, prompt, timeout_seconds, system_prompt=None):
        raise RuntimeError("client bug")


async def test_raising_reasoner_uses_rule(store, submit):
    """Test that a reasoner exception falls back to the rule-based verdict"""
    transaction = await submit()
    workflow = JustificationWorkflow(store, RaisingReasoner(), timeout_seconds=1, retry_delay=0)

    outcome = await workflow.justify("user_1", transaction.id, "Medical emergency at the pharmacy", NOW)

    assert outcome.verdict.is_valid is True
    assert outcome.transaction.justification_status == JustificationStatus.JUSTIFIED
