"""Tests for the categorization service."""

import logging
from decimal import Decimal

import pytest

from budgetsync.domain.categorization import (
    LOW_CONFIDENCE,
    NO_MATCH,
    NOT_FOUND,
    STRATEGY_FAILED,
    CategorizationService,
    TransactionFilter,
    calculate_average_confidence,
)
from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.errors import (
    CategorizationError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from budgetsync.domain.events import (
    BulkCategoryUpdated,
    CategoryUpdated,
    TransactionCategorized,
    TransactionsCategorized,
)
from budgetsync.domain.identifiers import TransactionId
from budgetsync.domain.ports import CategorySuggestion
from budgetsync.domain.processing_state import DUPLICATE, INVALID_STATUS, TransactionStatus
from budgetsync.domain.rules import DEFAULT_RULES, CategorizationRule, KeywordCategorizationStrategy
from budgetsync.utils.deadline import Deadline

ACCOUNT_ID = "fio-2100012345"


class FixedStrategy:
    """Strategy returning the same suggestion for every transaction."""

    def __init__(self, suggestion):
        self.suggestion = suggestion
        self.calls = 0

    def categorize(self, transaction):
        self.calls += 1
        return self.suggestion


class FailingStrategy:
    def categorize(self, transaction):
        raise CategorizationError("model unavailable")


@pytest.fixture
def service(temp_db, config):
    """Categorization service using the default keyword rules."""
    return CategorizationService(temp_db, KeywordCategorizationStrategy(DEFAULT_RULES), config)


def test_categorize_batch(service, imported):
    """Test matching transactions advance and the rest stay imported."""
    grocery, rent, transfer = imported

    result = service.categorize_transactions(imported)

    assert result.categorized_count == 2
    assert result.failed_count == 1
    assert [o.transaction_id for o in result.outcomes] == imported
    assert result.outcomes[2].reason == NO_MATCH

    state = service.db.get_processing_state(grocery)
    assert state.status == TransactionStatus.CATEGORIZED
    assert state.suggested_category == "groceries"
    assert state.suggested_payee_name == "Albert"
    assert state.category_confidence == ConfidenceScore(0.9)
    assert service.db.get_processing_state(rent).effective_category == "rent"
    assert service.db.get_processing_state(transfer).status == TransactionStatus.IMPORTED


def test_categorize_events(service, imported):
    """Test per-item events and the batch summary."""
    result = service.categorize_transactions(imported)

    per_item = [e for e in result.events if isinstance(e, TransactionCategorized)]
    assert [e.transaction_id for e in per_item] == imported[:2]
    assert all(e.by_ai for e in per_item)
    summary = result.events[-1]
    assert isinstance(summary, TransactionsCategorized)
    assert summary.transaction_count == 2
    assert summary.average_confidence == ConfidenceScore(0.9)
    assert result.average_confidence == ConfidenceScore(0.9)


def test_categorize_skips_non_imported(service, imported):
    """Test a second run does not recategorize."""
    service.categorize_transactions(imported)
    result = service.categorize_transactions(imported[:1])

    assert result.categorized_count == 0
    assert result.outcomes[0].reason == INVALID_STATUS


def test_categorize_skips_duplicates(service, imported, import_service):
    """Test duplicate-flagged transactions are never categorized."""
    import_service.mark_duplicate(imported[0])
    result = service.categorize_transaction(imported[0])

    assert result.outcomes[0].reason == DUPLICATE
    assert service.db.get_processing_state(imported[0]).status == TransactionStatus.IMPORTED


def test_categorize_unknown_id(service, sample_account):
    """Test a missing transaction yields a failed outcome, not an error."""
    result = service.categorize_transaction(TransactionId(ACCOUNT_ID, "404"))
    assert result.outcomes[0].reason == NOT_FOUND
    assert result.failed_count == 1


def test_low_confidence_keeps_hints_only(temp_db, config, imported):
    """Test a low-confidence suggestion keeps payee and memo but no category."""
    strategy = FixedStrategy(
        CategorySuggestion(
            category_id="groceries",
            payee_name="Albert",
            memo="weekly shop",
            confidence=ConfidenceScore(0.1),
        )
    )
    service = CategorizationService(temp_db, strategy, config)

    result = service.categorize_transaction(imported[0])

    assert result.outcomes[0].reason == LOW_CONFIDENCE
    state = temp_db.get_processing_state(imported[0])
    assert state.status == TransactionStatus.IMPORTED
    assert state.effective_category is None
    assert state.effective_payee_name == "Albert"
    assert state.effective_memo == "weekly shop"


def test_strategy_failure_is_isolated(temp_db, config, imported):
    """Test strategy errors fail the item and leave the state untouched."""
    service = CategorizationService(temp_db, FailingStrategy(), config)
    result = service.categorize_transactions(imported)

    assert result.failed_count == 3
    assert {o.reason for o in result.outcomes} == {STRATEGY_FAILED}
    assert "model unavailable" in result.outcomes[0].detail
    assert all(
        temp_db.get_processing_state(i).processed_at is None for i in imported
    )


def test_cancelled_batch_runs_nothing(temp_db, config, imported):
    """Test no strategy call starts after cancellation."""
    strategy = FixedStrategy(CategorySuggestion(category_id="groceries"))
    service = CategorizationService(temp_db, strategy, config)
    deadline = Deadline()
    deadline.cancel()

    result = service.categorize_transactions(imported, deadline=deadline)

    assert strategy.calls == 0
    assert result.failed_count == 3


def test_update_category_overrides_suggestion(service, imported, sample_categories):
    """Test a user override wins over the suggestion without erasing it."""
    service.categorize_transactions(imported)

    result = service.update_category(imported[0], "restaurants", memo="lunch", payee_name="Bistro")

    state = result.state
    assert state.effective_category == "restaurants"
    assert state.suggested_category == "groceries"
    assert state.effective_payee_name == "Bistro"
    assert state.effective_memo == "lunch"
    assert state.is_manually_categorized
    event = result.events[0]
    assert isinstance(event, CategoryUpdated)
    assert event.old_category == "groceries"
    assert event.new_category == "restaurants"
    assert service.db.get_processing_state(imported[0]) == state


def test_update_category_advances_imported(service, imported, sample_categories):
    """Test an override on an imported transaction makes it categorized."""
    result = service.update_category(imported[2], "other")
    assert result.state.status == TransactionStatus.CATEGORIZED
    assert result.events[0].old_category is None


def test_update_category_unknown_category_warns(service, imported, caplog):
    """Test an unknown category is applied with a warning."""
    with caplog.at_level(logging.WARNING, logger="budgetsync.domain.categorization"):
        result = service.update_category(imported[0], "no-such-category")

    assert result.state.effective_category == "no-such-category"
    assert "no-such-category" in caplog.text


def test_update_category_errors(service, imported):
    """Test blank categories and unknown transactions are rejected."""
    with pytest.raises(ValidationError):
        service.update_category(imported[0], "  ")
    with pytest.raises(NotFoundError):
        service.update_category(TransactionId(ACCOUNT_ID, "404"), "rent")


def test_update_category_rejects_submitted(service, imported, sample_categories):
    """Test submitted transactions cannot be recategorized."""
    service.categorize_transactions(imported[:1])
    db = service.db
    db.save_processing_state(db.get_processing_state(imported[0]).with_submission("x", "y"))

    with pytest.raises(PreconditionError) as exc_info:
        service.update_category(imported[0], "rent")
    assert exc_info.value.reason == INVALID_STATUS


def test_bulk_update_by_description(service, imported, sample_categories):
    """Test bulk override only touches matching transactions."""
    result = service.bulk_update_category(
        TransactionFilter(description_contains="RENT"), "housing", payee_name="Landlord"
    )

    assert result.updated_count == 1
    state = service.db.get_processing_state(imported[1])
    assert state.effective_category == "housing"
    assert state.effective_payee_name == "Landlord"
    assert service.db.get_processing_state(imported[0]).effective_category is None
    event = result.events[0]
    assert isinstance(event, BulkCategoryUpdated)
    assert event.count == 1
    assert "description contains 'RENT'" in event.filter_criteria


def test_bulk_update_skips_submitted(service, imported, sample_categories):
    """Test submitted transactions are left alone by bulk overrides."""
    service.categorize_transactions(imported[:1])
    db = service.db
    db.save_processing_state(db.get_processing_state(imported[0]).with_submission("x", "y"))

    result = service.bulk_update_category(TransactionFilter(source_account_id=ACCOUNT_ID), "other")

    assert result.updated_count == 2
    assert db.get_processing_state(imported[0]).effective_category == "groceries"


def test_transaction_filter_amount_and_counterparty(imported, temp_db):
    """Test amount bounds and counterparty matching."""
    grocery, rent, transfer = (temp_db.get_transaction(i) for i in imported)

    expensive = TransactionFilter(max_amount=Decimal("-1000"))
    assert expensive.matches(rent)
    assert not expensive.matches(grocery)

    albert = TransactionFilter(counterparty_contains="albert")
    assert albert.matches(grocery)
    assert not albert.matches(transfer)

    assert TransactionFilter().describe() == "all transactions"


def test_calculate_average_confidence():
    """Test absent scores are ignored."""
    scores = [ConfidenceScore(0.5), None, ConfidenceScore(1.0)]
    assert calculate_average_confidence(scores) == ConfidenceScore(0.75)
    assert calculate_average_confidence([None]) is None


def test_keyword_rule_payee_and_confidence(temp_db, config, imported):
    """Test rule payee names and confidence carry into the suggestion."""
    rules = [CategorizationRule("friend", "other", payee_name="Jan", confidence=0.6)]
    service = CategorizationService(temp_db, KeywordCategorizationStrategy(rules), config)

    result = service.categorize_transaction(imported[2])

    outcome = result.outcomes[0]
    assert outcome.categorized
    assert outcome.payee_name == "Jan"
    assert outcome.confidence == ConfidenceScore(0.6)
