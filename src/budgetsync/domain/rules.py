"""Keyword rule categorization strategy."""

from dataclasses import dataclass
from typing import Optional

from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.entities import Transaction
from budgetsync.domain.ports import CategorySuggestion


@dataclass(frozen=True)
class CategorizationRule:
    """Assign category_id when keyword occurs in the transaction text."""

    keyword: str
    category_id: str
    payee_name: Optional[str] = None
    confidence: float = 0.9


DEFAULT_RULES = [
    CategorizationRule("grocery", "groceries"),
    CategorizationRule("supermarket", "groceries"),
    CategorizationRule("restaurant", "restaurants"),
    CategorizationRule("cafe", "coffee"),
    CategorizationRule("fuel", "fuel"),
    CategorizationRule("pharmacy", "pharmacy"),
    CategorizationRule("salary", "salary"),
    CategorizationRule("rent", "rent"),
    CategorizationRule("electricity", "utilities"),
    CategorizationRule("internet", "internet"),
]


class KeywordCategorizationStrategy:
    """First matching rule wins; no match yields an empty suggestion."""

    def __init__(self, rules: list[CategorizationRule], payee_confidence: float = 0.8):
        self.rules = list(rules)
        self.payee_confidence = payee_confidence

    @staticmethod
    def _haystack(transaction: Transaction) -> str:
        parts = [
            transaction.message,
            transaction.comment,
            transaction.counter_bank_name,
            transaction.user_identification,
            transaction.transaction_type,
        ]
        return " ".join(p for p in parts if p).lower()

    def categorize(self, transaction: Transaction) -> CategorySuggestion:
        text = self._haystack(transaction)
        for rule in self.rules:
            if rule.keyword.lower() in text:
                payee = rule.payee_name or transaction.counter_bank_name or transaction.message
                return CategorySuggestion(
                    category_id=rule.category_id,
                    payee_name=payee,
                    memo=transaction.comment or transaction.message,
                    confidence=ConfidenceScore(rule.confidence),
                    payee_confidence=ConfidenceScore(self.payee_confidence) if payee else None,
                )
        return CategorySuggestion()
