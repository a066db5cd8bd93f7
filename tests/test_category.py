"""Tests for the category service."""

import pytest

from budgetsync.domain.category import DEFAULT_CATEGORIES
from budgetsync.domain.errors import ConflictError, NotFoundError, ValidationError


def test_load_defaults(category_service):
    """Test the default tree is created once."""
    assert category_service.load_defaults() == len(DEFAULT_CATEGORIES)
    assert category_service.load_defaults() == 0
    assert len(category_service.list_categories()) == len(DEFAULT_CATEGORIES)


def test_create_category(category_service, sample_categories):
    """Test creating a child category."""
    category_service.create_category(" bakery ", " Bakery ", parent_id="food")

    category = category_service.get_category("bakery")
    assert category.name == "Bakery"
    assert category.parent_id == "food"
    assert category_service.format_category_path("bakery") == "Food & Dining > Bakery"


def test_create_category_errors(category_service, sample_categories):
    """Test validation of IDs, names and parents."""
    with pytest.raises(ValidationError):
        category_service.create_category("", "Empty")
    with pytest.raises(ValidationError):
        category_service.create_category("empty", "  ")
    with pytest.raises(NotFoundError):
        category_service.create_category("orphan", "Orphan", parent_id="missing")
    with pytest.raises(ConflictError):
        category_service.create_category("groceries", "Groceries again")


def test_list_children(category_service, sample_categories):
    """Test filtering by parent."""
    children = category_service.list_categories(parent_id="income")
    assert sorted(c.id for c in children) == ["other-income", "salary"]


def test_category_tree(category_service, sample_categories):
    """Test the tree nests children under their parents."""
    tree = category_service.get_category_tree()

    roots = {node["category"].id: node for node in tree}
    assert set(roots) == {"income", "food", "transportation", "housing", "bills", "health", "other"}
    food_children = [child["category"].id for child in roots["food"]["children"]]
    assert sorted(food_children) == ["coffee", "groceries", "restaurants"]


def test_format_category_path(category_service, sample_categories):
    """Test paths for root, child and unknown categories."""
    assert category_service.format_category_path("income") == "Income"
    path = category_service.format_category_path("utilities")
    assert path == "Bills & Utilities > Electricity & Water"
    assert category_service.format_category_path("missing") == ""
