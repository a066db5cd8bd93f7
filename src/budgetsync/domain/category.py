"""Category domain service."""

import logging
from typing import Optional

from budgetsync.database.base import Database
from budgetsync.domain.entities import Category
from budgetsync.domain.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Default category tree as (id, name, parent id), parents first
DEFAULT_CATEGORIES = [
    ("income", "Income", None),
    ("food", "Food & Dining", None),
    ("transportation", "Transportation", None),
    ("housing", "Housing", None),
    ("bills", "Bills & Utilities", None),
    ("health", "Health & Fitness", None),
    ("other", "Other", None),
    ("salary", "Salary", "income"),
    ("other-income", "Other Income", "income"),
    ("groceries", "Groceries", "food"),
    ("restaurants", "Restaurants", "food"),
    ("coffee", "Coffee & Snacks", "food"),
    ("fuel", "Fuel", "transportation"),
    ("public-transit", "Public Transit", "transportation"),
    ("rent", "Rent", "housing"),
    ("utilities", "Electricity & Water", "bills"),
    ("internet", "Internet", "bills"),
    ("phone", "Phone", "bills"),
    ("pharmacy", "Pharmacy", "health"),
    ("doctor", "Doctor", "health"),
]


class CategoryService:
    """Service for managing destination categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, category_id: str, name: str, parent_id: Optional[str] = None) -> str:
        """Create a category.

        Args:
            category_id: Category ID as known to the budgeting system
            name: Category name
            parent_id: Optional parent category ID

        Returns:
            Category ID

        Raises:
            ValidationError: If ID or name is blank
            NotFoundError: If parent category doesn't exist
            ConflictError: If the category ID is taken
        """
        if not category_id or not category_id.strip():
            raise ValidationError("Category ID must not be empty")
        if not name or not name.strip():
            raise ValidationError("Category name must not be empty")
        if parent_id is not None and self.db.get_category(parent_id) is None:
            raise NotFoundError(f"Parent category '{parent_id}' not found")
        if self.db.get_category(category_id) is not None:
            raise ConflictError(f"Category '{category_id}' already exists")

        return self.db.create_category(category_id.strip(), name.strip(), parent_id)

    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID.

        Args:
            category_id: Category ID

        Returns:
            Category or None if not found
        """
        return self.db.get_category(category_id)

    def list_categories(self, parent_id: Optional[str] = None) -> list[Category]:
        """List categories.

        Args:
            parent_id: Optional parent category ID to filter by

        Returns:
            List of categories
        """
        return self.db.list_categories(parent_id=parent_id)

    def get_category_tree(self) -> list[dict]:
        """Get full category tree.

        Returns:
            List of root nodes, each ``{"category": Category, "children": [...]}``
        """
        categories = self.db.list_categories()
        nodes = {cat.id: {"category": cat, "children": []} for cat in categories}
        roots = []
        for cat in categories:
            parent = nodes.get(cat.parent_id) if cat.parent_id else None
            if parent is None:
                roots.append(nodes[cat.id])
            else:
                parent["children"].append(nodes[cat.id])
        return roots

    def format_category_path(self, category_id: str) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Food & Dining > Groceries")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))

    def load_defaults(self) -> int:
        """Create the default category tree, skipping IDs that already exist.

        Returns:
            Number of categories created
        """
        created = 0
        for category_id, name, parent_id in DEFAULT_CATEGORIES:
            if self.db.get_category(category_id) is not None:
                continue
            self.db.create_category(category_id, name, parent_id)
            created += 1
        logger.info("Loaded %d default categories", created)
        return created
