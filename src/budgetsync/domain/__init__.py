"""Domain layer for budgetsync application."""

import importlib

_SERVICES = {
    "AccountService": "budgetsync.domain.account",
    "CategoryService": "budgetsync.domain.category",
    "ImportService": "budgetsync.domain.import_service",
    "CategorizationService": "budgetsync.domain.categorization",
    "SubmissionService": "budgetsync.domain.submission",
}

__all__ = list(_SERVICES)


# Services are imported lazily so that utils and config can depend on domain
# submodules without pulling in the database layer
def __getattr__(name):
    if name in _SERVICES:
        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
