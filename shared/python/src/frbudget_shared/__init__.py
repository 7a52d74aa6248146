"""
frbudget_shared — shared configuration, constants and models for frbudget.

Usage:
    from frbudget_shared.config import settings
    from frbudget_shared.models.budget import CanonicalRow, BudgetTree
    from frbudget_shared.models.catalog import DiscoveryTrace
    from frbudget_shared.constants import YEAR_FIELDS, artifact_name
"""

__version__ = "0.1.0"
