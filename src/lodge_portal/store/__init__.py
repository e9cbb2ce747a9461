"""
Data store package.

Keep package import side-effects to a minimum; adapters are imported from
their own modules.
"""

from lodge_portal.store.interface import DataStore, Filter, FilterOp, Row, eq, gt

__all__ = ["DataStore", "Filter", "FilterOp", "Row", "eq", "gt"]
