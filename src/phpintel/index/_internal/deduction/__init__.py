"""Expression type deduction and variable flow analysis."""

from phpintel.index._internal.deduction.document import TextDocument
from phpintel.index._internal.deduction.engine import DeductionQuery, TypeDeductionEngine
from phpintel.index._internal.deduction.typelist import TypeList

__all__ = ["DeductionQuery", "TextDocument", "TypeDeductionEngine", "TypeList"]
