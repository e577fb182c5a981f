"""
Request contract package.

Pydantic models that validate filter endpoint bodies at the API boundary.
"""

from .filters import (
    BusinessParams,
    MonthParams,
    SiteParams,
    VerticalParams,
    parse_params,
    validation_details,
)

__all__ = [
    'BusinessParams',
    'MonthParams',
    'SiteParams',
    'VerticalParams',
    'parse_params',
    'validation_details',
]
