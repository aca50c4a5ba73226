"""
API Dependencies
Common dependencies for API endpoints
"""

from fastapi import Header

from stockledger.core.database import get_db
from stockledger.core.exceptions import ValidationError

__all__ = ["get_db", "get_company_id"]


def get_company_id(x_company_id: str = Header(..., alias="X-Company-Id")) -> str:
    """
    Company scope for the request, normalised to upper case.
    """
    company_id = x_company_id.strip().upper()
    if not company_id:
        raise ValidationError("X-Company-Id header cannot be empty")
    return company_id
