"""
Data Access Object package.

Tenant data goes through ``ScopedDAO``; identity tables have plain read
helpers.
"""

from practice_api.dao.base import Page, ScopedDAO
from practice_api.dao.client import client_dao
from practice_api.dao.item import item_dao
from practice_api.dao.membership import MembershipDAO
from practice_api.dao.organization import OrganizationDAO
from practice_api.dao.patient import patient_dao
from practice_api.dao.sale import sale_dao
from practice_api.dao.user import UserDAO

__all__ = [
    "Page",
    "ScopedDAO",
    "client_dao",
    "patient_dao",
    "item_dao",
    "sale_dao",
    "OrganizationDAO",
    "UserDAO",
    "MembershipDAO",
]
