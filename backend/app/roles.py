"""
Role definitions.

Roles are stored verbatim on the user row and copied into the access token.
Only ADMIN is checked by the authorization gate today; BRANCH_MANAGER and
USER are accepted at registration so branch staff can be onboarded.
"""
from enum import Enum


class Role(str, Enum):
    ADMIN = "Admin"
    BRANCH_MANAGER = "Branch Manager"
    USER = "User"


ROLE_NAMES: tuple[str, ...] = tuple(role.value for role in Role)
