from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    user = "user"
    # Business accounts own brewery listings; plain users may too.
    business = "business"
    admin = "admin"


class ReviewableType(str, Enum):
    brewery = "brewery"
    beer = "beer"
