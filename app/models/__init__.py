from .client import Client
from .tracking import ClientDailyTracking
from .task import Task
from .okr import OKR
from .profile import Profile, OrganizationGroup
from .contract import ClientContract
from .product_value import ClientProductValue

__all__ = [
    "Client",
    "ClientDailyTracking",
    "Task",
    "OKR",
    "Profile",
    "OrganizationGroup",
    "ClientContract",
    "ClientProductValue",
]
