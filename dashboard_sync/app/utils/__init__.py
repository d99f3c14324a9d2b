from .debounce import Debouncer
from .pagination import Paginator, paginate
from .roles import UserRole, can_administer, can_edit, role_from_metadata

__all__ = [
    "Debouncer",
    "Paginator",
    "UserRole",
    "can_administer",
    "can_edit",
    "paginate",
    "role_from_metadata",
]
