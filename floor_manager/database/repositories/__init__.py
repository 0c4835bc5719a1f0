# floor_manager/database/repositories/__init__.py
from .catalog_repo import CatalogRepo, DomainError as CatalogDomainError
from .maintenance_repo import MaintenanceRepo, DomainError as MaintenanceDomainError
from .orders_repo import OrdersRepo, DomainError as OrdersDomainError, invoice_for
from .statuses_repo import StatusesRepo, DomainError as StatusesDomainError
from .users_repo import UsersRepo, DomainError as UsersDomainError

__all__ = [
    "CatalogRepo",
    "CatalogDomainError",
    "MaintenanceRepo",
    "MaintenanceDomainError",
    "OrdersRepo",
    "OrdersDomainError",
    "invoice_for",
    "StatusesRepo",
    "StatusesDomainError",
    "UsersRepo",
    "UsersDomainError",
]
