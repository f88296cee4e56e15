from .tenancy import (
    Company, CompanyStatus, BillingCycle, BackupMode, Plan,
    SYSTEM_SCOPE, UNLIMITED_USERS, ENTRY_PLAN_ID, default_plans,
)
from .auth import Role, HIGH_TRUST_ROLES, User, ActionLog
from .inventory import Product, Partner, PartnerType, Unit
from .orders import Order, OrderItem, OrderStatus, OrderType
from .cash import (
    CashSession, CashClosingDetail, SessionStatus,
    Transaction, TransactionType, TransactionCategory, PaymentMethod,
    MANUAL_OUT_CATEGORIES,
)
from .backups import BackupLog, BackupType

__all__ = [
    'Company', 'CompanyStatus', 'BillingCycle', 'BackupMode', 'Plan',
    'SYSTEM_SCOPE', 'UNLIMITED_USERS', 'ENTRY_PLAN_ID', 'default_plans',
    'Role', 'HIGH_TRUST_ROLES', 'User', 'ActionLog',
    'Product', 'Partner', 'PartnerType', 'Unit',
    'Order', 'OrderItem', 'OrderStatus', 'OrderType',
    'CashSession', 'CashClosingDetail', 'SessionStatus',
    'Transaction', 'TransactionType', 'TransactionCategory', 'PaymentMethod',
    'MANUAL_OUT_CATEGORIES',
    'BackupLog', 'BackupType',
]
