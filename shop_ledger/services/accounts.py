"""
Account registry.

Every entity that carries a running balance is registered here
with the model that stores it, the side that increases its
balance, and the cached views that depend on it. LedgerService
posts against any registered kind the same way.

Normal side works like asset vs liability accounts:
    DEBIT-normal  (supplier, workshop, customer, credit pool)
        balance = debits - credits
    CREDIT-normal (budget allocation)
        balance = credits - debits
"""

from dataclasses import dataclass
from decimal import Decimal

from shop_ledger.models.budget import BudgetAllocation
from shop_ledger.models.credit_pool import CreditPool
from shop_ledger.models.customer import Customer
from shop_ledger.models.enums import AccountKind, EntryType
from shop_ledger.models.supplier import Supplier
from shop_ledger.models.workshop import Workshop
from shop_ledger.money import ZERO


@dataclass(frozen=True)
class AccountSpec:
    kind: AccountKind
    model: type
    label: str
    normal_side: EntryType
    views: tuple[str, ...]


ACCOUNT_SPECS: dict[AccountKind, AccountSpec] = {
    AccountKind.SUPPLIER: AccountSpec(
        kind=AccountKind.SUPPLIER,
        model=Supplier,
        label="Supplier",
        normal_side=EntryType.DEBIT,
        views=("suppliers", "purchases", "inventory"),
    ),
    AccountKind.WORKSHOP: AccountSpec(
        kind=AccountKind.WORKSHOP,
        model=Workshop,
        label="Workshop",
        normal_side=EntryType.DEBIT,
        views=("workshops", "workshops/orders"),
    ),
    AccountKind.CUSTOMER: AccountSpec(
        kind=AccountKind.CUSTOMER,
        model=Customer,
        label="Customer",
        normal_side=EntryType.DEBIT,
        views=("customers", "sales"),
    ),
    AccountKind.BUDGET_ALLOCATION: AccountSpec(
        kind=AccountKind.BUDGET_ALLOCATION,
        model=BudgetAllocation,
        label="Budget allocation",
        normal_side=EntryType.CREDIT,
        views=("budgets", "expenses", "reports"),
    ),
    AccountKind.CREDIT_POOL: AccountSpec(
        kind=AccountKind.CREDIT_POOL,
        model=CreditPool,
        label="Credit pool",
        normal_side=EntryType.DEBIT,
        views=("ai", "settings/billing"),
    ),
}

_KIND_BY_MODEL = {spec.model: kind for kind, spec in ACCOUNT_SPECS.items()}


def get_spec(kind: AccountKind) -> AccountSpec:
    return ACCOUNT_SPECS[AccountKind(kind)]


def spec_for(account) -> AccountSpec:
    try:
        return ACCOUNT_SPECS[_KIND_BY_MODEL[type(account)]]
    except KeyError:
        raise TypeError(f"{type(account).__name__} is not a ledger account")


def signed_amount(
    spec: AccountSpec, direction: EntryType, amount: Decimal
) -> Decimal:
    """Effect of one entry on the account's balance."""
    if direction == spec.normal_side:
        return amount
    return -amount


def get_balance(account) -> Decimal:
    value = getattr(account, account.balance_attribute)
    if value is None:
        return ZERO
    return Decimal(str(value))


def set_balance(account, value: Decimal) -> None:
    # BudgetAllocation also keeps remaining_amount in step
    if hasattr(account, "set_balance"):
        account.set_balance(value)
    else:
        setattr(account, account.balance_attribute, value)
