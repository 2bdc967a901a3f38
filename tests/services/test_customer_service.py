"""
Tests for the CustomerService.
"""

from decimal import Decimal

import pytest

from shop_ledger.exceptions import (
    ConcurrentModificationError,
    DuplicateError,
    HasBalanceError,
    NotFoundError,
)
from shop_ledger.models.enums import AccountKind, TransactionType
from shop_ledger.schemas.customer import (
    CustomerChargeCreate,
    CustomerCreate,
    CustomerUpdate,
)
from shop_ledger.services.customer_service import CustomerService

SHOP_ID = "shop-1"
ACTOR_ID = "user-1"


@pytest.fixture
def service(db_session):
    return CustomerService(db_session, SHOP_ID, ACTOR_ID)


@pytest.fixture
def customer(service):
    customer = service.create_customer(CustomerCreate(full_name="Maria Lopez", phone="555-0100"))
    service.db.commit()
    return customer


class TestCustomers:

    def test_duplicate_phone(self, service, customer):
        with pytest.raises(DuplicateError) as exc:
            service.create_customer(CustomerCreate(full_name="Someone", phone="555-0100"))
        assert exc.value.code == "duplicate_phone"

    def test_customers_without_phone_never_clash(self, service):
        service.create_customer(CustomerCreate(full_name="A"))
        service.create_customer(CustomerCreate(full_name="B"))
        service.db.commit()

    def test_update_profile(self, service, customer):
        service.update_customer(customer.id, CustomerUpdate(
            full_name=" Maria Lopez Diaz ", expected_version=customer.version,
        ))
        service.db.commit()

        assert customer.full_name == "Maria Lopez Diaz"
        assert customer.phone == "555-0100"
        assert customer.version == 2

    def test_update_to_taken_phone_rejected(self, service, customer):
        other = service.create_customer(CustomerCreate(full_name="Ana", phone="555-0199"))
        service.db.commit()

        with pytest.raises(DuplicateError) as exc:
            service.update_customer(other.id, CustomerUpdate(phone="555-0100"))
        assert exc.value.code == "duplicate_phone"

    def test_stale_update_rejected(self, service, customer):
        service.update_customer(customer.id, CustomerUpdate(email="maria@example.com"))
        service.db.commit()

        with pytest.raises(ConcurrentModificationError, match="Customer was modified"):
            service.update_customer(
                customer.id, CustomerUpdate(email="other@example.com", expected_version=1)
            )

    def test_sale_then_payment(self, service, customer):
        sale = service.record_sale_charge(CustomerChargeCreate(
            customer_id=customer.id, amount=Decimal("1200"), sale_id=7,
        ))
        payment = service.record_customer_payment(CustomerChargeCreate(
            customer_id=customer.id, amount=Decimal("450.50"),
        ))
        service.db.commit()

        assert sale.transaction_type == TransactionType.SALE
        assert sale.reference_type == "sale"
        assert sale.reference_id == 7
        assert sale.description == "Sale on credit"
        assert payment.transaction_type == TransactionType.PAYMENT
        assert payment.balance_after == Decimal("749.50")
        assert service.get_customer_balance(customer.id) == Decimal("749.50")
        assert service.ledger.derive_balance(AccountKind.CUSTOMER, customer.id) == Decimal("749.50")

    def test_delete_with_balance_rejected(self, service, customer):
        service.record_sale_charge(CustomerChargeCreate(
            customer_id=customer.id, amount=Decimal("10"),
        ))
        service.db.commit()

        with pytest.raises(HasBalanceError):
            service.delete_customer(customer.id)

    def test_deleted_customer_cannot_be_charged(self, service, customer):
        service.delete_customer(customer.id)
        service.db.commit()

        with pytest.raises(NotFoundError, match="Customer"):
            service.record_sale_charge(CustomerChargeCreate(
                customer_id=customer.id, amount=Decimal("10"),
            ))
