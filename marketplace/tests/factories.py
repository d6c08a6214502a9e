import uuid
from datetime import timedelta
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone
from faker import Faker

from marketplace.models import Card, CollectionItem, Listing, Offer, Order, Shipment
from marketplace.ordering.domain.services.fee_calculator import compute_fees

User = get_user_model()
fake = Faker()  # Instantiate Faker once


def fake_address():
    return {
        "name": fake.name(),
        "street1": fake.street_address(),
        "city": fake.city(),
        "state": fake.state_abbr(),
        "zip": fake.postcode(),
        "country": "US",
    }


class UserFactory(factory.django.DjangoModelFactory):
    """Marketplace-entitled user (super_hero plan)"""

    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    role = "user"
    plan = "super_hero"


class FreeUserFactory(UserFactory):
    plan = "free"
    username = factory.Sequence(lambda n: f"free_{n}")
    email = factory.Sequence(lambda n: f"free_{n}@example.com")


class SellerFactory(UserFactory):
    role = "seller"
    username = factory.Sequence(lambda n: f"seller_{n}")
    email = factory.Sequence(lambda n: f"seller_{n}@example.com")
    shipping_address = factory.LazyFunction(fake_address)


class AdminFactory(UserFactory):
    role = "admin"
    is_superuser = True
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class CardFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Card

    name = factory.Sequence(lambda n: f"Card {n}")
    set_name = factory.Iterator(["Base Set", "Jungle", "Fossil"])
    card_number = factory.Sequence(lambda n: f"{n}/102")
    front_image_url = factory.LazyAttribute(lambda o: f"https://images.example.com/{o.card_number.replace('/', '-')}.png")


class CollectionItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CollectionItem

    owner = factory.SubFactory(SellerFactory)
    card = factory.SubFactory(CardFactory)
    quantity = 3
    condition = "near_mint"


class ListingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Listing

    collection_item = factory.SubFactory(CollectionItemFactory)
    seller = factory.LazyAttribute(lambda o: o.collection_item.owner)
    card = factory.LazyAttribute(lambda o: o.collection_item.card)
    price = Decimal("10.00")
    quantity = 1
    quantity_available = factory.LazyAttribute(lambda o: o.quantity)
    allow_offers = True
    description = factory.LazyAttribute(lambda o: f"{o.card.name}, {o.condition_snapshot.replace('_', ' ')}")
    condition_snapshot = factory.LazyAttribute(lambda o: o.collection_item.condition)
    status = Listing.STATUS_ACTIVE
    published_at = factory.LazyFunction(timezone.now)


class OfferFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Offer

    listing = factory.SubFactory(ListingFactory)
    buyer = factory.SubFactory(UserFactory)
    amount = Decimal("8.00")
    quantity = 1
    status = Offer.STATUS_PENDING
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(hours=48))


class OrderFactory(factory.django.DjangoModelFactory):
    """Order with a consistent fee breakdown; defaults to awaiting payment"""

    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: f"CV-TEST-{n:06d}")
    listing = factory.SubFactory(ListingFactory)
    buyer = factory.SubFactory(UserFactory)
    seller = factory.LazyAttribute(lambda o: o.listing.seller)
    quantity = 1
    item_price = factory.LazyAttribute(lambda o: o.listing.price)
    shipping_cost = Decimal("3.00")
    platform_fee = factory.LazyAttribute(lambda o: compute_fees(o.item_price * o.quantity, o.shipping_cost).platform_fee)
    processor_fee = factory.LazyAttribute(
        lambda o: compute_fees(o.item_price * o.quantity, o.shipping_cost).processor_fee
    )
    total = factory.LazyAttribute(lambda o: compute_fees(o.item_price * o.quantity, o.shipping_cost).total)
    seller_net = factory.LazyAttribute(lambda o: compute_fees(o.item_price * o.quantity, o.shipping_cost).seller_net)
    shipping_address = factory.LazyFunction(fake_address)
    payment_session_id = factory.Sequence(lambda n: f"cs_test_{n}")
    status = Order.STATUS_PAYMENT_PENDING
    payment_status = Order.PAYMENT_PENDING


class PaidOrderFactory(OrderFactory):
    status = Order.STATUS_PAID
    payment_status = Order.PAYMENT_SUCCEEDED
    payment_intent_id = factory.Sequence(lambda n: f"pi_test_{n}")
    paid_at = factory.LazyFunction(timezone.now)


class ShipmentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Shipment

    order = factory.SubFactory(PaidOrderFactory)
    from_address = factory.LazyAttribute(lambda o: o.order.seller.shipping_address or fake_address())
    to_address = factory.LazyAttribute(lambda o: o.order.shipping_address)
    carrier = "USPS"
    carrier_shipment_id = factory.Sequence(lambda n: f"shp_test_{n}")
    tracking_number = factory.Sequence(lambda n: f"9400{n:018d}")
    status = Shipment.STATUS_LABEL_PURCHASED
