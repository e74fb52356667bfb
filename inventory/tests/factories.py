from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory
from inventory.models import CrossReferenceGroup, Part


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"tech{n}")
    email = factory.Faker("email")
    password = factory.PostGenerationMethodCall("set_password", "pass")


class PartFactory(DjangoModelFactory):
    """Part with no stock; use inventory.services.receive to stock it."""

    class Meta:
        model = Part

    part_number = factory.Sequence(lambda n: f"WR{n:06d}")
    description = factory.Faker("sentence", nb_words=3)
    category = "Sensors"
    brand = "GE"
    average_cost = None
    markup_percent = Decimal("20.00")
    auto_replenish = True


class CrossReferenceGroupFactory(DjangoModelFactory):
    class Meta:
        model = CrossReferenceGroup

    group_code = factory.Sequence(lambda n: f"XREF-T{n:03d}")
    description = factory.Faker("sentence", nb_words=2)
    min_stock_group = 1
    auto_replenish = True
