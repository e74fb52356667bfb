import factory
from common.choices import LocationType
from factory.django import DjangoModelFactory
from locations.models import StorageLocation


class StorageLocationFactory(DjangoModelFactory):
    class Meta:
        model = StorageLocation

    location_code = factory.Sequence(lambda n: f"LOC-{n:03d}")
    name = factory.Faker("word")
    location_type = LocationType.BUILDING
    parent = None
