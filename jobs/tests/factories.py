import factory
from factory.django import DjangoModelFactory
from jobs.models import Job


class JobFactory(DjangoModelFactory):
    class Meta:
        model = Job

    job_number = factory.Sequence(lambda n: f"J-{n:05d}")
    is_callback = False
