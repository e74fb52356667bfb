"""Storage location hierarchy (vehicles, buildings, shelves, bins).

Parts reference a single location; the hierarchy itself is owned here.
"""

from common.choices import LocationType
from django.core.exceptions import ValidationError
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StorageLocation(TimeStampedModel):
    TYPE_CHOICES = LocationType.choices

    location_code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)
    location_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    parent = models.ForeignKey(
        "self", null=True, blank=True, related_name="children", on_delete=models.SET_NULL
    )
    description = models.TextField(blank=True)
    label_number = models.CharField(max_length=50, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["location_code"]
        indexes = [
            models.Index(fields=["location_type"]),
            models.Index(fields=["active"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.location_code} {self.name}"

    def ancestors(self) -> list["StorageLocation"]:
        """Return ancestors from the root down to the direct parent."""
        chain = []
        seen = {self.pk}
        node = self.parent
        while node is not None and node.pk not in seen:
            chain.append(node)
            seen.add(node.pk)
            node = node.parent
        chain.reverse()
        return chain

    @property
    def path(self) -> str:
        return " / ".join([loc.name for loc in self.ancestors()] + [self.name])

    def clean(self):
        if self.parent_id is None or self.pk is None:
            return
        if self.parent_id == self.pk or any(loc.pk == self.pk for loc in self.parent.ancestors()):
            raise ValidationError({"parent": "A location cannot be nested inside itself."})
