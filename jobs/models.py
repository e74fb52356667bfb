"""Service job records.

Job management lives outside the parts engine; this model only carries what
inventory needs: a job reference for usage and the callback flag.
"""

from django.db import models


class Job(models.Model):
    job_number = models.CharField(max_length=20, unique=True)
    is_callback = models.BooleanField(default=False, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Job<{self.job_number}> callback={self.is_callback}"
