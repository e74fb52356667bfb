"""Read-only job queries consumed by the inventory engine."""

from common.choices import TransactionType

from .models import Job


def count_callback_jobs_for_part(part_id: int, since=None) -> int:
    """Count distinct callback jobs that used the given part.

    When ``since`` is given only usage recorded at or after it is counted.
    """

    # One filter() call so every condition applies to the same transaction row.
    lookups = {
        "is_callback": True,
        "stock_transactions__part_id": part_id,
        "stock_transactions__transaction_type": TransactionType.USED,
    }
    if since is not None:
        lookups["stock_transactions__created_at__gte"] = since
    return Job.objects.filter(**lookups).distinct().count()
