import json
import logging
import sys
from datetime import date
from decimal import Decimal

from config.logging import JsonFormatter, SamplingFilter


def _record(msg="inventory.received", level=logging.INFO, **extra):
    record = logging.LogRecord("fieldparts.inventory", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_merges_extra_and_renders_amounts():
    record = _record(
        event="inventory.received", part_number="WR55X10025", unit_cost=Decimal("10.75"), day=date(2026, 1, 2)
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["name"] == "fieldparts.inventory"
    assert payload["message"] == "inventory.received"
    assert payload["event"] == "inventory.received"
    assert payload["part_number"] == "WR55X10025"
    assert payload["unit_cost"] == "10.75"
    assert payload["day"] == "2026-01-02"
    assert payload["time"].endswith("Z")
    assert "pathname" not in payload


def test_formatter_includes_exception_text():
    try:
        raise ValueError("bad layer")
    except ValueError:
        record = logging.LogRecord("fieldparts.inventory", logging.ERROR, __file__, 1, "boom", None, sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert "ValueError: bad layer" in payload["exc_info"]


def test_formatter_stringifies_unserializable_values():
    payload = json.loads(JsonFormatter().format(_record(obj=object())))
    assert payload["obj"].startswith("<object")


def test_sampling_filter_keeps_allowed_events_and_other_levels():
    f = SamplingFilter(rate=0.0, levels=["INFO"], allow_events=["purchasing.received"])

    assert f.filter(_record(msg="purchasing.received"))
    assert f.filter(_record(msg="something", event="purchasing.received"))
    assert f.filter(_record(msg="noise", level=logging.WARNING))
    assert not f.filter(_record(msg="noise"))


def test_sampling_filter_rate_is_clamped():
    assert SamplingFilter(rate=5).rate == 1.0
    assert SamplingFilter(rate=-1).rate == 0.0
    assert SamplingFilter(rate=1.0).filter(_record(msg="noise"))
