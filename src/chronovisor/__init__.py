"""chronovisor: convert CSV/JSON event records into Chronovis annotations.

Typical use::

    from chronovisor.converter import build_context, convert_context, serialize
    from chronovisor.loader import load_mapping

    ctx = build_context(["events.csv"], [load_mapping("events.cvrmap")])
    print(serialize(convert_context(ctx), "json"))

The command line front end lives in `chronovisor.__main__` (``python -m
chronovisor convert ...``).
"""

__all__ = []
