import secrets
from collections.abc import Iterable


def new_id(existing: Iterable[str], prefix: str = "q") -> str:
    """Generate an id not present in ``existing``.

    Ids are random rather than clock based, and every candidate is checked
    against the collection, so two ids generated in the same instant never
    collide with each other or with ids already in use.
    """
    taken = set(existing)
    while True:
        candidate = f"{prefix}_{secrets.token_hex(4)}"
        if candidate not in taken:
            return candidate
