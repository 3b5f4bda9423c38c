"""Change detection against the last committed digest."""

from models.content import ContentSnapshot


def has_changed(snapshot: ContentSnapshot, last_digest: str | None) -> bool:
    """Return True when the snapshot differs from the last committed revision.

    A missing or empty ``last_digest`` (first run) always counts as changed.
    Pure comparison; the new digest is committed separately, after delivery.
    """
    if not last_digest:
        return True
    return snapshot.digest != last_digest
