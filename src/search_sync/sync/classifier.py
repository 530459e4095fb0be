"""Change type classification for document write events."""

from search_sync.models import ChangeEvent, ChangeType


class InvalidChangeError(ValueError):
    """Raised when a change event carries neither a before nor an after document."""

    def __init__(self, change_type: ChangeType = ChangeType.INVALID) -> None:
        super().__init__(f"Invalid change type: {change_type}")
        self.change_type = change_type


def classify(before_exists: bool, after_exists: bool) -> ChangeType:
    """Classify a write from the existence of its before/after documents."""
    if not before_exists and after_exists:
        return ChangeType.CREATE
    if before_exists and not after_exists:
        return ChangeType.DELETE
    if before_exists and after_exists:
        return ChangeType.UPDATE
    return ChangeType.INVALID


def get_change_type(event: ChangeEvent) -> ChangeType:
    """Classify a change event.

    A snapshot that is present but reports ``exists=False`` counts as absent.

    Raises:
        InvalidChangeError: If neither side of the event exists.
    """
    before_exists = event.before is not None and event.before.exists
    after_exists = event.after is not None and event.after.exists
    change_type = classify(before_exists, after_exists)
    if change_type is ChangeType.INVALID:
        raise InvalidChangeError(change_type)
    return change_type
