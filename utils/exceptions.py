class TaskTrackerError(Exception):
    def __init__(self, message):
        self.message = message
        super().__init__(self.message)


class SourceUnavailable(TaskTrackerError):
    """The relational source store could not be reached or a query failed."""

    def __init__(self, entity_type, message):
        self.entity_type = entity_type
        super().__init__(f"source unavailable for {entity_type}: {message}")


class ProjectionRangeError(TaskTrackerError):
    """A source value does not fit the range of its target document field."""

    def __init__(self, entity_type, record_id, field, value):
        self.entity_type = entity_type
        self.record_id = record_id
        self.field = field
        self.value = value
        super().__init__(
            f"{entity_type} id={record_id}: value {value} for '{field}' is out of range"
        )


class WriteFailure(TaskTrackerError):
    """The document store rejected or failed a write."""

    def __init__(self, entity_type, record_id, message):
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"failed to write {entity_type} id={record_id}: {message}")


class AllocationFailure(TaskTrackerError):
    """A new business id could not be allocated from the counter store."""

    def __init__(self, entity_type, message):
        self.entity_type = entity_type
        super().__init__(f"failed to allocate {entity_type} id: {message}")
