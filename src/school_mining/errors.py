"""Error hierarchy for a collection run.

Errors are split by the stage that raises them so the collector can decide
whether a failure aborts the run (login, archive, class listing) or is only
recorded (a single class's timetable, status publication).

Example usage:
    try:
        export_file = store.load()
    except ArchiveCorruptError:
        coordinator.failed("Loading the archive failed")
        raise
"""


class CollectorError(Exception):
    """Base exception for all collector errors."""

    pass


class ConfigError(CollectorError):
    """A required setting is missing or invalid.

    Raised before any network activity takes place.
    """

    pass


class AuthError(CollectorError):
    """Login to the timetable server failed (bad credentials, unknown school)."""

    pass


class ProviderFetchError(CollectorError):
    """The timetable server returned an error or could not be reached.

    Fatal when listing classes, tolerated when fetching one class's lessons.
    """

    pass


class ArchiveError(CollectorError):
    """Base exception for archive partition failures."""

    pass


class ArchiveCorruptError(ArchiveError):
    """An existing partition file could not be decoded.

    Never answered with an empty archive: overwriting it would lose data.
    """

    pass


class ArchiveIOError(ArchiveError):
    """Creating the partition directory, reading or writing the file failed."""

    pass


class StatusPublishError(CollectorError):
    """The local status file could not be written.

    Only logged, never changes the outcome of a run.
    """

    pass
