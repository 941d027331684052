class DaypatError(Exception):
    """Base class for export errors."""


class StoreError(DaypatError):
    """An entry store or blob store request failed."""


class EntryFetchError(DaypatError):
    """The rows for one export unit (day, week or month) could not be fetched."""

    def __init__(self, unit: str, reason: str):
        super().__init__(f"Could not fetch entries for {unit}: {reason}")
        self.unit = unit
        self.reason = reason


class FontsNotReadyError(DaypatError):
    """Fonts could not be loaded; text metrics would be wrong, so the export is aborted."""


class ExportCancelled(DaypatError):
    """The caller asked to stop between pages."""
