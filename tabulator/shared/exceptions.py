"""Domain exceptions raised by the tabulator core."""


class TabulatorError(Exception):
    """Base class for tabulator errors."""


class CompetitionNotFoundError(TabulatorError):
    """Competition does not exist in the persistence gateway."""

    def __init__(self, competition_id: int):
        self.competition_id = competition_id
        super().__init__(f"Competition not found: {competition_id}")


class ScoreValidationError(TabulatorError):
    """Score write rejected (unknown criterion or value out of range)."""


class SnapshotFetchError(TabulatorError):
    """Fetching a score snapshot from the API failed."""

    def __init__(self, status: int, detail: str):
        self.status = status
        self.detail = detail
        super().__init__(f"Snapshot fetch failed ({status}): {detail}")
