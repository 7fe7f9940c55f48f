"""Download run schemas."""

from pydantic import BaseModel


class RunSummaryResponse(BaseModel):
    """Counts from a download run plus the progress messages it emitted."""

    processed: int
    created: int
    skipped: int
    errors: int
    cancelled: bool = False
    messages: list[str] = []
