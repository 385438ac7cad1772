"""Exceptions raised while building the event graph."""
from typing import Optional


class GraphBuildError(Exception):
    """Base class for errors that prevent building a graph at all."""


class NormalizationError(GraphBuildError):
    """Structural problem in the input tables."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        row: Optional[int] = None,
        field: Optional[str] = None
    ):
        self.message = message
        self.table = table
        self.row = row
        self.field = field
        super().__init__(self._describe())

    def _describe(self) -> str:
        context = []
        if self.table is not None:
            context.append(f"table '{self.table}'")
        if self.row is not None:
            context.append(f"line {self.row}")
        if self.field is not None:
            context.append(f"field '{self.field}'")
        if not context:
            return self.message
        return f"{', '.join(context)}: {self.message}"

    def with_context(
        self,
        table: Optional[str] = None,
        row: Optional[int] = None,
        field: Optional[str] = None
    ) -> 'NormalizationError':
        """Return a copy of this error with missing context filled in."""
        return type(self)(
            self.message,
            table=self.table if self.table is not None else table,
            row=self.row if self.row is not None else row,
            field=self.field if self.field is not None else field
        )


class MissingTableError(NormalizationError):
    pass


class MissingColumnError(NormalizationError):
    pass


class DuplicateColumnError(NormalizationError):
    pass


class MalformedLinkError(NormalizationError):
    pass


class CrossReferenceError(GraphBuildError):
    """Tag or series resolution failed."""


class DoubleResolutionError(CrossReferenceError):
    pass


class UnknownEventKindError(CrossReferenceError):
    pass
