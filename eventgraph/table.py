"""Tabular input as delivered by a record source."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from eventgraph.errors import DuplicateColumnError, MissingColumnError, MissingTableError


def _cell(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


@dataclass
class Columns:
    """Maps column titles to their position in a row."""
    index: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_header(cls, header: Sequence[Any]) -> 'Columns':
        index: Dict[str, int] = {}
        for col, value in enumerate(header):
            title = _cell(value)
            if title in index:
                raise DuplicateColumnError(
                    f"duplicate title '{title}' in columns {index[title]} and {col}",
                    field=title
                )
            index[title] = col
        return cls(index)

    def has(self, title: str) -> bool:
        return title in self.index

    def get(self, title: str, row: Sequence[Any]) -> str:
        """
        Read a cell by column title.

        Args:
            title: Column title
            row: Row of cells; trailing empty cells may be missing

        Returns:
            Cell text, empty if the row is shorter than the column index

        Raises:
            MissingColumnError: If the table has no such column
        """
        col = self.index.get(title)
        if col is None:
            raise MissingColumnError(f"missing column '{title}'", field=title)
        if col >= len(row):
            return ''
        return _cell(row[col])

    def get_links(self, row: Sequence[Any]) -> List[str]:
        """Read LINK1, LINK2, ... until the first missing column."""
        links = []
        i = 1
        while self.has(f"LINK{i}"):
            links.append(self.get(f"LINK{i}", row))
            i += 1
        return links


@dataclass
class Table:
    name: str
    columns: Columns
    rows: List[List[Any]]

    @classmethod
    def from_values(cls, name: str, values: Sequence[Sequence[Any]]) -> 'Table':
        """
        Build a table from raw values whose first row holds the column titles.

        Raises:
            MissingTableError: If there are no rows at all
            DuplicateColumnError: If a column title appears twice
        """
        if not values:
            raise MissingTableError(f"got 0 rows when fetching table '{name}'", table=name)
        try:
            columns = Columns.from_header(values[0])
        except DuplicateColumnError as e:
            raise e.with_context(table=name) from e
        return cls(name=name, columns=columns, rows=[list(row) for row in values[1:]])
