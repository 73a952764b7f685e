"""
Column-oriented tables built from upstream items.

Snapshot endpoints return either columnar objects ({"strike": [...],
"bid": [...]}) or one record per contract. Both end up as a ColumnTable so
the merge code can address everything by (column, position).
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class ColumnTable:
    """
    Named arrays addressed by position.

    Columns may be ragged; row_count is the longest column and every read past
    the end of a shorter column comes back as None.
    """

    def __init__(self, columns: Optional[Dict[str, List[Any]]] = None):
        self.columns: Dict[str, List[Any]] = {
            name: list(values) for name, values in (columns or {}).items()
            if isinstance(values, list)
        }

    @property
    def row_count(self) -> int:
        return max((len(v) for v in self.columns.values()), default=0)

    def __len__(self) -> int:
        return self.row_count

    def __contains__(self, name: str) -> bool:
        return name in self.columns

    def value(self, index: int, name: str, *aliases: str) -> Any:
        """
        Cell at (name, index), trying aliases in order when a column is absent
        or holds None at that position.
        """
        if index < 0 or index >= self.row_count:
            return None
        for column in (name,) + aliases:
            values = self.columns.get(column)
            if values is not None and index < len(values) and values[index] is not None:
                return values[index]
        return None

    def _extend(self, block: Dict[str, List[Any]]) -> None:
        """Append a columnar block, padding so positions stay aligned."""
        start = self.row_count
        block_rows = max((len(v) for v in block.values()), default=0)

        for name in set(self.columns) | set(block):
            existing = self.columns.setdefault(name, [])
            existing.extend([None] * (start - len(existing)))
            values = block.get(name, [])
            existing.extend(values)
            existing.extend([None] * (block_rows - len(values)))

    @classmethod
    def from_items(cls, items: Iterable[Any]) -> 'ColumnTable':
        """
        Build a table from normalized page items.

        Accepted item shapes:
        - columnar dict: {"strike": [...], "right": [...], ...}
        - contract record: {"contract": {...}, "bid": 1.2, ...}
        - contract record with samples: {"contract": {...}, "data": [{...}, ...]}
        - flat record: {"strike": 100, "right": "C", ...}
        Anything else is ignored.
        """
        table = cls()
        pending: List[Dict[str, Any]] = []
        skipped = 0

        def flush():
            if pending:
                names = {k for row in pending for k in row}
                table._extend({n: [row.get(n) for row in pending] for n in names})
                pending.clear()

        for item in items:
            if not isinstance(item, dict):
                skipped += 1
                continue

            if "contract" not in item and any(isinstance(v, list) for v in item.values()):
                flush()
                table._extend({k: v for k, v in item.items() if isinstance(v, list)})
                continue

            contract = item.get("contract") if isinstance(item.get("contract"), dict) else {}
            base = {k: v for k, v in item.items() if k not in ("contract", "data")}
            base.update(contract)

            samples = item.get("data")
            if isinstance(samples, list) and samples:
                for sample in samples:
                    if isinstance(sample, dict):
                        pending.append({**base, **sample})
            else:
                pending.append(base)

        flush()
        if skipped:
            logger.debug(f"Ignored {skipped} non-record item(s) while building table")
        return table
