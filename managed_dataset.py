# ~/Apps/tablescope/managed_dataset.py
import datetime as dt
from dataclasses import dataclass, replace
from typing import Callable, Optional

import pandas as pd
import structlog

from cell_coercion import cast_series
from column_widths import ColumnWidthConfig
from errors import (
    CastError,
    CollectError,
    ColumnNotFound,
    DuplicateColumn,
    FilterError,
    SortError,
    TableError,
)
from filter_expr import describe, evaluate_mask

logger = structlog.get_logger(__name__)


class BasePlan:
    """Immutable, replayable definition of a dataset.

    ``loader`` is called on every ``collect()``; it must return a new
    DataFrame each time (``from_frame`` copies its source for this reason).
    """

    def __init__(self, loader: Callable[[], pd.DataFrame], description: str = ""):
        self._loader = loader
        self.description = description

    @classmethod
    def from_frame(cls, df: pd.DataFrame, description: str = "in-memory frame") -> "BasePlan":
        frozen = df.copy()
        return cls(lambda: frozen.copy(), description)

    def collect(self) -> pd.DataFrame:
        try:
            df = self._loader()
        except Exception as exc:
            raise CollectError(f"Collect error: {exc}") from exc
        if not isinstance(df, pd.DataFrame):
            raise CollectError(
                f"Collect error: plan produced {type(df).__name__}, expected DataFrame"
            )
        return df.reset_index(drop=True)

    def __repr__(self):
        return f"BasePlan({self.description!r})"


@dataclass(frozen=True)
class Unmaterialized:
    plan: BasePlan


@dataclass(frozen=True)
class Materialized:
    plan: BasePlan
    base: pd.DataFrame
    snapshot: pd.DataFrame


@dataclass(frozen=True)
class SortColumn:
    name: str
    ascending: bool = True

    def __str__(self):
        return f"{self.name} {'asc' if self.ascending else 'desc'}"


@dataclass
class DatasetMetadata:
    name: str
    description: Optional[str] = None
    source_path: Optional[str] = None
    creation_time: dt.datetime = None
    last_modified: dt.datetime = None

    def __post_init__(self):
        now = dt.datetime.now(dt.timezone.utc)
        if self.creation_time is None:
            self.creation_time = now
        if self.last_modified is None:
            self.last_modified = self.creation_time

    def __str__(self):
        text = self.name
        if self.description:
            text += f" - {self.description}"
        if self.source_path:
            text += f"\nSource: {self.source_path}"
        text += f"\nCreated: {self.creation_time}\nModified: {self.last_modified}"
        return text


class ManagedDataset:
    def __init__(
        self,
        plan: BasePlan,
        name: str,
        description: Optional[str] = None,
        source_path: Optional[str] = None,
    ):
        self.state = Unmaterialized(plan)
        self.metadata = DatasetMetadata(name, description, source_path)
        self.last_sort: Optional[list[SortColumn]] = None
        self.filter = None
        self.column_width_config = ColumnWidthConfig()

    @classmethod
    def from_frame(cls, df: pd.DataFrame, name: str, description=None, source_path=None):
        return cls(BasePlan.from_frame(df), name, description, source_path)

    # ---------- state ----------
    @property
    def plan(self) -> BasePlan:
        return self.state.plan

    @property
    def is_materialized(self) -> bool:
        return isinstance(self.state, Materialized)

    def materialize(self) -> pd.DataFrame:
        """Return the snapshot, collecting the base plan first if needed."""
        return self._ensure_materialized().snapshot

    def _ensure_materialized(self) -> Materialized:
        if isinstance(self.state, Materialized):
            return self.state
        base = self.state.plan.collect()
        self.state = Materialized(self.state.plan, base, base)
        logger.info(
            "dataset_materialized",
            dataset=self.metadata.name,
            rows=len(base),
            columns=len(base.columns),
        )
        return self.state

    def _replace_snapshot(self, snapshot: pd.DataFrame, event: str, **fields):
        current = self._ensure_materialized()
        self.state = replace(current, snapshot=snapshot)
        self.metadata.last_modified = dt.datetime.now(dt.timezone.utc)
        logger.info(event, dataset=self.metadata.name, rows=len(snapshot), **fields)

    def reset(self):
        """Drop the snapshot; the next read re-collects the base plan."""
        self.state = Unmaterialized(self.state.plan)
        self.last_sort = None
        self.filter = None
        logger.info("dataset_reset", dataset=self.metadata.name)

    def set_snapshot(self, df: pd.DataFrame):
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"expected DataFrame, got {type(df).__name__}")
        self._replace_snapshot(df.reset_index(drop=True), "dataset_snapshot_set")

    def set_column_width_config(self, config: ColumnWidthConfig):
        self.column_width_config = config

    def _require_columns(self, df: pd.DataFrame, names):
        for name in names:
            if name not in df.columns:
                raise ColumnNotFound(name)

    # ---------- sort ----------
    def sort(self, columns):
        """Sort by ``columns``: an ordered list of SortColumn or (name, ascending).

        Nulls go first for ascending keys and last for descending ones. Equal
        keys keep their current relative order.
        """
        keys = [c if isinstance(c, SortColumn) else SortColumn(*c) for c in columns or ()]
        if not keys:
            return
        current = self.materialize()
        self._require_columns(current, [k.name for k in keys])
        try:
            ordered = current
            for key in reversed(keys):
                ordered = ordered.sort_values(
                    key.name,
                    ascending=key.ascending,
                    na_position="first" if key.ascending else "last",
                    kind="stable",
                )
        except (TypeError, ValueError) as exc:
            raise SortError(f"Cannot sort by {', '.join(map(str, keys))}: {exc}") from exc
        self._replace_snapshot(
            ordered.reset_index(drop=True), "dataset_sorted", keys=[str(k) for k in keys]
        )
        self.last_sort = keys

    def toggle_sort(self, column: str):
        ascending = True
        if self.last_sort and len(self.last_sort) == 1 and self.last_sort[0].name == column:
            ascending = not self.last_sort[0].ascending
        self.sort([SortColumn(column, ascending)])

    def sort_indicator(self, column: str) -> str:
        """Header prefix for ``column``: arrow, plus rank for multi-key sorts."""
        if not self.last_sort:
            return ""
        for rank, key in enumerate(self.last_sort, start=1):
            if key.name == column:
                arrow = "▲" if key.ascending else "▼"
                if len(self.last_sort) > 1:
                    return f"{arrow}[{rank}] "
                return f"{arrow} "
        return ""

    # ---------- filter ----------
    def apply_filter(self, expr):
        """Keep the base rows matching ``expr``; never cumulative."""
        base = self._ensure_materialized().base
        try:
            mask = evaluate_mask(expr, base)
        except TableError:
            raise
        except (TypeError, ValueError, AttributeError) as exc:
            raise FilterError(f"Filter error: {exc}") from exc
        filtered = base[mask.to_numpy()].reset_index(drop=True)
        self._replace_snapshot(filtered, "dataset_filtered", expr=describe(expr))
        self.filter = expr
        self.last_sort = None

    def clear_filter(self):
        base = self._ensure_materialized().base
        self._replace_snapshot(base, "dataset_filter_cleared")
        self.filter = None
        self.last_sort = None

    # ---------- columns ----------
    def reorder_columns(self, column_order):
        """Select ``column_order`` from the snapshot; unmentioned columns are dropped."""
        current = self.materialize()
        order = list(column_order)
        self._require_columns(current, order)
        seen = set()
        for name in order:
            if name in seen:
                raise DuplicateColumn(name)
            seen.add(name)
        self._replace_snapshot(current.loc[:, order], "dataset_columns_reordered", order=order)

    def remove_columns(self, names):
        current = self.materialize()
        names = list(names)
        self._require_columns(current, names)
        keep = [c for c in current.columns if c not in set(names)]
        self._replace_snapshot(current.loc[:, keep], "dataset_columns_removed", removed=names)
        if self.last_sort:
            remaining = [k for k in self.last_sort if k.name in keep]
            self.last_sort = remaining or None

    def cast_column(self, column: str, target: str):
        current = self.materialize()
        self._require_columns(current, [column])
        try:
            converted = cast_series(current[column], target)
        except (TypeError, ValueError, OverflowError) as exc:
            raise CastError(column, exc) from exc
        new_df = current.copy()
        new_df[column] = converted
        self._replace_snapshot(new_df, "dataset_column_cast", column=column, target=target)

    # ---------- read-only ----------
    def row_count(self) -> int:
        return len(self.materialize())

    def column_count(self) -> int:
        return len(self.materialize().columns)

    def column_names(self) -> list:
        return list(self.materialize().columns)

    def column_types(self) -> list:
        return [(str(name), str(dtype)) for name, dtype in self.materialize().dtypes.items()]

    def summary(self) -> str:
        lines = [f"Rows: {self.row_count()}, Columns: {self.column_count()}", "Column Types:"]
        lines.extend(f"  {name}: {dtype}" for name, dtype in self.column_types())
        return "\n".join(lines) + "\n"

    def __str__(self):
        return f"{self.metadata}\n{self.summary()}"

    def __repr__(self):
        shape = self.state.snapshot.shape if self.is_materialized else None
        return (
            f"ManagedDataset(name={self.metadata.name!r}, shape={shape}, "
            f"last_sort={self.last_sort!r}, widths={self.column_width_config})"
        )
