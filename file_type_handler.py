import os
import sys

import pandas as pd

from managed_dataset import BasePlan, ManagedDataset

SUPPORTED = (".csv", ".tsv", ".parquet", ".json", ".jsonl", ".xlsx")


class FileTypeHandler:
    """Turns a path into a replayable base plan; nothing is read until collect."""

    def __init__(self, path: str, sheet_name=0):
        self.path = path
        self.sheet_name = sheet_name
        _, ext = os.path.splitext(path)
        self.ext = ext.lower()

        if self.ext not in SUPPORTED:
            print(f"Unsupported file type (use {', '.join(SUPPORTED)})")
            sys.exit(1)
        if self.ext == ".parquet":
            self._ensure_parquet_engine()
        elif self.ext == ".xlsx":
            self._ensure_excel_engine()

    @property
    def name(self) -> str:
        return os.path.splitext(os.path.basename(self.path))[0]

    def read(self) -> pd.DataFrame:
        if os.path.exists(self.path) and os.path.getsize(self.path) == 0:
            return pd.DataFrame()
        if self.ext == ".csv":
            try:
                return pd.read_csv(self.path)
            except pd.errors.EmptyDataError:
                return pd.DataFrame()
        if self.ext == ".tsv":
            try:
                return pd.read_csv(self.path, sep="\t")
            except pd.errors.EmptyDataError:
                return pd.DataFrame()
        if self.ext == ".parquet":
            return pd.read_parquet(self.path)
        if self.ext == ".json":
            return pd.read_json(self.path)
        if self.ext == ".jsonl":
            return pd.read_json(self.path, lines=True)
        return pd.read_excel(self.path, sheet_name=self.sheet_name)

    def plan(self) -> BasePlan:
        return BasePlan(self.read, description=self.path)

    def dataset(self) -> ManagedDataset:
        return ManagedDataset(
            self.plan(),
            name=self.name,
            source_path=os.path.abspath(self.path),
        )

    def _ensure_parquet_engine(self):
        try:
            import pyarrow  # noqa: F401

            return
        except ImportError:
            pass
        print("Parquet support requires pyarrow. Install via: pip install pyarrow")
        sys.exit(1)

    def _ensure_excel_engine(self):
        try:
            import openpyxl  # noqa: F401

            return
        except ImportError:
            pass
        print("XLSX support requires openpyxl. Install via: pip install openpyxl")
        sys.exit(1)
