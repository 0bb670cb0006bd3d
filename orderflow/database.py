# orderflow/database.py
"""
Simple file-backed table store using CSV files. Provides basic CRUD
primitives per table name. Uses file locking to avoid simultaneous
writes corrupting files.

Usage:
    from orderflow.database import db
    db.list_records("orders")
    db.get_record("orders", "id", "3f2a...")
    db.create_record("orders", {"customer_id": "c1", "state": "CREATED"})
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import os
import uuid

import pandas as pd
from filelock import FileLock

from orderflow.config import settings

logger = logging.getLogger(__name__)


class FileBackedDB:
    """
    Manages CSV files inside a data directory.
    Table name corresponds to a file name in settings (or you may pass full filename).
    When no directory is given, settings.DATA_DIR is resolved on every access.
    """

    def __init__(self, data_dir: Optional[Path] = None, lock_timeout: float = -1):
        self._data_dir = Path(data_dir) if data_dir is not None else None
        self.lock_timeout = lock_timeout

    @property
    def data_dir(self) -> Path:
        return self._data_dir if self._data_dir is not None else Path(settings.DATA_DIR)

    def _file_path(self, table: str) -> Path:
        """
        Resolve table -> file path. If table looks like a filename (has .csv),
        use it directly (relative to data_dir). Otherwise try config mapping,
        else fallback to table + .csv
        """
        if table.endswith(".csv"):
            return self.data_dir / Path(table)

        mapping = {
            "orders": settings.ORDERS_FILE,
        }
        filename = mapping.get(table, f"{table}.csv")
        return self.data_dir / Path(filename)

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=self.lock_timeout)

    def _read_df(self, table: str) -> pd.DataFrame:
        path = self._file_path(table)
        if not path.exists():
            return pd.DataFrame()
        try:
            # every cell is text; "NA", "null" and friends stay as written
            return pd.read_csv(path, dtype=str, keep_default_na=False, na_filter=False)
        except pd.errors.EmptyDataError:
            # header-less empty file
            return pd.DataFrame()

    def _write_df_nolock(self, table: str, df: pd.DataFrame) -> None:
        """
        Write DataFrame for `table` WITHOUT acquiring file lock.
        Use this only when the caller already holds the lock.
        """
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        # readers don't take the lock, so never expose a half-written file
        tmp = path.with_name(path.name + ".tmp")
        df.to_csv(tmp, index=False)
        os.replace(tmp, path)

    def ensure_table(self, table: str, columns: List[str]) -> Path:
        """Create an empty table file with the given header if it does not exist yet."""
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock_for(path):
            if not path.exists():
                self._write_df_nolock(table, pd.DataFrame(columns=columns))
                logger.info("Created table file %s", path)
        return path

    # --- high-level CRUD primitives ---

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty:
            return []
        return df.to_dict(orient="records")

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty or key not in df.columns:
            return None
        # treat everything as string for comparison simplicity
        mask = df[key].astype(str) == str(value)
        if not mask.any():
            return None
        row = df[mask].iloc[0].to_dict()
        return {k: (None if pd.isna(v) else v) for k, v in row.items()}

    def find_records(self, table: str, key: str, value: Any) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty or key not in df.columns:
            return []
        return df[df[key].astype(str) == str(value)].to_dict(orient="records")

    def create_record(self, table: str, data: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
        """
        Create a new record. If id_field not present in `data`, one will be generated (uuid4 hex).
        Returns the saved record (with id).
        """
        if id_field not in data or not data.get(id_field):
            data[id_field] = uuid.uuid4().hex
        new_row = {k: ("" if v is None else v) for k, v in data.items()}

        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty:
                df = pd.DataFrame([new_row], columns=list(df.columns.union(list(new_row.keys()), sort=False)))
            else:
                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True, sort=False)
            self._write_df_nolock(table, df)
        return data

    def update_record(self, table: str, key: str, value: Any, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update rows where df[key] == value with fields in updates. Returns the updated first row dict or None.
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or key not in df.columns:
                return None
            mask = df[key].astype(str) == str(value)
            if not mask.any():
                return None
            for k, v in updates.items():
                if k not in df.columns:
                    df[k] = ""
                df.loc[mask, k] = "" if v is None else str(v)
            self._write_df_nolock(table, df)
            row = df[mask].iloc[0].to_dict()
            return {k: (None if pd.isna(v) else v) for k, v in row.items()}

    def delete_record(self, table: str, key: str, value: Any) -> bool:
        """
        Delete all records where df[key] == value. Returns True if any rows were removed.
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or key not in df.columns:
                return False
            orig_len = len(df)
            df = df[df[key].astype(str) != str(value)]
            if len(df) == orig_len:
                return False
            self._write_df_nolock(table, df)
            return True


# module-level singleton for convenience
db = FileBackedDB()
