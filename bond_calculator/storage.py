from __future__ import annotations

import json
import logging
import os
from typing import Dict, List, Optional, Protocol

import pandas as pd

from .bonds import PricedBond
from .config import CUSTOM_BOND_TYPE, PORTFOLIO_STORAGE_KEY
from .errors import StorageError
from .portfolio import PortfolioEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Single JSON object on disk mapping key -> string value.

    The whole file is rewritten on every set; a missing file reads as empty.
    """

    def __init__(self, path: str):
        self.path = path

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StorageError(f"cannot read store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageError(f"store {self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageError as exc:
            logger.error("Unreadable store, moving it aside and starting fresh: %s", exc)
            self._quarantine()
            data = {}
        data[key] = value

        tmp_path = self.path + ".tmp"
        try:
            folder = os.path.dirname(self.path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"cannot write store {self.path}: {exc}") from exc

    def _quarantine(self) -> None:
        """Rename an unreadable store to <path>.corrupt so later writes succeed."""
        try:
            os.replace(self.path, self.path + ".corrupt")
        except OSError as exc:
            raise StorageError(f"cannot move aside corrupt store {self.path}: {exc}") from exc


# ---------- portfolio encoding ----------

def entry_to_record(entry: PortfolioEntry) -> dict:
    record = {"id": entry.entry_id}
    record.update(entry.bond.to_dict())
    return record


def _parse_timestamp(value) -> pd.Timestamp:
    """ISO-8601 string only; None, numbers and unparseable text are rejected."""
    if not isinstance(value, str):
        raise ValueError(f"computed_at must be an ISO-8601 string, got {value!r}")
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        raise ValueError(f"computed_at is not a timestamp: {value!r}")
    return ts


def entry_from_record(record: dict) -> PortfolioEntry:
    try:
        bond = PricedBond(
            face_value=float(record["face_value"]),
            coupon_rate=float(record["coupon_rate"]),
            years_to_maturity=float(record["years_to_maturity"]),
            market_yield=float(record["market_yield"]),
            payment_frequency=int(record["payment_frequency"]),
            price=float(record["price"]),
            ytm=float(record["ytm"]),
            price_change_from_par=float(record["price_change_from_par"]),
            computed_at=_parse_timestamp(record["computed_at"]),
            bond_type=str(record.get("bond_type", CUSTOM_BOND_TYPE)),
        )
        return PortfolioEntry(entry_id=str(record["id"]), bond=bond)
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"malformed portfolio record: {exc}") from exc


def dumps_portfolio(entries: List[PortfolioEntry]) -> str:
    return json.dumps({"bonds": [entry_to_record(e) for e in entries]})


def loads_portfolio(payload: str) -> List[PortfolioEntry]:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise StorageError(f"portfolio payload is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("bonds"), list):
        raise StorageError("portfolio payload must be an object with a 'bonds' list")

    entries = [entry_from_record(r) for r in data["bonds"]]

    ids = [e.entry_id for e in entries]
    if len(set(ids)) != len(ids):
        raise StorageError("portfolio payload contains duplicate entry ids")
    return entries


class PortfolioRepository:
    """Reads/writes the serialized portfolio under one fixed key."""

    def __init__(self, store: KeyValueStore, key: str = PORTFOLIO_STORAGE_KEY):
        self.store = store
        self.key = key

    def save(self, entries: List[PortfolioEntry]) -> None:
        payload = dumps_portfolio(entries)
        try:
            self.store.set(self.key, payload)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"store rejected write for {self.key!r}: {exc}") from exc
        logger.debug("Saved %d portfolio entries under %r", len(entries), self.key)

    def load(self) -> List[PortfolioEntry]:
        try:
            payload = self.store.get(self.key)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"store rejected read for {self.key!r}: {exc}") from exc

        if payload is None:
            return []
        return loads_portfolio(payload)
