from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import httpx

from models import PlayerRef


logger = logging.getLogger(__name__)


SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").rstrip("/")
SUPABASE_KEY = os.getenv("SUPABASE_KEY") or ""
SUPABASE_STATS_TABLE = os.getenv("SUPABASE_STATS_TABLE", "battleship_stats")


@dataclass
class PlayerStatistics:
    player_id: int
    name: str = ""
    games_won: int = 0
    surrender_wins: int = 0
    units_destroyed: int = 0

    @property
    def total_wins(self) -> int:
        return self.games_won + self.surrender_wins

    @staticmethod
    def from_payload(data: dict) -> 'PlayerStatistics':
        def _int(key: str) -> int:
            try:
                return int(data.get(key) or 0)
            except (TypeError, ValueError):
                return 0

        return PlayerStatistics(
            player_id=_int("player_id"),
            name=str(data.get("name") or ""),
            games_won=_int("games_won"),
            surrender_wins=_int("surrender_wins"),
            units_destroyed=_int("units_destroyed"),
        )

    def to_payload(self) -> dict:
        return asdict(self)


class StatisticsStore(Protocol):
    def increment_win(self, player: PlayerRef) -> None: ...

    def increment_surrender_win(self, player: PlayerRef) -> None: ...

    def increment_units_destroyed(self, player: PlayerRef) -> None: ...

    def query_leaderboard(self, top_n: int) -> List[PlayerStatistics]: ...

    def query_rank(self, player_id: int) -> Tuple[Optional[int], int]: ...

    def get_statistics(self, player_id: int) -> Optional[PlayerStatistics]: ...


def _ranking_key(stats: PlayerStatistics) -> tuple:
    return (-stats.total_wins, -stats.units_destroyed, stats.name.lower(), stats.player_id)


def rank_players(records: Iterable[PlayerStatistics]) -> List[PlayerStatistics]:
    """Order players best first: wins, then destroyed units, then name."""
    return sorted(records, key=_ranking_key)


def _rank_of(records: Iterable[PlayerStatistics], player_id: int) -> Tuple[Optional[int], int]:
    ranked = rank_players(records)
    for position, stats in enumerate(ranked, start=1):
        if stats.player_id == player_id:
            return position, len(ranked)
    return None, len(ranked)


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class FileStatisticsStore:
    """Statistics kept in a local JSON file keyed by player id."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = Lock()

    def _load_all(self) -> Dict[str, dict]:
        if self.path.exists():
            try:
                return json.loads(self.path.read_text(encoding="utf-8")) or {}
            except json.JSONDecodeError:
                logger.warning("Statistics file %s is corrupted or empty, returning {}", self.path)
                return {}
        return {}

    def _save_all(self, data: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def _increment(self, player: PlayerRef, counter: str) -> None:
        with self._lock:
            data = self._load_all()
            key = str(player.id)
            stats = PlayerStatistics.from_payload(data.get(key) or {"player_id": player.id})
            stats.player_id = player.id
            if player.name:
                stats.name = player.name
            setattr(stats, counter, getattr(stats, counter) + 1)
            data[key] = stats.to_payload()
            self._save_all(data)

    def _records(self) -> List[PlayerStatistics]:
        with self._lock:
            data = self._load_all()
        return [PlayerStatistics.from_payload(item) for item in data.values()]

    def increment_win(self, player: PlayerRef) -> None:
        self._increment(player, "games_won")

    def increment_surrender_win(self, player: PlayerRef) -> None:
        self._increment(player, "surrender_wins")

    def increment_units_destroyed(self, player: PlayerRef) -> None:
        self._increment(player, "units_destroyed")

    def query_leaderboard(self, top_n: int) -> List[PlayerStatistics]:
        return rank_players(self._records())[:top_n]

    def query_rank(self, player_id: int) -> Tuple[Optional[int], int]:
        return _rank_of(self._records(), player_id)

    def get_statistics(self, player_id: int) -> Optional[PlayerStatistics]:
        with self._lock:
            data = self._load_all()
        payload = data.get(str(player_id))
        if payload is None:
            return None
        return PlayerStatistics.from_payload(payload)


# ---------------------------------------------------------------------------
# Supabase store
# ---------------------------------------------------------------------------


class SupabaseStatisticsStore:
    """Statistics kept in a Supabase table through its REST interface.

    The table has the columns of :class:`PlayerStatistics` with ``player_id``
    as primary key.  Increments are read-modify-write.
    """

    def __init__(
        self,
        url: str = SUPABASE_URL,
        key: str = SUPABASE_KEY,
        table: str = SUPABASE_STATS_TABLE,
        timeout: float = 30,
    ) -> None:
        self.url = url.rstrip("/")
        self.key = key
        self.table = table
        self.timeout = timeout

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        base = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
        }
        if extra:
            base.update(extra)
        return base

    def _require_credentials(self) -> None:
        if not (self.url and self.key):
            raise RuntimeError("Supabase credentials are not configured")

    def _get_all(self) -> List[dict]:
        self._require_credentials()
        url = f"{self.url}/rest/v1/{self.table}?select=*"
        with httpx.Client(timeout=self.timeout) as client:
            response = client.get(url, headers=self._headers())
            response.raise_for_status()
            return response.json()

    def _get_one(self, player_id: int) -> Optional[dict]:
        self._require_credentials()
        url = f"{self.url}/rest/v1/{self.table}?player_id=eq.{int(player_id)}&select=*"
        with httpx.Client(timeout=self.timeout) as client:
            response = client.get(url, headers=self._headers())
            response.raise_for_status()
            rows = response.json()
        if not rows:
            return None
        return rows[0]

    def _upsert(self, payload: dict) -> None:
        self._require_credentials()
        url = f"{self.url}/rest/v1/{self.table}?on_conflict=player_id"
        headers = self._headers({
            "Content-Type": "application/json",
            "Prefer": "resolution=merge-duplicates",
        })
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(url, headers=headers, json=[payload])
            response.raise_for_status()

    def _increment(self, player: PlayerRef, counter: str) -> None:
        current = self._get_one(player.id) or {"player_id": player.id}
        stats = PlayerStatistics.from_payload(current)
        stats.player_id = player.id
        if player.name:
            stats.name = player.name
        setattr(stats, counter, getattr(stats, counter) + 1)
        self._upsert(stats.to_payload())

    def increment_win(self, player: PlayerRef) -> None:
        self._increment(player, "games_won")

    def increment_surrender_win(self, player: PlayerRef) -> None:
        self._increment(player, "surrender_wins")

    def increment_units_destroyed(self, player: PlayerRef) -> None:
        self._increment(player, "units_destroyed")

    def query_leaderboard(self, top_n: int) -> List[PlayerStatistics]:
        records = [PlayerStatistics.from_payload(row) for row in self._get_all()]
        return rank_players(records)[:top_n]

    def query_rank(self, player_id: int) -> Tuple[Optional[int], int]:
        records = [PlayerStatistics.from_payload(row) for row in self._get_all()]
        return _rank_of(records, player_id)

    def get_statistics(self, player_id: int) -> Optional[PlayerStatistics]:
        row = self._get_one(player_id)
        if row is None:
            return None
        return PlayerStatistics.from_payload(row)


def create_statistics_store(use_supabase: bool = False, path: Path | str = "stats.json") -> StatisticsStore:
    if use_supabase:
        logger.info("Using Supabase table %s for statistics", SUPABASE_STATS_TABLE)
        return SupabaseStatisticsStore()
    logger.info("Using %s for statistics", path)
    return FileStatisticsStore(path)
