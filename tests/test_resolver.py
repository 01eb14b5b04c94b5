"""Tests for remote-first report resolution with local history fallback."""

from __future__ import annotations

from typing import Dict, List, Optional

from config.settings import AppConfig, HistoryConfig
from core.exceptions import ProfileLookupError, RemoteStoreError
from core.history import CompletedReportCache
from core.item_cache import ItemMemoryCache
from core.resolver import HybridLookupResolver, LookupSource, build_resolver
from core.storage import InMemorySlotStorage
from models.items import LostFoundItem


class _FakeRemote:
    def __init__(self, items: Optional[Dict[str, LostFoundItem]] = None, user_id: Optional[str] = "me") -> None:
        self.items = dict(items or {})
        self.user_id = user_id
        self.fail = False
        self.calls: List[str] = []

    def get_item(self, item_id: str) -> Optional[LostFoundItem]:
        self.calls.append(item_id)
        if self.fail:
            raise RemoteStoreError("network unreachable")
        return self.items.get(item_id)

    def mark_completed(self, item_id: str) -> None:
        self.items.pop(item_id, None)

    def current_user_id(self) -> Optional[str]:
        return self.user_id


class _FakeProfiles:
    def __init__(self, names: Optional[Dict[str, str]] = None) -> None:
        self.names = dict(names or {})

    def get_display_name(self, user_id: str) -> str:
        if user_id not in self.names:
            raise ProfileLookupError(f"no profile for {user_id}")
        return self.names[user_id]


def _item(item_id: str, owner: str, user_name: str = "Historical Name") -> LostFoundItem:
    return LostFoundItem(id=item_id, user_id=owner, item_name="Wallet", user_name=user_name)


def _history(clock) -> CompletedReportCache:
    return CompletedReportCache(InMemorySlotStorage(), HistoryConfig(timezone="UTC"), clock=clock)


def test_remote_record_is_canonical(clock) -> None:
    remote = _FakeRemote({"r1": _item("r1", "me")})
    resolver = HybridLookupResolver(remote, _history(clock), _FakeProfiles({"me": "Current Name"}))

    result = resolver.resolve("r1")
    assert result.source is LookupSource.REMOTE
    assert result.found
    assert result.is_owner is True
    assert result.owner_name == "Current Name"
    assert result.completed_report is None


def test_remote_record_of_other_user_is_not_owned(clock) -> None:
    remote = _FakeRemote({"r1": _item("r1", "someone-else")})
    history = _history(clock)
    history.insert(_item("r1", "someone-else"))
    resolver = HybridLookupResolver(remote, history, _FakeProfiles())

    result = resolver.resolve("r1")
    assert result.source is LookupSource.REMOTE
    assert result.is_owner is False
    assert result.owner_name == "Historical Name"


def test_remote_miss_falls_back_to_history(clock) -> None:
    history = _history(clock)
    history.insert(_item("r1", "original-owner", user_name=""))
    resolver = HybridLookupResolver(_FakeRemote(user_id="someone"), history, _FakeProfiles({"original-owner": "Fresh"}))

    result = resolver.resolve("r1")
    assert result.source is LookupSource.LOCAL
    assert result.is_owner is True
    assert result.item is not None and result.item.is_completed
    assert result.completed_report is not None
    assert result.owner_name == "Fresh"


def test_remote_failure_falls_back_to_history(clock) -> None:
    remote = _FakeRemote({"r1": _item("r1", "me")})
    remote.fail = True
    history = _history(clock)
    history.insert(_item("r1", "me"))
    resolver = HybridLookupResolver(remote, history, _FakeProfiles())

    result = resolver.resolve("r1")
    assert result.source is LookupSource.LOCAL
    assert result.owner_name is None


def test_unknown_id_is_not_found(clock) -> None:
    resolver = HybridLookupResolver(_FakeRemote(), _history(clock), _FakeProfiles())

    result = resolver.resolve("ghost")
    assert result.source is LookupSource.NOT_FOUND
    assert not result.found
    assert result.item is None
    assert result.is_owner is False


def test_signed_out_user_never_owns_remote_record(clock) -> None:
    remote = _FakeRemote({"r1": _item("r1", "me")}, user_id=None)
    resolver = HybridLookupResolver(remote, _history(clock), _FakeProfiles())

    assert resolver.resolve("r1").is_owner is False


def test_item_cache_short_circuits_lookups(clock) -> None:
    now = [0.0]
    remote = _FakeRemote({"r1": _item("r1", "me")})
    cache: ItemMemoryCache = ItemMemoryCache(ttl_seconds=180, clock=lambda: now[0])
    resolver = HybridLookupResolver(remote, _history(clock), _FakeProfiles(), item_cache=cache)

    resolver.resolve("r1")
    resolver.resolve("r1")
    assert remote.calls == ["r1"]

    now[0] = 181.0
    resolver.resolve("r1")
    assert remote.calls == ["r1", "r1"]

    resolver.invalidate("r1")
    resolver.resolve("r1")
    assert remote.calls == ["r1", "r1", "r1"]


def test_not_found_results_are_not_cached(clock) -> None:
    remote = _FakeRemote()
    cache: ItemMemoryCache = ItemMemoryCache(ttl_seconds=180)
    resolver = HybridLookupResolver(remote, _history(clock), _FakeProfiles(), item_cache=cache)

    resolver.resolve("ghost")
    remote.items["ghost"] = _item("ghost", "me")

    assert resolver.resolve("ghost").source is LookupSource.REMOTE


def test_build_resolver_applies_configured_ttl(clock) -> None:
    config = AppConfig(version="test")
    remote = _FakeRemote({"r1": _item("r1", "me")})
    resolver = build_resolver(config, remote, _history(clock), _FakeProfiles())

    resolver.resolve("r1")
    resolver.resolve("r1")
    assert config.lookup.item_cache_ttl_seconds == 180
    assert remote.calls == ["r1"]


def test_build_resolver_zero_ttl_disables_cache(clock) -> None:
    config = AppConfig(version="test")
    config.lookup.item_cache_ttl_seconds = 0
    remote = _FakeRemote({"r1": _item("r1", "me")})
    resolver = build_resolver(config, remote, _history(clock), _FakeProfiles())

    resolver.resolve("r1")
    resolver.resolve("r1")
    assert remote.calls == ["r1", "r1"]
