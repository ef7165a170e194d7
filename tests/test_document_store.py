import asyncio
import logging

import pytest

from beatsync.core.document_store import DocumentStore


def test_set_get_update_and_delete() -> None:
    store = DocumentStore()

    async def run():
        await store.set("/tracks/1", {"track": {"name": "Song"}})
        await store.update("/tracks/1", {"spotifyUri": "spotify:track:1"})
        await store.update("/tracks/1", {"track/artists": "DJ A"})
        first = await store.get("/tracks/1")
        await store.set("/tracks/1", None)
        return first, await store.get("/tracks/1"), await store.get("/tracks")

    first, deleted, parent = asyncio.run(run())
    assert first == {
        "track": {"name": "Song", "artists": "DJ A"},
        "spotifyUri": "spotify:track:1",
    }
    assert deleted is None
    assert parent is None


def test_empty_objects_are_not_stored() -> None:
    store = DocumentStore()

    async def run():
        await store.set("/purchases/X", {"tracks": {}})
        return await store.get("/purchases/X")

    assert asyncio.run(run()) is None


def test_get_returns_a_copy() -> None:
    store = DocumentStore()

    async def run():
        await store.set("/tracks/1", {"track": {"name": "Song"}})
        value = await store.get("/tracks/1")
        value["track"]["name"] = "changed"
        return await store.get("/tracks/1/track/name")

    assert asyncio.run(run()) == "Song"


def test_query_filters_orders_by_key_and_limits() -> None:
    store = DocumentStore()

    async def run():
        for key in ["10", "2", "abc", "1"]:
            await store.set(f"/tracks/{key}", {"track": {"item": key}})
        await store.update("/tracks/2", {"spotifyUri": "spotify:track:2"})
        everything = await store.query("/tracks", "spotifyUri", None)
        limited = await store.query("/tracks", "spotifyUri", None, limit=2)
        matched = await store.query("/tracks", "spotifyUri", "spotify:track:2")
        return everything, limited, matched

    everything, limited, matched = asyncio.run(run())
    assert list(everything) == ["1", "10", "abc"]
    assert list(limited) == ["1", "10"]
    assert list(matched) == ["2"]


def test_on_create_fires_for_new_nodes_only() -> None:
    store = DocumentStore()
    created = []

    async def handler(value, params):
        created.append((params["id"], value))

    store.on_create("/tracks/{id}", handler)

    async def run():
        await store.set("/tracks/1", {"track": {"item": 1}})
        await store.update("/tracks/1", {"spotifyUri": "spotify:track:1"})
        await store.set("/tracks/1", {"track": {"item": 1}})
        await store.update("/tracks", {"2": {"track": {"item": 2}}, "3": {"track": {"item": 3}}})
        await store.drain()

    asyncio.run(run())
    assert sorted(created) == [
        ("1", {"track": {"item": 1}}),
        ("2", {"track": {"item": 2}}),
        ("3", {"track": {"item": 3}}),
    ]


def test_on_create_fires_for_ancestor_pattern() -> None:
    store = DocumentStore()
    created = []

    async def handler(value, params):
        created.append((params["id"], value))

    store.on_create("/purchases/{id}", handler)

    async def run():
        await store.set("/purchases/X/tracks/1", {"item": 1})
        await store.set("/purchases/X/tracks/2", {"item": 2})
        await store.drain()

    asyncio.run(run())
    assert created == [("X", {"tracks": {"1": {"item": 1}}})]


def test_failing_trigger_is_logged(caplog) -> None:
    store = DocumentStore()

    async def handler(value, params):
        raise RuntimeError("boom")

    store.on_create("/tracks/{id}", handler)

    async def run():
        await store.set("/tracks/1", {"track": {}})
        await store.set("/tracks/1/track", {"item": 1})
        await store.drain()

    with caplog.at_level(logging.ERROR, logger="beatsync.core.document_store"):
        asyncio.run(run())

    assert "Trigger for /tracks/1 failed" in caplog.text


@pytest.mark.parametrize("path", ["/purchases/", "/purchases//X", "/", ""])
def test_writes_reject_empty_path_segments(path) -> None:
    store = DocumentStore()
    asyncio.run(store.set("/purchases/A", {"tracks": {"1": {"item": 1}}}))

    with pytest.raises(ValueError):
        asyncio.run(store.set(path, {"tracks": {"2": {"item": 2}}}))
    with pytest.raises(ValueError):
        asyncio.run(store.update(path, {"tracks": {"2": {"item": 2}}}))

    assert asyncio.run(store.get("/purchases")) == {"A": {"tracks": {"1": {"item": 1}}}}


def test_update_rejects_empty_key_segments() -> None:
    store = DocumentStore()

    with pytest.raises(ValueError):
        asyncio.run(store.update("/tracks/1", {"track//name": "Song"}))

    assert asyncio.run(store.get("/tracks/1")) is None


def test_file_backed_store_keeps_last_of_concurrent_writes(tmp_path) -> None:
    path = tmp_path / "store.json"

    async def write():
        store = DocumentStore(path)
        await asyncio.gather(*(store.set(f"/tracks/{i}", {"track": {"item": i}}) for i in range(1, 6)))
        await store.update("/tracks/3", {"spotifyUri": "spotify:track:3"})

    asyncio.run(write())

    reopened = DocumentStore(path)
    saved = asyncio.run(reopened.get("/tracks"))
    assert sorted(saved, key=int) == ["1", "2", "3", "4", "5"]
    assert saved["3"]["spotifyUri"] == "spotify:track:3"


def test_file_backed_store_persists(tmp_path) -> None:
    path = tmp_path / "data" / "store.json"

    async def write():
        store = DocumentStore(path)
        await store.set("/tokens/refresh_token", "refresh-1")

    asyncio.run(write())

    reopened = DocumentStore(path)
    assert asyncio.run(reopened.get("/tokens/refresh_token")) == "refresh-1"
