import threading

import pytest

from place_store import PlaceStore


def make_store(*woeids):
    store = PlaceStore()
    for woeid in woeids:
        store.put(woeid, {"WOE_ID": woeid})
    return store


def test_put_get_contains():
    store = make_store("1", "2")
    assert len(store) == 2
    assert "1" in store
    assert "3" not in store
    assert store.get("2") == {"WOE_ID": "2"}
    assert store.get("3") is None


def test_add_name_front_and_append():
    store = make_store("1")
    store.add_name("1", "ENG", "Alt")
    store.add_name("1", "ENG", "Preferred", front=True)
    store.add_name("1", "ENG", "Other")
    assert store.get("1")["name"]["ENG"] == ["Preferred", "Alt", "Other"]


def test_add_name_never_duplicates():
    store = make_store("1")
    assert store.add_name("1", "FRA", "Paris") is True
    assert store.add_name("1", "FRA", "Paris", front=True) is False
    assert store.get("1")["name"]["FRA"] == ["Paris"]


def test_add_neighbor_dedupes():
    store = make_store("1")
    store.add_neighbor("1", "2")
    store.add_neighbor("1", "2")
    assert store.get("1")["neighbor_woeids"] == ["2"]


def test_locked_unknown_id():
    store = make_store("1")
    with pytest.raises(KeyError):
        store.add_neighbor("missing", "1")


def test_concurrent_updates_lose_nothing():
    store = make_store("1", "2")
    barrier = threading.Barrier(8)

    def worker(n):
        barrier.wait()
        for i in range(200):
            store.add_neighbor("1", str(i))
            store.add_neighbor("2", str(i % 10))
            store.add_name("1", "ENG", f"name-{i}", front=(n % 2 == 0))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(store.get("1")["neighbor_woeids"], key=int) == [str(i) for i in range(200)]
    assert len(store.get("2")["neighbor_woeids"]) == 10
    names = store.get("1")["name"]["ENG"]
    assert len(names) == len(set(names)) == 200
