from storage.ttl_store import TTLStore


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire():
    clock = Clock()
    store = TTLStore(10, clock=clock)
    store.set("k", [1, 2])
    clock.now = 9.9
    assert store.get("k") == [1, 2]
    assert "k" in store
    clock.now = 10.0
    assert store.get("k") is None
    assert len(store) == 0


def test_zero_ttl_disables_storage():
    store = TTLStore(0)
    store.set("k", "v")
    assert store.get("k", "missing") == "missing"


def test_oldest_entry_is_evicted_at_capacity():
    clock = Clock()
    store = TTLStore(100, max_entries=2, clock=clock)
    store.set("a", 1)
    clock.now = 1
    store.set("b", 2)
    clock.now = 2
    store.set("c", 3)
    assert store.get("a") is None
    assert (store.get("b"), store.get("c")) == (2, 3)


def test_pop_and_clear():
    store = TTLStore(100)
    store.set("a", 1)
    store.set("b", 2)
    assert store.pop("a") == 1
    assert store.pop("a") is None
    store.clear()
    assert len(store) == 0
