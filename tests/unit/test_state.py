import threading

from src.pipeline.state import ResultStore, VisitedSet, dedupe_preserving_order
from src.schemas import ShopContact


def test_visited_set_add_if_new():
    v = VisitedSet(["https://a"])
    assert not v.add_if_new("https://a")
    assert v.add_if_new("https://b")
    assert not v.add_if_new("https://b")


def test_visited_set_concurrent_adds_admit_each_url_once():
    v = VisitedSet()
    admitted = []
    lock = threading.Lock()
    urls = [f"https://shop/{i % 50}" for i in range(1000)]

    def worker(chunk):
        for u in chunk:
            if v.add_if_new(u):
                with lock:
                    admitted.append(u)

    threads = [threading.Thread(target=worker, args=(urls[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(admitted) == sorted(set(urls))


def test_dedupe_preserving_order_drops_blanks():
    assert dedupe_preserving_order(["b", "a", "", "b", "c", "a"]) == ["b", "a", "c"]


def test_result_store_last_write_replaces():
    store = ResultStore()
    store.put("Jane", ShopContact(original_shop_link="https://a"))
    store.put("Bob", ShopContact(original_shop_link="https://b"))
    store.put("Jane", ShopContact(original_shop_link="https://c"))
    snap = store.snapshot()
    assert list(snap) == ["Jane", "Bob"]
    assert snap["Jane"].original_shop_link == "https://c"
    assert store.replaced == 1
