"""
Concurrent creation of the same custom slug.

Both creators must pass the allocator's pre-check before either inserts, so
the store's unique index is what picks the winner. A barrier inside
`slug_exists` forces that interleaving deterministically.
"""

import threading

from minify.errors import SlugTaken
from minify.manager.link_manager import LinkManager
from minify.models import Account
from minify.storage.storage import Storage


class RacingStorage(Storage):
    """Holds every slug_exists() caller until `parties` of them have arrived."""

    def __init__(self, parties: int):
        super().__init__()
        self.barrier = threading.Barrier(parties, timeout=5)

    def slug_exists(self, slug: str) -> bool:
        exists = super().slug_exists(slug)
        self.barrier.wait()
        return exists


def _race(manager, owners, slug):
    results = {}

    def worker(owner_id):
        try:
            results[owner_id] = manager.create_link(owner_id, f"https://{owner_id}.example", custom_slug=slug)
        except SlugTaken as exc:
            results[owner_id] = exc

    threads = [threading.Thread(target=worker, args=(o,)) for o in owners]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results


def test_two_concurrent_creates_one_wins():
    storage = RacingStorage(parties=2)
    storage.insert_account(Account(id="alice"))
    storage.insert_account(Account(id="bob"))
    manager = LinkManager(storage)

    results = _race(manager, ["alice", "bob"], "team")

    winners = [r for r in results.values() if not isinstance(r, SlugTaken)]
    losers = [r for r in results.values() if isinstance(r, SlugTaken)]
    assert len(winners) == 1 and len(losers) == 1
    assert winners[0].slug == "team"
    assert losers[0].slug == "team"
    assert storage.find_link_by_slug("team").owner_id == winners[0].owner_id
    assert len(storage.links) == 1


def test_many_concurrent_creates_exactly_one_wins():
    owners = [f"user{i}" for i in range(8)]
    storage = RacingStorage(parties=len(owners))
    for o in owners:
        storage.insert_account(Account(id=o))
    manager = LinkManager(storage)

    results = _race(manager, owners, "launch")

    assert sum(not isinstance(r, SlugTaken) for r in results.values()) == 1
    assert sum(isinstance(r, SlugTaken) for r in results.values()) == len(owners) - 1
