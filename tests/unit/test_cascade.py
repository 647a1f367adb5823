"""
Unit tests for AccountCascade.

Covers:
    - soft_delete: account first, then every owned link deactivated
    - reactivate: clears deletion, restores is_active, leaves expiry alone
    - reactivate on an active account is a no-op reported as "already active"
    - partial failure: account write persists, PartialCascadeError raised
    - re-running soft_delete finishes a partial fan-out without resetting deleted_at
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from minify.errors import AccountNotFound, PartialCascadeError, StorageError
from minify.manager.cascade import STAGE_DEACTIVATE_LINKS, STAGE_REACTIVATE_LINKS
from minify.models import Account, Link


def _links(storage, owner_id, clock, n=3):
    return [
        storage.insert_link(Link.new(f"{owner_id}-{i}", f"https://example.com/{i}", owner_id, now=clock()))
        for i in range(n)
    ]


def test_soft_delete_marks_account_and_deactivates_links(cascade, storage, owner, clock):
    _links(storage, "alice", clock)
    storage.insert_account(Account(id="bob"))
    bob_link = storage.insert_link(Link.new("bob-link", "https://bob.example", "bob", now=clock()))

    record = cascade.soft_delete("alice")

    account = storage.find_account("alice")
    assert account.is_deleted is True
    assert account.deleted_at == clock()
    assert record.deleted_at == clock()
    assert record.deletion_deadline == clock() + timedelta(days=30)
    assert record.links_deactivated == 3
    assert record.already_deleted is False
    assert all(not link.is_active for link in storage.list_links_by_owner("alice"))
    # Other owners untouched
    assert storage.find_link(bob_link.id).is_active is True


def test_soft_delete_missing_account(cascade):
    with pytest.raises(AccountNotFound):
        cascade.soft_delete("nobody")


def test_reactivate_already_active_mutates_nothing(cascade, storage, owner, clock):
    links = _links(storage, "alice", clock)
    with patch.object(storage, "update_account") as upd_acc, \
            patch.object(storage, "update_links_by_owner") as upd_links:
        record = cascade.reactivate("alice")

    assert record.already_active is True
    assert record.links_reactivated == 0
    upd_acc.assert_not_called()
    upd_links.assert_not_called()
    assert storage.find_account("alice") == owner
    assert {l.id: l for l in storage.list_links_by_owner("alice")} == {l.id: l for l in links}


def test_reactivate_missing_account(cascade):
    with pytest.raises(AccountNotFound):
        cascade.reactivate("nobody")


def test_delete_then_reactivate_round_trip(cascade, storage, owner, clock):
    before = {link.id: link for link in _links(storage, "alice", clock)}

    cascade.soft_delete("alice")
    clock.advance(hours=1)
    record = cascade.reactivate("alice")

    assert record.already_active is False
    assert record.links_reactivated == 3
    assert record.reactivated_at == clock()
    account = storage.find_account("alice")
    assert account.is_deleted is False and account.deleted_at is None
    for link in storage.list_links_by_owner("alice"):
        assert link.is_active is True
        assert link.expires_at == before[link.id].expires_at


def test_reactivate_does_not_unexpire(cascade, storage, owner, clock, lifecycle):
    (link,) = _links(storage, "alice", clock, n=1)
    cascade.soft_delete("alice")
    clock.advance(days=40)
    cascade.reactivate("alice")

    restored = storage.find_link(link.id)
    assert restored.is_active is True
    assert lifecycle.classify(restored, clock()).value == "expired"


def test_partial_delete_failure_keeps_account_write(cascade, storage, owner, clock):
    _links(storage, "alice", clock)
    with patch.object(storage, "update_links_by_owner", side_effect=StorageError("boom")):
        with pytest.raises(PartialCascadeError) as ei:
            cascade.soft_delete("alice")

    err = ei.value
    assert err.account_id == "alice"
    assert err.stage == STAGE_DEACTIVATE_LINKS
    assert isinstance(err.cause, StorageError)
    # First write persisted, second never applied
    assert storage.find_account("alice").is_deleted is True
    assert all(link.is_active for link in storage.list_links_by_owner("alice"))


def test_rerun_soft_delete_completes_fan_out(cascade, storage, owner, clock):
    _links(storage, "alice", clock)
    with patch.object(storage, "update_links_by_owner", side_effect=StorageError("boom")):
        with pytest.raises(PartialCascadeError):
            cascade.soft_delete("alice")
    first_deleted_at = storage.find_account("alice").deleted_at

    clock.advance(minutes=5)
    record = cascade.soft_delete("alice")

    assert record.already_deleted is True
    assert record.deleted_at == first_deleted_at
    assert storage.find_account("alice").deleted_at == first_deleted_at
    assert all(not link.is_active for link in storage.list_links_by_owner("alice"))


def test_partial_reactivate_failure(cascade, storage, owner, clock):
    _links(storage, "alice", clock)
    cascade.soft_delete("alice")
    with patch.object(storage, "update_links_by_owner", side_effect=StorageError("down")):
        with pytest.raises(PartialCascadeError) as ei:
            cascade.reactivate("alice")

    assert ei.value.stage == STAGE_REACTIVATE_LINKS
    assert storage.find_account("alice").is_deleted is False
    assert all(not link.is_active for link in storage.list_links_by_owner("alice"))


def test_account_write_failure_is_not_partial(cascade, storage, owner):
    with patch.object(storage, "update_account", side_effect=StorageError("down")):
        with pytest.raises(StorageError):
            cascade.soft_delete("alice")
    assert storage.find_account("alice").is_deleted is False


def test_account_written_before_links(cascade, storage, owner, clock):
    _links(storage, "alice", clock)
    seen = []
    original = storage.update_links_by_owner

    def spy(owner_id, patch):
        seen.append(storage.find_account(owner_id).is_deleted)
        return original(owner_id, patch)

    with patch.object(storage, "update_links_by_owner", side_effect=spy):
        cascade.soft_delete("alice")
    assert seen == [True]
