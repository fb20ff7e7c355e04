"""
Tests for collection state storage.
"""

import hashlib
import json
import threading

import pytest

from issuance.controller import MintController
from registry.storage import CollectionStorage, IntegrityError, LockTimeoutError, StorageError


class TestCollectionStorage:

    def test_save_and_load(self, controller, collection_storage, alice):
        controller.mint_to(alice, alice, value=100)
        checksum = collection_storage.save(controller.to_state())

        assert len(checksum) == 64
        assert collection_storage.exists()
        assert collection_storage.verify()

        state = collection_storage.load()
        assert state.current_token_id == 1
        assert state.token_owners == {1: alice}
        assert state.custody_balance == 100

    def test_missing_file(self, collection_storage):
        with pytest.raises(StorageError):
            collection_storage.load()
        assert not collection_storage.verify()

    def test_tampered_file(self, controller, collection_storage, state_file):
        collection_storage.save(controller.to_state())

        data = json.loads(state_file.read_text())
        data["custody_balance"] = 10**6
        state_file.write_text(json.dumps(data, indent=2))

        assert not collection_storage.verify()
        with pytest.raises(IntegrityError):
            collection_storage.load()

    def test_invalid_document(self, collection_storage, state_file):
        state_file.parent.mkdir(parents=True)
        state_file.write_text('{"version": 1}')
        with pytest.raises(IntegrityError):
            collection_storage.load()

    def test_invalid_json(self, collection_storage, state_file):
        state_file.parent.mkdir(parents=True)
        state_file.write_text("{not json")
        with pytest.raises(IntegrityError):
            collection_storage.load()

    def test_no_temp_file_left(self, controller, collection_storage, state_file):
        collection_storage.save(controller.to_state())
        assert [p.name for p in state_file.parent.iterdir() if p.suffix == ".tmp"] == []

    def test_backups_rotate(self, controller, collection_storage):
        for _ in range(6):
            collection_storage.save(controller.to_state())

        backups = collection_storage.list_backups()
        assert len(backups) == collection_storage.backup_count
        assert collection_storage.latest_backup() == backups[0]

    def test_save_without_backup(self, controller, collection_storage):
        collection_storage.save(controller.to_state())
        collection_storage.save(controller.to_state(), create_backup=False)
        assert collection_storage.list_backups() == []

    def test_expands_user(self):
        storage = CollectionStorage("~/collection.json")
        assert "~" not in str(storage.file_path)

    def test_interrupted_save_completed_on_load(self, controller, collection_storage, state_file, alice):
        collection_storage.save(controller.to_state())
        controller.mint_to(alice, alice, value=100)

        # Document moved into place, checksum still the old one
        data = json.dumps(controller.to_state().model_dump(mode="json"), indent=2).encode("utf-8")
        collection_storage.pending_checksum_path.write_text(hashlib.sha256(data).hexdigest())
        state_file.write_bytes(data)
        assert not collection_storage.verify()

        assert collection_storage.load().current_token_id == 1
        assert collection_storage.verify()
        assert not collection_storage.pending_checksum_path.exists()

    def test_stale_pending_checksum_does_not_mask_tampering(self, controller, collection_storage, state_file):
        collection_storage.save(controller.to_state())
        collection_storage.pending_checksum_path.write_text("0" * 64)
        state_file.write_text(state_file.read_text().replace('"custody_balance": 0', '"custody_balance": 5'))

        with pytest.raises(IntegrityError):
            collection_storage.load()


class TestStorageLocking:

    def test_lock_excludes_other_instances(self, controller, collection_storage, state_file):
        collection_storage.save(controller.to_state())
        other = CollectionStorage(state_file, lock_timeout=0.2)

        with collection_storage.lock():
            with pytest.raises(LockTimeoutError):
                other.load()

        assert other.load().current_token_id == 0

    def test_lock_is_reentrant(self, controller, collection_storage):
        with collection_storage.lock():
            collection_storage.save(controller.to_state())
            with collection_storage.lock():
                assert collection_storage.load().current_token_id == 0
        assert not collection_storage._file_lock.locked

    def test_update(self, controller, collection_storage, alice):
        collection_storage.save(controller.to_state())

        def mint(state):
            restored = MintController.from_state(state)
            restored.mint_to(alice, alice, value=100)
            return restored.to_state()

        assert collection_storage.update(mint).current_token_id == 1
        assert collection_storage.load().token_owners == {1: alice}

    def test_failed_update_writes_nothing(self, controller, collection_storage):
        collection_storage.save(controller.to_state())
        checksum = collection_storage.checksum_path.read_text()

        def fail(state):
            raise ValueError("boom")

        with pytest.raises(ValueError):
            collection_storage.update(fail)
        assert collection_storage.checksum_path.read_text() == checksum
        assert not collection_storage._file_lock.locked

    def test_writers_from_separate_loads_keep_both_mints(self, controller, state_file, alice, bob):
        CollectionStorage(state_file).save(controller.to_state())
        minted = {}

        def mint_as(identity):
            def updater(state):
                restored = MintController.from_state(state)
                minted[identity] = restored.mint_to(identity, identity, value=100)
                return restored.to_state()
            CollectionStorage(state_file).update(updater)

        first = CollectionStorage(state_file)
        with first.lock():
            loaded = MintController.from_state(first.load())
            worker = threading.Thread(target=mint_as, args=(bob,))
            worker.start()
            minted[alice] = loaded.mint_to(alice, alice, value=100)
            first.save(loaded.to_state())
        worker.join(timeout=10)

        assert minted == {alice: [1], bob: [2]}
        state = CollectionStorage(state_file).load()
        assert state.current_token_id == 2
        assert state.custody_balance == 200
        assert state.token_owners == {1: alice, 2: bob}
